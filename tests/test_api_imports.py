"""Tests for the import HTTP API."""

from io import BytesIO

from openpyxl import load_workbook


def _upload(client, data, filename):
    return client.post(
        "/api/imports/analyze",
        data={"file": (BytesIO(data), filename)},
        content_type="multipart/form-data",
    )


class TestApp:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.get_json() == {"status": "ok", "version": "0.1.0"}

    def test_not_found_is_json(self, client):
        resp = client.get("/api/imports/nothing-here")
        assert resp.status_code == 404
        assert resp.get_json() == {"error": "Not found"}

    def test_wrong_method_is_json(self, client):
        resp = client.get("/api/imports/analyze")
        assert resp.status_code == 405
        assert resp.get_json()["error"] == "Method not allowed"


class TestSchemas:
    def test_lists_every_entity_type(self, client):
        data = client.get("/api/imports/schemas").get_json()
        assert data["entity_types"][0] == "pillar"
        assert set(data["schemas"]) == set(data["entity_types"])
        assert data["schemas"]["task"]["identifier_field"] == "title"


class TestAnalyze:
    def test_workbook_upload(self, client, strategy_xlsx):
        resp = _upload(client, strategy_xlsx, "plan.xlsx")
        assert resp.status_code == 200
        data = resp.get_json()
        assert [s["sheet_name"] for s in data["workbook"]["sheets"]] == [
            "Pillars", "Initiatives", "Projects", "Instructions",
        ]
        assert set(data["suggestions"]) == {"Pillars", "Initiatives", "Projects"}
        assert [c["entity_type"] for c in data["configs"]] == ["pillar", "initiative", "project"]

    def test_csv_upload(self, client):
        resp = _upload(client, b"Resource Name,Email\nJane,jane@example.com\n", "People.csv")
        assert resp.status_code == 200
        sheet = resp.get_json()["workbook"]["sheets"][0]
        assert sheet["suggested_entity_type"] == "resource"

    def test_no_file(self, client):
        resp = client.post("/api/imports/analyze", data={}, content_type="multipart/form-data")
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "No file provided"

    def test_empty_file(self, client):
        resp = _upload(client, b"", "plan.xlsx")
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "File is empty"

    def test_unsupported_type(self, client):
        resp = _upload(client, b"%PDF-1.7", "plan.pdf")
        assert resp.status_code == 400
        assert "Unsupported file type" in resp.get_json()["error"]


class TestValidate:
    def test_auto_configured(self, client):
        payload = {"sheets": {"Pillars": {"headers": ["Pillar Name"], "rows": [["Growth"]]}}}
        resp = client.post("/api/imports/validate", json=payload)
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["configs"][0]["entity_type"] == "pillar"
        assert data["validation"]["valid_rows"] == 1
        assert data["validation"]["can_proceed"] is True

    def test_explicit_configs_and_existing(self, client):
        payload = {
            "sheets": {"Metrics": {
                "headers": ["Metric", "Pillar", "Goal", "Now"],
                "rows": [["NPS", "customer", 60, 45]],
            }},
            "configs": [{
                "sheet_name": "Metrics",
                "entity_type": "kpi",
                "column_mappings": [
                    {"source_column_index": 0, "target_field": "name"},
                    {"source_column_index": 1, "target_field": "pillar_id"},
                    {"source_column_index": 2, "target_field": "target_value"},
                    {"source_column_index": 3, "target_field": "current_value"},
                ],
            }],
            "existing": {"pillar": [{"id": "p1", "name": "Customer"}]},
        }
        data = client.post("/api/imports/validate", json=payload).get_json()
        row = data["validation"]["sheets"][0]["row_results"][0]
        assert row["is_valid"] is True
        assert row["transformed_data"]["pillar_id"] == "p1"

    def test_policy_overrides(self, client):
        payload = {
            "sheets": {"Projects": {
                "headers": ["Project Name", "Initiative"],
                "rows": [["Portal", "Digital Experience"]],
            }},
            "existing": {"initiative": [{"id": "i1", "name": "Digital Experience"}]},
            "preset": "standard",
            "policy": {"fields": {"additional_required": {"project": ["end_date"]}}},
        }
        data = client.post("/api/imports/validate", json=payload).get_json()
        errors = data["validation"]["sheets"][0]["row_results"][0]["errors"]
        assert errors[0]["message"] == 'Field "End Date" is required by import policy'

    def test_malformed_existing(self, client):
        for existing in ({"pillar": "x"}, {"pillar": ["x"]}):
            payload = {
                "sheets": {"P": {"headers": ["Pillar Name"], "rows": [["x"]]}},
                "existing": existing,
            }
            resp = client.post("/api/imports/validate", json=payload)
            assert resp.status_code == 400
            assert resp.get_json()["error"].startswith("existing.pillar")

    def test_unknown_preset(self, client):
        payload = {"sheets": {"P": {"headers": ["Pillar Name"], "rows": [["x"]]}}, "preset": "chaos"}
        resp = client.post("/api/imports/validate", json=payload)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Unknown import policy preset: chaos"

    def test_not_json(self, client):
        resp = client.post("/api/imports/validate", data="hello", content_type="text/plain")
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Request body must be a JSON object"

    def test_bad_sheets(self, client):
        resp = client.post("/api/imports/validate", json={"sheets": []})
        assert resp.status_code == 400
        assert "sheets must be a non-empty object" in resp.get_json()["error"]

    def test_bad_config(self, client):
        payload = {
            "sheets": {"P": {"headers": ["Pillar Name"], "rows": [["x"]]}},
            "configs": [{"sheet_name": "P"}],
        }
        resp = client.post("/api/imports/validate", json=payload)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Each config needs sheet_name and entity_type"


class TestTemplate:
    def test_download(self, client):
        resp = client.get("/api/imports/template")
        assert resp.status_code == 200
        assert "strategy_import_template.xlsx" in resp.headers["Content-Disposition"]
        assert len(load_workbook(BytesIO(resp.data)).sheetnames) == 7

    def test_selected_entities(self, client):
        resp = client.get("/api/imports/template?entity=task&entity=pillar")
        assert load_workbook(BytesIO(resp.data)).sheetnames == ["Strategy Pillars", "Tasks"]

    def test_unknown_entity(self, client):
        resp = client.get("/api/imports/template?entity=invoice")
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Unknown entity type: invoice"
