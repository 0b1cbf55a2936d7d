"""
stratimport Web Application Factory

Flask app that registers the imports blueprint. Mirrors how cli/main.py
exposes the same pipeline on the command line.
"""

from flask import Flask, jsonify

from stratimport.core.config import get_config_value


def create_app() -> Flask:
    """Create and configure the import API application."""
    app = Flask(__name__)

    max_upload_mb = get_config_value("api", "max_upload_mb", default=16)
    app.config["MAX_CONTENT_LENGTH"] = int(max_upload_mb) * 1024 * 1024
    app.json.sort_keys = False

    # ── JSON errors ──────────────────────────────────────────────────────
    @app.errorhandler(400)
    def bad_request(error):
        return jsonify({"error": getattr(error, "description", "Bad request")}), 400

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({"error": "Method not allowed"}), 405

    @app.errorhandler(413)
    def too_large(error):
        return jsonify({"error": f"File exceeds {max_upload_mb} MB upload limit"}), 413

    # ── Register blueprints ──────────────────────────────────────────────
    from stratimport.api.imports import bp as imports_bp
    app.register_blueprint(imports_bp)

    @app.route("/health")
    def health():
        import stratimport

        return jsonify({"status": "ok", "version": stratimport.__version__})

    return app
