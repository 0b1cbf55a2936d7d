"""
Entity schema registry: importable fields for every strategy entity type.

Each schema lists its fields with header aliases, semantic tags (used by the
mapping engine) and enum vocabularies. The registry is static configuration;
nothing mutates it at runtime.
"""

from typing import Dict, List, Optional

from stratimport.imports.specs import DEPENDENCY_ORDER, EntitySchema, FieldSchema

RAG_VALUES = ("red", "amber", "green")
DEPARTMENT_CODES = ("FIN", "MKT", "OPS", "IT", "HR", "SAL", "PRD", "ENG", "LEG", "ADM")
CATEGORY_CODES = ("RUN", "GROW", "TRNS")

ISO_DATE = r"^\d{4}-\d{2}-\d{2}$"
US_DATE = r"^\d{1,2}/\d{1,2}/\d{2,4}$"
EMAIL = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"


def _description(*extra_aliases: str) -> FieldSchema:
    return FieldSchema(
        name="description", label="Description", type="string",
        aliases=("desc", "details", "about", "summary") + extra_aliases,
        semantic_tags=("description", "text"),
    )


def _rag_status(*aliases: str) -> FieldSchema:
    return FieldSchema(
        name="rag_status", label="RAG Status", type="enum",
        aliases=aliases, semantic_tags=("status", "rag"),
        enum_values=RAG_VALUES, default_value="green",
    )


def _budget() -> FieldSchema:
    return FieldSchema(
        name="budget", label="Budget", type="number",
        aliases=("budget", "total budget", "allocated budget", "funding"),
        semantic_tags=("budget", "money", "currency"), default_value=0,
    )


def _spent_budget() -> FieldSchema:
    return FieldSchema(
        name="spent_budget", label="Spent Budget", type="number",
        aliases=("spent", "spent budget", "actual spend", "cost", "expenditure"),
        semantic_tags=("budget", "money", "spent"), default_value=0,
    )


def _display_order(*aliases: str) -> FieldSchema:
    return FieldSchema(
        name="display_order", label="Display Order", type="number",
        aliases=aliases, semantic_tags=("order", "number"), default_value=0,
    )


# ---------------------------------------------------------------------------
# Field definitions
# ---------------------------------------------------------------------------

PILLAR_FIELDS = (
    FieldSchema(
        name="name", label="Pillar Name", type="string", required=True,
        aliases=("pillar", "pillar name", "perspective", "bsc perspective", "strategy pillar"),
        semantic_tags=("name", "identifier", "title"),
    ),
    _description(),
    _display_order("order", "sort order", "sequence", "position", "rank"),
    _rag_status("rag", "status", "health", "traffic light", "color status"),
)

KPI_FIELDS = (
    FieldSchema(
        name="name", label="KPI Name", type="string", required=True,
        aliases=("kpi", "kpi name", "metric", "measure", "indicator",
                 "key performance indicator"),
        semantic_tags=("name", "identifier", "title"),
    ),
    FieldSchema(
        name="pillar_id", label="Strategy Pillar", type="reference", required=True,
        reference_type="pillar",
        aliases=("pillar", "perspective", "parent pillar", "bsc perspective"),
        semantic_tags=("parent", "reference"),
    ),
    FieldSchema(
        name="target_value", label="Target Value", type="number", required=True,
        aliases=("target", "goal", "objective", "target value"),
        semantic_tags=("number", "target"),
    ),
    FieldSchema(
        name="current_value", label="Current Value", type="number", required=True,
        aliases=("current", "actual", "value", "current value"),
        semantic_tags=("number", "current"),
    ),
    FieldSchema(
        name="previous_value", label="Previous Value", type="number",
        aliases=("previous", "last", "prior", "previous value"),
        semantic_tags=("number", "previous"), default_value=0,
    ),
    FieldSchema(
        name="unit", label="Unit", type="enum",
        aliases=("unit", "measurement", "unit of measure", "uom"),
        semantic_tags=("unit",), enum_values=("%", "$", "score", "number"),
        default_value="number",
    ),
    FieldSchema(
        name="last_updated", label="Last Updated", type="date",
        aliases=("updated", "last updated", "date", "as of"),
        semantic_tags=("date", "updated"),
    ),
)

INITIATIVE_FIELDS = (
    FieldSchema(
        name="name", label="Initiative Name", type="string", required=True,
        aliases=("initiative", "initiative name", "program", "portfolio", "workstream"),
        semantic_tags=("name", "identifier", "title"),
    ),
    FieldSchema(
        name="pillar_id", label="Strategy Pillar", type="reference", required=True,
        reference_type="pillar",
        aliases=("pillar", "perspective", "parent pillar", "strategy pillar"),
        semantic_tags=("parent", "reference"),
    ),
    _description("objective"),
    FieldSchema(
        name="owner_id", label="Owner", type="reference", reference_type="resource",
        aliases=("owner", "sponsor", "lead", "initiative owner", "program manager"),
        semantic_tags=("person", "owner"),
    ),
    FieldSchema(
        name="start_date", label="Start Date", type="date",
        aliases=("start", "start date", "begin", "from", "kick off"),
        semantic_tags=("date", "start"), patterns=(ISO_DATE, US_DATE),
    ),
    FieldSchema(
        name="end_date", label="End Date", type="date",
        aliases=("end", "end date", "finish", "to", "target date", "due"),
        semantic_tags=("date", "end"), patterns=(ISO_DATE, US_DATE),
    ),
    _budget(),
    _spent_budget(),
    _rag_status("rag", "status", "health", "traffic light"),
)

PROJECT_FIELDS = (
    FieldSchema(
        name="name", label="Project Name", type="string", required=True,
        aliases=("project", "project name", "title", "project title"),
        semantic_tags=("name", "identifier", "title"),
    ),
    FieldSchema(
        name="initiative_id", label="Initiative", type="reference", required=True,
        reference_type="initiative",
        aliases=("initiative", "parent initiative", "program", "workstream"),
        semantic_tags=("parent", "reference"),
    ),
    _description("scope"),
    FieldSchema(
        name="manager_id", label="Project Manager", type="reference",
        reference_type="resource",
        aliases=("manager", "pm", "project manager", "lead", "owner"),
        semantic_tags=("person", "manager"),
    ),
    FieldSchema(
        name="status", label="Status", type="enum",
        aliases=("status", "project status", "state", "phase"),
        semantic_tags=("status",),
        enum_values=("not_started", "in_progress", "on_hold", "completed", "cancelled"),
        default_value="not_started",
    ),
    _rag_status("rag", "rag status", "health", "traffic light"),
    FieldSchema(
        name="start_date", label="Start Date", type="date",
        aliases=("start", "start date", "begin", "from", "kick off"),
        semantic_tags=("date", "start"),
    ),
    FieldSchema(
        name="end_date", label="End Date", type="date",
        aliases=("end", "end date", "finish", "to", "target date", "deadline"),
        semantic_tags=("date", "end"),
    ),
    FieldSchema(
        name="completion_percentage", label="Completion %", type="number",
        aliases=("completion", "percent complete", "progress", "% complete", "done"),
        semantic_tags=("percentage", "progress"), default_value=0,
    ),
    _budget(),
    _spent_budget(),
    FieldSchema(
        name="department_code", label="Department", type="enum",
        aliases=("department", "dept", "function", "team", "business unit"),
        semantic_tags=("department",), enum_values=DEPARTMENT_CODES, default_value="IT",
    ),
    FieldSchema(
        name="category", label="Category", type="enum",
        aliases=("category", "type", "project type", "classification"),
        semantic_tags=("category",), enum_values=CATEGORY_CODES, default_value="GROW",
    ),
    FieldSchema(
        name="fiscal_year", label="Fiscal Year", type="number",
        aliases=("fiscal year", "fy", "year", "financial year"),
        semantic_tags=("year", "date"),
    ),
)

TASK_FIELDS = (
    FieldSchema(
        name="title", label="Task Title", type="string", required=True,
        aliases=("task", "task name", "title", "name", "task title", "activity"),
        semantic_tags=("name", "identifier", "title"),
    ),
    FieldSchema(
        name="project_id", label="Project", type="reference", required=True,
        reference_type="project",
        aliases=("project", "parent project", "project name"),
        semantic_tags=("parent", "reference"),
    ),
    FieldSchema(
        name="description", label="Description", type="string",
        aliases=("desc", "details", "about", "notes", "summary"),
        semantic_tags=("description", "text"),
    ),
    FieldSchema(
        name="assignee_id", label="Assignee", type="reference", reference_type="resource",
        aliases=("assignee", "assigned to", "owner", "resource", "responsible"),
        semantic_tags=("person", "assignee"),
    ),
    FieldSchema(
        name="kanban_status", label="Status", type="enum",
        aliases=("status", "task status", "state", "kanban"),
        semantic_tags=("status",), enum_values=("todo", "in_progress", "blocked", "done"),
        default_value="todo",
    ),
    FieldSchema(
        name="due_date", label="Due Date", type="date",
        aliases=("due", "due date", "deadline", "target date", "end date"),
        semantic_tags=("date", "due"),
    ),
    FieldSchema(
        name="start_date", label="Start Date", type="date",
        aliases=("start", "start date", "begin", "from"),
        semantic_tags=("date", "start"),
    ),
    FieldSchema(
        name="estimated_hours", label="Estimated Hours", type="number",
        aliases=("estimated hours", "est hours", "estimate", "planned hours", "effort"),
        semantic_tags=("hours", "estimate"), default_value=8,
    ),
    FieldSchema(
        name="actual_hours", label="Actual Hours", type="number",
        aliases=("actual hours", "act hours", "actual", "time spent", "logged hours"),
        semantic_tags=("hours", "actual"), default_value=0,
    ),
    FieldSchema(
        name="planned_hours", label="Planned Hours", type="number",
        aliases=("planned hours", "planned", "budgeted hours"),
        semantic_tags=("hours", "planned"),
    ),
    FieldSchema(
        name="priority", label="Priority", type="enum",
        aliases=("priority", "importance", "urgency", "level"),
        semantic_tags=("priority",), enum_values=("low", "medium", "high", "critical"),
        default_value="medium",
    ),
    FieldSchema(
        name="parent_task_id", label="Parent Task", type="reference", reference_type="task",
        aliases=("parent task", "parent", "parent wbs", "wbs parent"),
        semantic_tags=("parent", "hierarchy"),
    ),
    FieldSchema(
        name="wbs_code", label="WBS Code", type="string",
        aliases=("wbs", "wbs code", "wbs number", "work breakdown"),
        semantic_tags=("code", "wbs"),
    ),
    FieldSchema(
        name="is_milestone", label="Is Milestone", type="boolean",
        aliases=("milestone", "is milestone", "key milestone"),
        semantic_tags=("milestone", "flag"), default_value=False,
    ),
    FieldSchema(
        name="deliverable", label="Deliverable", type="string",
        aliases=("deliverable", "output", "artifact", "result"),
        semantic_tags=("deliverable", "output"),
    ),
    FieldSchema(
        name="department_code", label="Department", type="enum",
        aliases=("department", "dept", "function", "team"),
        semantic_tags=("department",), enum_values=DEPARTMENT_CODES,
    ),
)

RESOURCE_FIELDS = (
    FieldSchema(
        name="name", label="Name", type="string", required=True,
        aliases=("name", "resource name", "full name", "person", "employee"),
        semantic_tags=("name", "identifier", "person"),
    ),
    FieldSchema(
        name="email", label="Email", type="string",
        aliases=("email", "e-mail", "mail", "email address"),
        semantic_tags=("email", "contact"), patterns=(EMAIL,),
    ),
    FieldSchema(
        name="role", label="Role", type="string",
        aliases=("role", "job title", "position", "title", "job role"),
        semantic_tags=("role", "job"),
    ),
    FieldSchema(
        name="team", label="Team", type="string",
        aliases=("team", "group", "squad", "unit"),
        semantic_tags=("team", "group"),
    ),
    FieldSchema(
        name="weekly_capacity", label="Weekly Capacity", type="number",
        aliases=("capacity", "weekly capacity", "hours per week", "availability"),
        semantic_tags=("hours", "capacity"), default_value=40,
    ),
    FieldSchema(
        name="department_code", label="Department", type="enum",
        aliases=("department", "dept", "function", "business unit"),
        semantic_tags=("department",), enum_values=DEPARTMENT_CODES, default_value="IT",
    ),
    FieldSchema(
        name="hourly_rate", label="Hourly Rate", type="number",
        aliases=("hourly rate", "rate", "cost rate", "billing rate"),
        semantic_tags=("money", "rate"),
    ),
)

MILESTONE_FIELDS = (
    FieldSchema(
        name="name", label="Milestone Name", type="string", required=True,
        aliases=("milestone", "milestone name", "name", "title", "gate"),
        semantic_tags=("name", "identifier", "milestone"),
    ),
    FieldSchema(
        name="project_id", label="Project", type="reference", required=True,
        reference_type="project",
        aliases=("project", "parent project", "project name"),
        semantic_tags=("parent", "reference"),
    ),
    _description(),
    FieldSchema(
        name="target_date", label="Target Date", type="date", required=True,
        aliases=("target date", "target", "due date", "deadline", "planned date"),
        semantic_tags=("date", "target"),
    ),
    FieldSchema(
        name="completed_date", label="Completed Date", type="date",
        aliases=("completed date", "completed", "actual date", "done date"),
        semantic_tags=("date", "completed"),
    ),
    FieldSchema(
        name="status", label="Status", type="enum",
        aliases=("status", "milestone status", "state"),
        semantic_tags=("status",), enum_values=("pending", "completed", "missed"),
        default_value="pending",
    ),
    _display_order("order", "display order", "sequence", "sort order"),
)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

ENTITY_SCHEMAS: Dict[str, EntitySchema] = {
    "pillar": EntitySchema("pillar", "Strategy Pillar", PILLAR_FIELDS),
    "resource": EntitySchema("resource", "Resource", RESOURCE_FIELDS),
    "kpi": EntitySchema(
        "kpi", "KPI", KPI_FIELDS, parent_field="pillar_id", parent_type="pillar",
    ),
    "initiative": EntitySchema(
        "initiative", "Initiative", INITIATIVE_FIELDS,
        parent_field="pillar_id", parent_type="pillar",
    ),
    "project": EntitySchema(
        "project", "Project", PROJECT_FIELDS,
        parent_field="initiative_id", parent_type="initiative",
    ),
    "task": EntitySchema(
        "task", "Task", TASK_FIELDS, identifier_field="title",
        parent_field="project_id", parent_type="project",
    ),
    "milestone": EntitySchema(
        "milestone", "Milestone", MILESTONE_FIELDS,
        parent_field="project_id", parent_type="project",
    ),
}

# Sheet-name keywords used by the sheet analyzer
ENTITY_TYPE_KEYWORDS: Dict[str, List[str]] = {
    "pillar": ["pillar", "pillars", "perspective", "perspectives", "bsc",
               "balanced scorecard", "strategy"],
    "kpi": ["kpi", "kpis", "metric", "metrics", "indicator", "indicators",
            "measure", "measures"],
    "initiative": ["initiative", "initiatives", "program", "programs", "portfolio",
                   "workstream"],
    "project": ["project", "projects", "prj", "work", "works"],
    "task": ["task", "tasks", "activity", "activities", "action", "actions", "todo",
             "wbs", "work breakdown"],
    "resource": ["resource", "resources", "people", "person", "employee", "employees",
                 "team", "staff", "member"],
    "milestone": ["milestone", "milestones", "gate", "gates", "checkpoint",
                  "checkpoints", "deliverable"],
}


def entity_types() -> List[str]:
    """All importable entity types in dependency order."""
    return list(DEPENDENCY_ORDER)


def get_entity_schema(entity_type: str) -> EntitySchema:
    """Return the schema for an entity type.

    Raises:
        KeyError: If the entity type is unknown
    """
    try:
        return ENTITY_SCHEMAS[entity_type]
    except KeyError:
        raise KeyError(f"Unknown entity type: {entity_type}") from None


def get_field_schema(entity_type: str, field_name: str) -> Optional[FieldSchema]:
    return get_entity_schema(entity_type).get_field(field_name)


def get_required_fields(entity_type: str) -> List[FieldSchema]:
    return get_entity_schema(entity_type).required_fields


def get_all_field_aliases(entity_type: str) -> Dict[str, str]:
    """Lowercased name, label and aliases mapped to the field name."""
    alias_map: Dict[str, str] = {}
    for field_schema in get_entity_schema(entity_type).fields:
        alias_map[field_schema.name.lower()] = field_schema.name
        alias_map[field_schema.label.lower()] = field_schema.name
        for alias in field_schema.aliases:
            alias_map[alias.lower()] = field_schema.name
    return alias_map


def dependency_rank(entity_type: str) -> int:
    return DEPENDENCY_ORDER.index(entity_type)


def can_reference(entity_type: str, reference_type: str) -> bool:
    """True when a sheet of entity_type may resolve names of reference_type.

    Only earlier types in the dependency order are allowed, plus the type
    itself (hierarchies such as a task's parent task).
    """
    return dependency_rank(reference_type) <= dependency_rank(entity_type)


def schema_to_dict(schema: EntitySchema) -> Dict:
    """JSON-friendly view of a schema, used by the HTTP API."""
    return {
        "entity_type": schema.entity_type,
        "label": schema.label,
        "identifier_field": schema.identifier_field,
        "parent_field": schema.parent_field,
        "parent_type": schema.parent_type,
        "fields": [
            {
                "name": f.name,
                "label": f.label,
                "type": f.type,
                "required": f.required,
                "aliases": list(f.aliases),
                "enum_values": list(f.enum_values),
                "reference_type": f.reference_type,
                "default_value": f.default_value,
            }
            for f in schema.fields
        ],
    }
