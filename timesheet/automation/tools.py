"""
Automation Tool Registry

Maps tool names to DataFileEngine methods with a declared parameter list.
The transport (CLI here, any remote-tool protocol elsewhere) only ever
calls call_tool(), which validates arguments before dispatching.

DESIGN DECISION: Argument validation is the registry's job, business
validation is the engine's. A malformed call is answered with
reason "invalid_value" and never reaches storage.
"""

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from timesheet.automation.engine import DataFileEngine
from timesheet.models.results import OperationResult, RejectionReason


UNKNOWN_TOOL_REASON = "unknown_tool"

ParamType = Literal["string", "number", "string_list", "optional_string"]


class ToolParam(BaseModel):
    name: str
    type: ParamType = "string"
    required: bool = True
    description: str = ""


class ToolSpec(BaseModel):
    """One automation tool: its name, engine method and parameters."""

    name: str
    method: str = Field(..., description="DataFileEngine method implementing the tool")
    description: str
    params: list[ToolParam] = Field(default_factory=list)

    def describe(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "params": [p.model_dump() for p in self.params],
        }


_PROJECT = ToolParam(name="project_id", description="Project id")
_MONTH = ToolParam(name="month_key", description="Month (YYYY-MM)")
_HASHES = ToolParam(name="hashes", type="string_list", description="Activity hashes")


TOOLS: dict[str, ToolSpec] = {
    spec.name: spec
    for spec in [
        ToolSpec(
            name="list_projects",
            method="list_projects",
            description="List every project with month and activity counts",
        ),
        ToolSpec(
            name="get_project",
            method="get_project",
            description="Billing configuration, clusters and months of a project",
            params=[_PROJECT],
        ),
        ToolSpec(
            name="get_activities",
            method="get_activities",
            description="Activities of a month with quantities and flags",
            params=[_PROJECT, _MONTH],
        ),
        ToolSpec(
            name="get_month_summary",
            method="get_month_summary",
            description="Day-equivalents and billable amount per cluster",
            params=[_PROJECT, _MONTH],
        ),
        ToolSpec(
            name="assign_cluster",
            method="assign_cluster",
            description="Tag activities with a cluster (omit cluster_id to untag)",
            params=[
                _PROJECT, _MONTH, _HASHES,
                ToolParam(name="cluster_id", type="optional_string", required=False),
            ],
        ),
        ToolSpec(
            name="apply_rounding",
            method="apply_rounding",
            description="Scale activities proportionally to a target total",
            params=[
                _PROJECT, _MONTH, _HASHES,
                ToolParam(name="target_total", type="number"),
            ],
        ),
        ToolSpec(
            name="update_day_equivalents",
            method="update_day_equivalents",
            description="Set the day-equivalents of activities",
            params=[
                _PROJECT, _MONTH, _HASHES,
                ToolParam(name="value", type="number"),
            ],
        ),
        ToolSpec(
            name="close_month",
            method="close_month",
            description="Close a month; closed months reject every change",
            params=[_PROJECT, _MONTH],
        ),
        ToolSpec(
            name="reopen_month",
            method="reopen_month",
            description="Reopen a closed month",
            params=[_PROJECT, _MONTH],
        ),
        ToolSpec(
            name="create_cluster",
            method="create_cluster",
            description="Create a cluster (name must be unique)",
            params=[
                _PROJECT,
                ToolParam(name="name"),
                ToolParam(name="color", type="optional_string", required=False),
            ],
        ),
        ToolSpec(
            name="manage_collaborator_rates",
            method="manage_collaborator_rates",
            description="List, set or delete a collaborator's daily rate",
            params=[
                _PROJECT,
                ToolParam(name="action", description="list, set or delete"),
                ToolParam(name="name", type="optional_string", required=False),
                ToolParam(name="rate", type="number", required=False),
            ],
        ),
    ]
}


def _invalid(message: str) -> dict[str, Any]:
    return OperationResult.rejected(RejectionReason.INVALID_VALUE, message).to_response()


def _coerce(param: ToolParam, value: Any) -> Any:
    """Coerce one argument; raises ValueError on a type mismatch."""
    if value is None:
        return None
    if param.type == "number":
        if isinstance(value, bool):
            raise ValueError(f"'{param.name}' must be a number")
        return float(value)
    if param.type == "string_list":
        if isinstance(value, str):
            return [h.strip() for h in value.split(",") if h.strip()]
        if not isinstance(value, (list, tuple)):
            raise ValueError(f"'{param.name}' must be a list of strings")
        return [str(v) for v in value]
    return str(value)


def call_tool(engine: DataFileEngine, name: str, arguments: Optional[dict] = None) -> dict[str, Any]:
    """Validate arguments and dispatch one tool call. Never raises."""
    spec = TOOLS.get(name)
    if spec is None:
        return {"success": False, "error": f"Unknown tool '{name}'", "reason": UNKNOWN_TOOL_REASON}

    arguments = dict(arguments or {})
    known = {p.name for p in spec.params}
    unexpected = sorted(set(arguments) - known)
    if unexpected:
        return _invalid(f"Unexpected arguments for {name}: {', '.join(unexpected)}")

    kwargs: dict[str, Any] = {}
    for param in spec.params:
        if param.name not in arguments:
            if param.required:
                return _invalid(f"Missing required argument '{param.name}'")
            continue
        if arguments[param.name] is None and param.required:
            return _invalid(f"Argument '{param.name}' cannot be null")
        try:
            kwargs[param.name] = _coerce(param, arguments[param.name])
        except (TypeError, ValueError) as e:
            return _invalid(str(e) or f"Invalid value for '{param.name}'")

    return getattr(engine, spec.method)(**kwargs)


def describe_tools() -> list[dict[str, Any]]:
    return [spec.describe() for spec in TOOLS.values()]
