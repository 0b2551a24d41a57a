"""
Command Line Frontend for the Timesheet Reconciler

Thin shell over the two runtimes:
- `tools` / `call` go through the automation tool registry
- `create-project` / `import` drive the interactive workbench, which
  creates months lazily on first use

Every command prints a JSON response and exits non-zero when the response
reports a failure. Nothing here computes anything itself.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Optional

from timesheet.automation import DataFileEngine, call_tool, describe_tools
from timesheet.config import get_settings
from timesheet.engine.errors import OperationRejected
from timesheet.events import EventLogger, configure_logging
from timesheet.models.events import EngineEventType
from timesheet.services import create_project
from timesheet.services.storage import NotFoundError, StorageError, create_storage
from timesheet.workbench import MonthWorkbench


def _print(response: Any) -> None:
    print(json.dumps(response, indent=2, ensure_ascii=False, default=str))


def _parse_pairs(pairs: list[str]) -> dict[str, Any]:
    """key=value arguments; values are read as JSON when they parse."""
    arguments: dict[str, Any] = {}
    for pair in pairs:
        key, sep, raw = pair.partition("=")
        if not sep:
            raise ValueError(f"Expected key=value, got '{pair}'")
        try:
            arguments[key] = json.loads(raw)
        except json.JSONDecodeError:
            arguments[key] = raw
    return arguments


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="timesheet",
        description="Reconcile, calculate and redistribute timesheet activities.",
    )
    parser.add_argument(
        "--data",
        type=Path,
        default=None,
        help="Data file or workspace directory (default: TIMESHEET_STORAGE_DATA_PATH)",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("tools", help="List the automation tools")

    call = commands.add_parser("call", help="Call an automation tool")
    call.add_argument("tool", help="Tool name (see `tools`)")
    call.add_argument("pairs", nargs="*", help="Arguments as key=value")
    call.add_argument("--args", dest="json_args", default=None, help="Arguments as a JSON object")

    create = commands.add_parser("create-project", help="Create a project")
    create.add_argument("name")
    create.add_argument("--daily-rate", type=float, default=None)
    create.add_argument("--hours-per-day", type=float, default=None)
    create.add_argument("--mode", default="rate", help="rate, hours or collaborator_rate")

    importer = commands.add_parser("import", help="Import raw rows into a month")
    importer.add_argument("project_id")
    importer.add_argument("month_key", help="YYYY-MM")
    importer.add_argument("rows", type=Path, help="JSON file: list of rows, header row first")

    return parser.parse_args(argv)


def _run_call(args: argparse.Namespace, engine: DataFileEngine) -> dict:
    arguments = json.loads(args.json_args) if args.json_args else {}
    arguments.update(_parse_pairs(args.pairs))
    return call_tool(engine, args.tool, arguments)


def _run_create(args: argparse.Namespace, storage, logger: EventLogger) -> dict:
    project = create_project(
        args.name,
        daily_rate=args.daily_rate,
        hours_per_day=args.hours_per_day,
        calculation_mode=args.mode,
    )
    storage.save_project(project)
    logger.log_project_changed(
        event_type=EngineEventType.PROJECT_CREATED,
        project_id=project.id,
        description=f"Created project {project.name}",
    )
    return {"success": True, "project_id": project.id, "name": project.name}


def _run_import(args: argparse.Namespace, storage, logger: EventLogger) -> dict:
    rows = json.loads(args.rows.read_text(encoding="utf-8"))
    project = storage.load_project(args.project_id)

    workbench = MonthWorkbench(project, args.month_key, event_logger=logger)
    result = workbench.import_rows(rows, file_name=args.rows.name)
    if result.success:
        storage.save_project(project)
    return result.to_response()


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging()

    settings = get_settings()
    storage = create_storage(settings.storage, path=args.data)
    logger = EventLogger("timesheet.cli")

    try:
        if args.command == "tools":
            _print(describe_tools())
            return 0
        if args.command == "call":
            response = _run_call(args, DataFileEngine(storage, settings, logger))
        elif args.command == "create-project":
            response = _run_create(args, storage, logger)
        else:
            response = _run_import(args, storage, logger)
    except OperationRejected as e:
        response = e.to_result().to_response()
    except NotFoundError as e:
        response = {"success": False, "error": str(e), "reason": "unknown_project"}
    except StorageError as e:
        logger.log_storage_error(operation=args.command, error_message=str(e))
        response = {"success": False, "error": str(e), "reason": "storage_error"}
    except (OSError, ValueError) as e:
        response = {"success": False, "error": str(e), "reason": "invalid_value"}

    _print(response)
    return 0 if response.get("success") else 1


if __name__ == "__main__":
    sys.exit(main())
