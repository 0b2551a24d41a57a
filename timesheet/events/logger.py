"""
Engine Event Logger

DESIGN DECISION: Every significant engine operation is logged as a
structured event. This provides:
1. Traceability of imports, edits and month closures
2. Debugging capability for both runtimes

The event logger writes to the structured log only; nothing is persisted.
"""

import logging
import sys
from typing import Optional

import structlog

from timesheet.config import LoggingSettings, get_settings
from timesheet.models.events import (
    EngineEvent,
    EngineEventBuilder,
    EngineEventType,
    EventSeverity,
)


_configured = False


def configure_logging(settings: Optional[LoggingSettings] = None, force: bool = False) -> None:
    """
    Configure structlog once per process.

    JSON lines by default; the console renderer is used when json_output is off.
    """
    global _configured
    if _configured and not force:
        return

    settings = settings or get_settings().logging
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, settings.level),
    )
    logging.getLogger().setLevel(getattr(logging, settings.level))

    renderer = (
        structlog.processors.JSONRenderer()
        if settings.json_output
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _configured = True


def get_logger(name: Optional[str] = None):
    configure_logging()
    return structlog.get_logger(name)


class EventLogger:
    """
    Central engine event logger.

    One instance is shared by a workbench or automation engine; it carries no
    state besides the bound structlog logger.
    """

    def __init__(self, name: str = "timesheet"):
        self._logger = get_logger(name)

    def log(self, event: EngineEvent) -> None:
        """Log an engine event at the level matching its severity."""
        log_dict = event.to_log_dict()

        if event.severity == EventSeverity.ERROR:
            self._logger.error("engine_event", **log_dict)
        elif event.severity == EventSeverity.WARNING:
            self._logger.warning("engine_event", **log_dict)
        elif event.severity == EventSeverity.DEBUG:
            self._logger.debug("engine_event", **log_dict)
        else:
            self._logger.info("engine_event", **log_dict)

    def log_import(
        self,
        project_id: str,
        month_key: str,
        file_name: str,
        loaded: int,
        new: int,
        missing_rates: list[str],
    ) -> None:
        """Log an applied import batch, plus a warning for missing rates."""
        self.log(EngineEventBuilder.import_applied(
            project_id=project_id,
            month_key=month_key,
            file_name=file_name,
            loaded=loaded,
            new=new,
        ))
        if missing_rates:
            self.log(EngineEventBuilder.missing_rates(
                project_id=project_id,
                month_key=month_key,
                collaborators=missing_rates,
            ))

    def log_activities_changed(
        self,
        event_type: EngineEventType,
        project_id: str,
        month_key: str,
        affected: int,
        details: Optional[dict] = None,
    ) -> None:
        self.log(EngineEventBuilder.activities_changed(
            event_type=event_type,
            project_id=project_id,
            month_key=month_key,
            affected=affected,
            details=details,
        ))

    def log_month_status(
        self,
        project_id: str,
        month_key: str,
        closed: bool,
        activity_count: int,
    ) -> None:
        self.log(EngineEventBuilder.month_status_changed(
            project_id=project_id,
            month_key=month_key,
            closed=closed,
            activity_count=activity_count,
        ))

    def log_project_changed(
        self,
        event_type: EngineEventType,
        project_id: str,
        description: str,
        details: Optional[dict] = None,
    ) -> None:
        self.log(EngineEventBuilder.project_changed(
            event_type=event_type,
            project_id=project_id,
            description=description,
            details=details,
        ))

    def log_rejected(
        self,
        operation: str,
        reason: str,
        message: str,
        project_id: Optional[str] = None,
        month_key: Optional[str] = None,
    ) -> None:
        """Log a rejected operation (validation failure, not an error)."""
        self.log(EngineEventBuilder.operation_rejected(
            operation=operation,
            reason=reason,
            message=message,
            project_id=project_id,
            month_key=month_key,
        ))

    def log_storage_error(
        self,
        operation: str,
        error_message: str,
        project_id: Optional[str] = None,
    ) -> None:
        self.log(EngineEventBuilder.storage_error(
            operation=operation,
            error_message=error_message,
            project_id=project_id,
        ))
