"""Structured event logging package."""

from timesheet.events.logger import EventLogger, configure_logging, get_logger

__all__ = ["EventLogger", "configure_logging", "get_logger"]
