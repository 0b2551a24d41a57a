"""Automation runtime package."""

from timesheet.automation.engine import DataFileEngine
from timesheet.automation.tools import TOOLS, ToolParam, ToolSpec, call_tool, describe_tools

__all__ = [
    "DataFileEngine",
    "TOOLS",
    "ToolParam",
    "ToolSpec",
    "call_tool",
    "describe_tools",
]
