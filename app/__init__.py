"""Command line frontend."""
