"""
Timesheet Reconciler - Source Package

Tracks billable activities imported from spreadsheets, converts them into
day-equivalents for invoicing, and lets an operator adjust, cluster and
close the data month by month without losing the imported values.

DESIGN PRINCIPLES:
1. Imported values are never overwritten, edits are recorded beside them
2. Every edit is reversible
3. A closed month is read-only
4. Both runtimes (interactive and automation) share one engine
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Timesheet Reconciler Team"
