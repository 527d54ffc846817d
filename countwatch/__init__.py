"""
countwatch: unattended importer for the bike/ped counter CSV export.
- watcher: polls the export path; bootstrap and entry point
- supervisor: watch loop, worker isolation, recovery policy
- pipeline: one import (read -> aggregate -> database) as an outcome
- ingest: export header/row validation into count rows
- aggregate: daily totals per location
- sinks: database gateway (TBLCOUNTDATA / TBLHEADER)
- config: credentials and settings
- alerts: email/slack on failures
- health: plain-text status report
"""

__all__ = [
    "watcher",
    "supervisor",
    "pipeline",
    "ingest",
    "aggregate",
    "sinks",
    "config",
    "alerts",
    "errors",
    "schemas",
    "utils",
    "health",
]

__version__ = "0.1.0"
