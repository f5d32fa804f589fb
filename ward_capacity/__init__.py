"""
ward_capacity package for live ward-level capacity signaling:
- capacity: sliding-window counts, percentile thresholds, trend, wait time
- store: time-indexed event/history store (SQLAlchemy)
- ingestion: transaction → ledger + capacity update + facility status
- ledger: Blnk-style ledger HTTP client
- sinks: facility profile sinks (HTTP / SQL)
- pipeline: read → validate → ingest for event files
- watcher: incoming/ file watcher loop
- snapshot: periodic history samples
- health: capacity report
- alerts: email/slack on failures
- metrics: in-process ingestion counters
"""

__all__ = [
    "capacity",
    "store",
    "ingestion",
    "ledger",
    "sinks",
    "pipeline",
    "watcher",
    "snapshot",
    "health",
    "alerts",
    "metrics",
    "config",
    "errors",
    "schemas",
    "utils",
    "cli",
]

__version__ = "0.1.0"

from dotenv import load_dotenv

load_dotenv()
