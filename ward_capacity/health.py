## ward_capacity/health.py

from __future__ import annotations
import os, traceback
from datetime import datetime
from pathlib import Path
import pandas as pd
from .capacity import CapacityEngine
from .metrics import REGISTRY

LOG_PATH = Path("logs") / "pipeline.log"


def capacity_table(engine: CapacityEngine) -> pd.DataFrame:
    rows = []
    for key in engine.known_keys():
        a = engine.analyze_capacity(key.facility_id, key.ward_id)
        rows.append({
            "facility_id": key.facility_id,
            "ward_id": key.ward_id,
            "count": a.count,
            "status": a.status,
            "busy": a.thresholds.busy,
            "full": a.thresholds.full,
            "trend": a.trend,
            "wait_min": a.estimated_wait_minutes,
            "mature": a.is_mature,
        })
    cols = ["facility_id", "ward_id", "count", "status", "busy", "full", "trend", "wait_min", "mature"]
    return pd.DataFrame(rows, columns=cols)


def tail(path: Path, lines: int = 20) -> list[str]:
    if not path.exists():
        return ["<log file not found>"]
    try:
        with open(path, "rb") as f:
            f.seek(0, os.SEEK_END)
            size = f.tell()
            block = 1024
            data = b""
            while size > 0 and data.count(b"\n") <= lines:
                step = min(block, size)
                f.seek(size - step)
                data = f.read(step) + data
                size -= step
        txt = data.decode("utf-8", errors="replace").splitlines()[-lines:]
        return txt if txt else ["<empty>"]
    except OSError:
        return [traceback.format_exc()]


def report(engine: CapacityEngine, log_path: Path = LOG_PATH) -> str:
    out = ["=" * 70, "Ward Capacity Health Report",
           f"As of: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}", "=" * 70]
    table = capacity_table(engine)
    if table.empty:
        out.append("\nNo wards with retained events or history.")
    else:
        counts = table["status"].value_counts()
        out.append(f"\nWards tracked: {len(table)}  "
                   f"(available {counts.get('available', 0)}, busy {counts.get('busy', 0)}, full {counts.get('full', 0)})")
        out.append(table.to_string(index=False))
    counters = REGISTRY.to_prometheus().strip()
    if counters:
        out.append("\nIngestion counters (this process):")
        out.extend("  " + line for line in counters.splitlines())
    out.append(f"\nLog tail: {log_path}")
    out.extend("  " + line for line in tail(log_path, lines=20))
    return "\n".join(out)
