## ward_capacity/snapshot.py

from __future__ import annotations
from typing import Dict
from .capacity import CapacityEngine
from .schemas import CapacityKey
from .utils import logger


def snapshot_all(engine: CapacityEngine) -> Dict[CapacityKey, int]:
    """Record one history sample for every key the store knows about.

    Meant to run on a schedule (e.g. hourly); the percentile baseline is
    only as good as the regularity of these samples.
    """
    recorded = {}
    for key in engine.known_keys():
        recorded[key] = engine.record_snapshot(key.facility_id, key.ward_id)
    logger.info(f"Recorded {len(recorded)} capacity history samples")
    return recorded
