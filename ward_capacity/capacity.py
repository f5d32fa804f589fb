## ward_capacity/capacity.py

from __future__ import annotations
import math, uuid
from typing import Callable, List, Optional
import pandas as pd
from .config import CapacitySettings
from .schemas import CapacityAnalysis, CapacityKey, Thresholds
from .store import EventStore
from .utils import logger, now_ms

MINUTE_MS = 60 * 1000
DAY_MS = 24 * 60 * MINUTE_MS


def nearest_rank(values: List[float], percentile: float) -> float:
    """Nearest-rank percentile: the value at 1-indexed rank ceil(p * n) of the sorted values."""
    s = pd.Series(values, dtype="float64").sort_values(ignore_index=True)
    rank = min(max(math.ceil(percentile * len(s)), 1), len(s))
    return float(s.iloc[rank - 1])


def classify_status(count: float, thresholds: Thresholds) -> str:
    if count >= thresholds.full:
        return "full"
    if count >= thresholds.busy:
        return "busy"
    return "available"


def classify_trend(count: float, average: float, factor: float = 1.5) -> str:
    if average > 0 and count > factor * average:
        return "increasing"
    return "stable"


class CapacityEngine:
    """Sliding-window capacity signal for a (facility, ward) pair.

    All state lives in the EventStore; the engine itself holds only settings
    and a clock, so any number of workers can share one store.
    """

    def __init__(self, store: EventStore, settings: CapacitySettings | None = None,
                 clock: Callable[[], int] = now_ms):
        self.store = store
        self.settings = settings or CapacitySettings()
        self.clock = clock

    def record_event(self, facility_id: str, ward_id: str) -> None:
        key = CapacityKey(facility_id, ward_id)
        now = self.clock()
        self.store.append(key, now, f"{now}-{uuid.uuid4().hex[:12]}")
        self.store.evict_events(key, now - self.settings.retention_minutes * MINUTE_MS)

    def get_window_count(self, facility_id: str, ward_id: str, window_minutes: Optional[int] = None) -> int:
        window = window_minutes if window_minutes is not None else self.settings.window_minutes
        if window > self.settings.retention_minutes:
            raise ValueError(f"window of {window} minutes exceeds event retention of "
                             f"{self.settings.retention_minutes} minutes; raise event_retention_minutes")
        now = self.clock()
        return self.store.range_count(CapacityKey(facility_id, ward_id), now - window * MINUTE_MS, now)

    def calculate_percentile_threshold(self, facility_id: str, ward_id: str, percentile: float) -> float:
        values = self.store.range_history_values(CapacityKey(facility_id, ward_id))
        if not values:
            return self.settings.default_thresholds.busy
        return nearest_rank(values, percentile)

    def thresholds_for(self, facility_id: str, ward_id: str, sample_count: int) -> Thresholds:
        cfg = self.settings
        mature = sample_count >= cfg.maturity_sample_count
        if cfg.capacity_threshold is not None:
            busy = cfg.capacity_threshold
        elif mature:
            busy = self.calculate_percentile_threshold(facility_id, ward_id, cfg.busy_percentile)
        else:
            busy = cfg.default_thresholds.busy
        if mature:
            full = self.calculate_percentile_threshold(facility_id, ward_id, cfg.full_percentile)
        else:
            full = cfg.default_thresholds.full
        return Thresholds(busy=busy, full=full)

    def estimate_wait_minutes(self, ward_id: str, count: int, busy_threshold: float) -> int:
        profile = self.settings.ward_profile(ward_id)
        ratio = count / busy_threshold if busy_threshold > 0 else self.settings.wait_ratio_cap
        ratio = min(max(ratio, 0.0), self.settings.wait_ratio_cap)
        # Halves round up.
        return math.floor(profile.base_wait + ratio * profile.congestion_factor + 0.5)

    def analyze_capacity(self, facility_id: str, ward_id: str) -> CapacityAnalysis:
        history = pd.Series(self.store.range_history_values(CapacityKey(facility_id, ward_id)), dtype="float64")
        n = len(history)
        thresholds = self.thresholds_for(facility_id, ward_id, n)
        count = self.get_window_count(facility_id, ward_id)
        average = float(history.mean()) if n else 0.0
        analysis = CapacityAnalysis(
            count=count,
            status=classify_status(count, thresholds),
            thresholds=thresholds,
            trend=classify_trend(count, average, self.settings.trend_increase_factor),
            estimated_wait_minutes=self.estimate_wait_minutes(ward_id, count, thresholds.busy),
            is_mature=n >= self.settings.maturity_sample_count,
        )
        logger.debug(f"Capacity {facility_id}/{ward_id}: {analysis.model_dump()}")
        return analysis

    def record_snapshot(self, facility_id: str, ward_id: str) -> int:
        key = CapacityKey(facility_id, ward_id)
        count = self.get_window_count(facility_id, ward_id)
        now = self.clock()
        self.store.append_history_sample(key, now, count)
        self.store.prune_history(key, now - self.settings.history_retention_days * DAY_MS)
        return count

    def known_keys(self) -> List[CapacityKey]:
        return self.store.keys()
