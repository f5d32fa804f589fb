## ward_capacity/metrics.py

from __future__ import annotations
import threading
from dataclasses import dataclass, field
from typing import Dict, Tuple

Labels = Tuple[Tuple[str, str], ...]


@dataclass
class Counter:
    """Thread-safe counter metric."""

    name: str
    labels: Labels = ()
    _value: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def inc(self, amount: int = 1) -> None:
        with self._lock:
            self._value += amount

    @property
    def value(self) -> int:
        with self._lock:
            return self._value


class MetricsRegistry:
    def __init__(self) -> None:
        self._counters: Dict[Tuple[str, Labels], Counter] = {}
        self._lock = threading.Lock()

    def counter(self, name: str, **labels: str) -> Counter:
        key = (name, tuple(sorted(labels.items())))
        with self._lock:
            if key not in self._counters:
                self._counters[key] = Counter(name, key[1])
            return self._counters[key]

    def value(self, name: str, **labels: str) -> int:
        return self.counter(name, **labels).value

    def to_prometheus(self) -> str:
        lines = []
        with self._lock:
            counters = sorted(self._counters.values(), key=lambda c: (c.name, c.labels))
        for c in counters:
            label_str = ",".join(f'{k}="{v}"' for k, v in c.labels)
            lines.append(f"{c.name}{{{label_str}}} {c.value}" if label_str else f"{c.name} {c.value}")
        return "\n".join(lines) + "\n"

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()


REGISTRY = MetricsRegistry()


def record_capacity_event(facility_id: str, ward_id: str) -> None:
    REGISTRY.counter("capacity_events_total", facility_id=facility_id, ward_id=ward_id).inc()


def record_transaction_ingestion(facility_id: str, ward_id: str, ledger_status: str | None) -> None:
    REGISTRY.counter("transactions_ingested_total", facility_id=facility_id, ward_id=ward_id,
                     ledger_status=ledger_status or "SKIPPED").inc()
