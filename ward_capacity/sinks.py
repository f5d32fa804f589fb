## ward_capacity/sinks.py

from __future__ import annotations
import os
from abc import ABC, abstractmethod
import pandas as pd
from sqlalchemy import create_engine
import requests
from .utils import logger, now_ms


class FacilityProfileSink(ABC):
    """Receives ward status updates for a facility profile."""

    @abstractmethod
    def update_status(self, facility_id: str, update: dict) -> None: ...


class HttpFacilityProfileSink(FacilityProfileSink):
    def __init__(self, base_url: str, timeout: float = 5):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def update_status(self, facility_id, update):
        r = requests.patch(f"{self.base_url}/facilities/{facility_id}/status", json=update, timeout=self.timeout)
        r.raise_for_status()


class SqlFacilityProfileSink(FacilityProfileSink):
    """Appends each ward update as a row; the latest row per ward is the current status."""

    def __init__(self, uri: str, table: str = "facility_ward_status"):
        self.engine = create_engine(uri)
        self.table = table

    def update_status(self, facility_id, update):
        ward = update["ward_update"]
        row = {
            "facility_id": facility_id,
            "ward_name": ward["ward_name"],
            "status": ward["status"],
            "count": ward.get("count"),
            "busy_threshold": ward.get("thresholds", {}).get("busy"),
            "full_threshold": ward.get("thresholds", {}).get("full"),
            "trend": ward.get("trend"),
            "estimated_wait_minutes": ward.get("estimated_wait_minutes"),
            "updated_at": now_ms(),
        }
        pd.DataFrame([row]).to_sql(self.table, self.engine, if_exists="append", index=False)


def build_sink(cfg: dict) -> FacilityProfileSink | None:
    sinks = cfg or {}
    if sinks.get("http", {}).get("enabled"):
        url = os.getenv(sinks["http"]["base_url_env"], "")
        if url:
            return HttpFacilityProfileSink(url, sinks["http"].get("timeout_seconds", 5))
        logger.warning("HTTP facility sink enabled but base URL is not set")
    if sinks.get("sqlite", {}).get("enabled"):
        return SqlFacilityProfileSink(sinks["sqlite"]["uri"], sinks["sqlite"].get("table", "facility_ward_status"))
    return None
