## ward_capacity/schemas.py

from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import List, Literal, NamedTuple, Optional
from datetime import datetime, timezone

Status = Literal["available", "busy", "full"]
Trend = Literal["increasing", "stable", "decreasing"]

STATUS_ORDER = {"available": 0, "busy": 1, "full": 2}


class CapacityKey(NamedTuple):
    facility_id: str
    ward_id: str


class Thresholds(BaseModel):
    busy: float
    full: float


class CapacityAnalysis(BaseModel):
    count: int
    status: Status
    thresholds: Thresholds
    trend: Trend
    estimated_wait_minutes: int
    is_mature: bool = False


class IngestionEvent(BaseModel):
    facility_id: str = Field(min_length=1)
    ward_id: str = Field(min_length=1)
    transaction_amount: float
    currency: str
    reference: str = Field(min_length=1)
    description: Optional[str] = None
    source_account: Optional[str] = None
    destination_account: Optional[str] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def key(self) -> CapacityKey:
        return CapacityKey(self.facility_id, self.ward_id)

    @property
    def has_ledger_accounts(self) -> bool:
        return bool(self.source_account and self.destination_account)


class LedgerTransaction(BaseModel):
    model_config = ConfigDict(extra="ignore")

    transaction_id: str
    status: str = "QUEUED"
    amount: Optional[float] = None
    reference: Optional[str] = None


class IngestionResult(BaseModel):
    """Upstream result shape; dump with ``by_alias=True`` for camelCase keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    capacity_count: int
    status: Status
    thresholds: Thresholds
    trend: Trend
    estimated_wait_minutes: int
    reference: str
    ledger_transaction_id: Optional[str] = None
    ledger_status: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)
