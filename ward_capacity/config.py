## ward_capacity/config.py

from __future__ import annotations
from typing import Dict, Literal, Optional
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from .errors import ConfigError
from .utils import load_yaml


class WardProfile(BaseModel):
    base_wait: float = Field(ge=0)
    congestion_factor: float = Field(ge=0)


class DefaultThresholds(BaseModel):
    busy: float = 50
    full: float = 100


# Keys are matched as substrings of the ward id, first match wins.
DEFAULT_WARD_PROFILES: Dict[str, WardProfile] = {
    "maternity": WardProfile(base_wait=30, congestion_factor=45),
    "emergency": WardProfile(base_wait=15, congestion_factor=90),
    "pharmacy": WardProfile(base_wait=10, congestion_factor=20),
    "laboratory": WardProfile(base_wait=15, congestion_factor=30),
    "radiology": WardProfile(base_wait=20, congestion_factor=40),
    "general": WardProfile(base_wait=20, congestion_factor=30),
}


class CapacitySettings(BaseModel):
    window_minutes: int = Field(240, gt=0)
    maturity_sample_count: int = Field(5, ge=1)
    default_thresholds: DefaultThresholds = Field(default_factory=DefaultThresholds)
    busy_percentile: float = 0.75
    full_percentile: float = 0.95
    trend_increase_factor: float = Field(1.5, gt=0)
    ward_type_profiles: Dict[str, WardProfile] = Field(default_factory=lambda: dict(DEFAULT_WARD_PROFILES))
    default_ward_profile: WardProfile = Field(default_factory=lambda: WardProfile(base_wait=20, congestion_factor=30))
    capacity_threshold: Optional[float] = Field(None, gt=0)
    wait_ratio_cap: float = Field(2.0, gt=0)
    event_retention_minutes: Optional[int] = Field(None, gt=0)
    history_retention_days: int = Field(7, gt=0)

    @field_validator("busy_percentile", "full_percentile")
    @classmethod
    def _percentile_range(cls, v: float) -> float:
        if not 0 < v <= 1:
            raise ValueError("percentile must be in (0, 1]")
        return v

    @model_validator(mode="after")
    def _retention_covers_window(self):
        if self.event_retention_minutes is not None and self.event_retention_minutes < self.window_minutes:
            raise ValueError("event_retention_minutes must not be shorter than window_minutes")
        return self

    @property
    def retention_minutes(self) -> int:
        return self.event_retention_minutes or self.window_minutes

    def ward_profile(self, ward_id: str) -> WardProfile:
        key = ward_id.lower()
        for name, profile in self.ward_type_profiles.items():
            if name.lower() in key:
                return profile
        return self.default_ward_profile


class IngestionSettings(BaseModel):
    publish_on: Literal["any", "escalation", "always"] = "any"
    ledger_wait_seconds: float = Field(2.0, ge=0)
    ledger_workers: int = Field(4, ge=1)


class StoreSettings(BaseModel):
    uri: str = "sqlite:///data/capacity.sqlite"


class LedgerSettings(BaseModel):
    enabled: bool = False
    base_url_env: str = "LEDGER_BASE_URL"
    timeout_seconds: float = Field(10, gt=0)
    retries: int = Field(3, ge=1)
    retry_delay: float = Field(1.0, ge=0)


class Settings(BaseModel):
    capacity: CapacitySettings = Field(default_factory=CapacitySettings)
    ingestion: IngestionSettings = Field(default_factory=IngestionSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
    ledger: LedgerSettings = Field(default_factory=LedgerSettings)
    sinks: dict = Field(default_factory=dict)
    watcher: dict = Field(default_factory=lambda: {"poll_seconds": 3})
    schema_: dict = Field(default_factory=dict, alias="schema")
    input_format: str = "csv"
    file_glob: str = "*.csv"

    model_config = {"populate_by_name": True}


def build_settings(cfg: dict | None) -> Settings:
    try:
        return Settings.model_validate(cfg or {})
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


def load_settings(cfg_path: str = "config.yaml") -> Settings:
    return build_settings(load_yaml(cfg_path))
