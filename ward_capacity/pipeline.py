## ward_capacity/pipeline.py

from __future__ import annotations
import os, shutil
import pandas as pd
from .utils import logger
from .alerts import send_email, send_slack
from .capacity import CapacityEngine
from .config import Settings, load_settings
from .ingestion import IngestionOrchestrator
from .ledger import LedgerClient
from .schemas import IngestionEvent
from .sinks import build_sink
from .store import SqlEventStore

REQUIRED_COLUMNS = ["facility_id", "ward_id", "transaction_amount", "currency", "reference"]
DEFAULT_TYPES = {
    "facility_id": "string",
    "ward_id": "string",
    "reference": "string",
    "currency": "string",
    "transaction_amount": "float",
    "timestamp": "datetime",
}


def build_orchestrator(settings: Settings) -> IngestionOrchestrator:
    store = SqlEventStore(settings.store.uri).init_schema()
    engine = CapacityEngine(store, settings.capacity)
    return IngestionOrchestrator(
        engine,
        ledger=LedgerClient.from_settings(settings.ledger),
        sink=build_sink(settings.sinks),
        settings=settings.ingestion,
    )


def read_input(path: str, settings: Settings) -> pd.DataFrame:
    if settings.input_format == "jsonl" or path.endswith(".jsonl"):
        return pd.read_json(path, lines=True)
    return pd.read_csv(path)


def enforce_schema(df: pd.DataFrame, settings: Settings) -> pd.DataFrame:
    schema = settings.schema_
    req = set(schema.get("required_columns", REQUIRED_COLUMNS))
    missing = req - set(df.columns)
    if missing:
        raise ValueError(f"Missing required columns: {sorted(missing)}")
    types = {**DEFAULT_TYPES, **schema.get("types", {})}
    for col, t in types.items():
        if col not in df.columns: continue
        if t == "datetime":
            df[col] = pd.to_datetime(df[col], errors="coerce", utc=True)
        elif t == "float":
            df[col] = pd.to_numeric(df[col], errors="coerce")
        elif t == "string":
            df[col] = df[col].astype(str)
    bad = df["transaction_amount"].isna() if "transaction_amount" in df else pd.Series(False, index=df.index)
    if bad.any():
        raise ValueError(f"Non-numeric transaction_amount in rows: {list(df.index[bad])}")
    return df


def to_events(df: pd.DataFrame) -> list[IngestionEvent]:
    records = df.astype(object).where(pd.notna(df), None).to_dict(orient="records")
    return [IngestionEvent.model_validate({k: v for k, v in r.items() if v is not None}) for r in records]


def ingest_frame(df: pd.DataFrame, orchestrator: IngestionOrchestrator) -> pd.DataFrame:
    results = [orchestrator.ingest_event(e).model_dump(by_alias=True) for e in to_events(df)]
    return pd.DataFrame(results)


def process_file(path: str, cfg_path: str = "config.yaml", orchestrator: IngestionOrchestrator | None = None):
    settings = load_settings(cfg_path)
    owned = orchestrator is None
    try:
        if owned:
            orchestrator = build_orchestrator(settings)
        raw = read_input(path, settings)
        raw = enforce_schema(raw, settings)
        results = ingest_frame(raw, orchestrator)
        warned = int((results["warnings"].map(len) > 0).sum()) if len(results) else 0
        logger.info(f"Processed OK: {path} -> {len(results)} events ({warned} with ledger warnings)")
    except Exception as e:
        logger.exception(f"Failed processing {path}: {e}")
        os.makedirs("quarantine", exist_ok=True)
        qpath = os.path.join("quarantine", os.path.basename(path))
        try:
            shutil.move(path, qpath)
        except OSError as move_err:
            logger.error(f"Could not quarantine {path}: {move_err}")
        send_email("Capacity ingestion failure", f"File: {path}\nError: {e}")
        send_slack(f":rotating_light: Capacity ingestion failure for {path}: {e}")
        return False
    else:
        return True
    finally:
        if owned and orchestrator is not None:
            orchestrator.close()
