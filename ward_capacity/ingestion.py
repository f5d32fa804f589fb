## ward_capacity/ingestion.py

from __future__ import annotations
from concurrent.futures import Future, ThreadPoolExecutor, TimeoutError as FutureTimeout
from typing import Optional, Tuple
from .capacity import CapacityEngine
from .config import IngestionSettings
from .ledger import LedgerClient
from .schemas import STATUS_ORDER, CapacityAnalysis, IngestionEvent, IngestionResult, LedgerTransaction
from .sinks import FacilityProfileSink
from .utils import logger
from . import metrics


def should_publish(policy: str, previous: Optional[str], current: str) -> bool:
    if policy == "always":
        return True
    if policy == "escalation":
        return STATUS_ORDER[current] > STATUS_ORDER[previous or "available"]
    return previous != current


class IngestionOrchestrator:
    """Couples each ingested transaction to a ledger record and a capacity update.

    The ledger submission runs on a worker pool while the capacity path runs
    on the caller's thread. Ledger and sink errors are reported, capacity
    errors are raised.
    """

    def __init__(self, engine: CapacityEngine, ledger: LedgerClient | None = None,
                 sink: FacilityProfileSink | None = None, settings: IngestionSettings | None = None):
        self.engine = engine
        self.ledger = ledger
        self.sink = sink
        self.settings = settings or IngestionSettings()
        self._pool = ThreadPoolExecutor(max_workers=self.settings.ledger_workers, thread_name_prefix="ledger")

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def close(self):
        self._pool.shutdown(wait=True)

    def _submit_ledger(self, event: IngestionEvent) -> Optional[Future]:
        if not event.has_ledger_accounts:
            return None
        if self.ledger is None:
            logger.debug(f"No ledger configured; skipping ledger record for {event.reference}")
            return None
        return self._pool.submit(
            self.ledger.record_transaction,
            amount=event.transaction_amount,
            currency=event.currency,
            source=event.source_account,
            destination=event.destination_account,
            reference=event.reference,
            description=event.description or f"Transaction for {event.ward_id}",
        )

    def _collect_ledger(self, future: Optional[Future], reference: str) -> Tuple[Optional[LedgerTransaction], Optional[str], Optional[str]]:
        """Return (transaction, ledger_status, warning)."""
        if future is None:
            return None, None, None
        try:
            tx = future.result(timeout=self.settings.ledger_wait_seconds)
            return tx, tx.status, None
        except FutureTimeout:
            logger.warning(f"Ledger submission still pending for {reference}")
            return None, "PENDING", "ledger_pending: submission continues in background"
        except Exception as e:
            logger.exception(f"Failed to record transaction {reference} in ledger: {e}")
            return None, "FAILED", f"ledger_failed: {e}"

    def _publish(self, event: IngestionEvent, analysis: CapacityAnalysis):
        previous = self.engine.store.exchange_status(event.key, analysis.status)
        if self.sink is None or not should_publish(self.settings.publish_on, previous, analysis.status):
            return
        update = {
            "ward_update": {
                "ward_name": event.ward_id,
                "status": analysis.status,
                "count": analysis.count,
                "thresholds": analysis.thresholds.model_dump(),
                "trend": analysis.trend,
                "estimated_wait_minutes": analysis.estimated_wait_minutes,
            }
        }
        try:
            self.sink.update_status(event.facility_id, update)
            logger.info(f"Ward {event.facility_id}/{event.ward_id}: {previous} -> {analysis.status}")
        except Exception as e:
            logger.error(f"Failed to update facility status for {event.facility_id}: {e}")

    def ingest_event(self, event: IngestionEvent | dict) -> IngestionResult:
        if isinstance(event, dict):
            event = IngestionEvent.model_validate(event)
        ledger_future = self._submit_ledger(event)

        self.engine.record_event(event.facility_id, event.ward_id)
        metrics.record_capacity_event(event.facility_id, event.ward_id)
        analysis = self.engine.analyze_capacity(event.facility_id, event.ward_id)
        self._publish(event, analysis)

        tx, ledger_status, warning = self._collect_ledger(ledger_future, event.reference)
        metrics.record_transaction_ingestion(event.facility_id, event.ward_id, ledger_status)
        return IngestionResult(
            capacity_count=analysis.count,
            status=analysis.status,
            thresholds=analysis.thresholds,
            trend=analysis.trend,
            estimated_wait_minutes=analysis.estimated_wait_minutes,
            reference=event.reference,
            ledger_transaction_id=tx.transaction_id if tx else None,
            ledger_status=ledger_status,
            warnings=[warning] if warning else [],
        )
