## ward_capacity/ledger.py

from __future__ import annotations
import os
import requests
from .config import LedgerSettings
from .errors import LedgerFailure
from .schemas import LedgerTransaction
from .utils import Retryable, logger, retry


class LedgerClient:
    """Client for a Blnk-style ledger API.

    ``reference`` is the ledger's idempotency key: posting the same reference
    twice records the transaction once.
    """

    def __init__(self, base_url: str, timeout: float = 10, retries: int = 3, retry_delay: float = 1.0,
                 session: requests.Session | None = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})
        self._post = retry(times=retries, delay=retry_delay)(self._post_once)

    @classmethod
    def from_settings(cls, cfg: LedgerSettings) -> "LedgerClient | None":
        url = os.getenv(cfg.base_url_env, "")
        if not cfg.enabled or not url:
            return None
        return cls(url, timeout=cfg.timeout_seconds, retries=cfg.retries, retry_delay=cfg.retry_delay)

    def _post_once(self, path: str, payload: dict) -> dict:
        try:
            r = self.session.post(f"{self.base_url}{path}", json=payload, timeout=self.timeout)
        except (requests.ConnectionError, requests.Timeout) as e:
            raise Retryable(f"ledger unreachable: {e}") from e
        if r.status_code >= 500:
            raise Retryable(f"ledger returned {r.status_code}")
        if r.status_code >= 400:
            raise LedgerFailure(f"ledger rejected {path}: {r.status_code} {r.text}", r.status_code)
        return r.json()

    def record_transaction(self, amount: float, currency: str, source: str, destination: str,
                           reference: str, description: str) -> LedgerTransaction:
        payload = {
            "amount": amount,
            "currency": currency,
            "source": source,
            "destination": destination,
            "reference": reference,
            "description": description,
        }
        try:
            data = self._post("/transactions", payload)
        except Retryable as e:
            raise LedgerFailure(str(e)) from e
        tx = LedgerTransaction.model_validate(data)
        logger.info(f"Ledger transaction {tx.transaction_id} ({tx.status}) for reference {reference}")
        return tx
