## ward_capacity/errors.py

from __future__ import annotations


class CapacityError(Exception):
    """Base class for capacity signaling errors."""


class StoreUnavailable(CapacityError):
    """The event store could not be reached or the query failed."""


class LedgerFailure(CapacityError):
    """The ledger rejected or could not accept a transaction."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ConfigError(CapacityError):
    pass
