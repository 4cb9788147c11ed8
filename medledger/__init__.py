"""Ownership-gated medical records ledger with a Flask JSON API."""

from medledger.errors import (
    AlreadyExistsError,
    InvalidArgumentError,
    InvalidStateError,
    LedgerError,
    OutOfRangeError,
    UnauthorizedError,
)
from medledger.ledger import MedicalRecordsLedger
from medledger.models import Receipt, Record

__version__ = "0.1.0"

__all__ = [
    "AlreadyExistsError",
    "InvalidArgumentError",
    "InvalidStateError",
    "LedgerError",
    "MedicalRecordsLedger",
    "OutOfRangeError",
    "Receipt",
    "Record",
    "UnauthorizedError",
]
