from __future__ import annotations

import itertools

import pytest

from medledger.api import create_app
from medledger.config import LedgerConfig
from medledger.identifiers import normalize_address
from medledger.ledger import MedicalRecordsLedger

OWNER = normalize_address("0x" + "a1" * 20)
PATIENT = normalize_address("0x" + "b2" * 20)
OTHER = normalize_address("0x" + "c3" * 20)
STRANGER = normalize_address("0x" + "d4" * 20)


class FakeClock:
    """Starts at a fixed epoch and advances one second per reading."""

    def __init__(self, start: int = 1_700_000_000):
        self._ticks = itertools.count(start)
        self.last = start - 1

    def __call__(self) -> float:
        self.last = next(self._ticks)
        return float(self.last)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def ledger(clock):
    return MedicalRecordsLedger(OWNER, clock=clock)


@pytest.fixture
def authorized_ledger(ledger):
    ledger.authorize(OWNER, PATIENT)
    ledger.authorize(OWNER, OTHER)
    return ledger


@pytest.fixture
def app(ledger):
    app = create_app(LedgerConfig(owner_address=OWNER), ledger=ledger)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()
