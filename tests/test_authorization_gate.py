from __future__ import annotations

import pytest

from medledger.errors import InvalidArgumentError, UnauthorizedError
from medledger.events import EventType
from medledger.identifiers import ZERO_ADDRESS

from tests.conftest import OTHER, OWNER, PATIENT, STRANGER


def test_owner_is_implicitly_authorized(ledger):
    assert ledger.is_authorized(OWNER) is True
    assert ledger.am_i_authorized(OWNER) is True
    assert ledger.is_authorized(PATIENT) is False


def test_owner_authorizes_and_deauthorizes(ledger):
    r = ledger.authorize(OWNER, PATIENT)
    assert ledger.is_authorized(PATIENT) is True
    assert r.events[0]["event"] == "PatientAuthorized"
    assert r.events[0]["args"] == {"patient": PATIENT, "authorized": True, "timestamp": r.timestamp}

    r = ledger.deauthorize(OWNER, PATIENT)
    assert ledger.is_authorized(PATIENT) is False
    assert r.events[0]["event"] == "PatientDeauthorized"
    assert r.events[0]["args"]["authorized"] is False


def test_non_owner_cannot_authorize_and_state_is_unchanged(ledger):
    block = ledger.block_number
    with pytest.raises(UnauthorizedError):
        ledger.authorize(STRANGER, PATIENT)
    assert ledger.is_authorized(PATIENT) is False
    assert ledger.block_number == block
    assert ledger.get_events() == []


def test_authorized_patient_cannot_authorize_others(authorized_ledger):
    with pytest.raises(UnauthorizedError):
        authorized_ledger.authorize(PATIENT, STRANGER)
    with pytest.raises(UnauthorizedError):
        authorized_ledger.deauthorize(PATIENT, OTHER)
    assert authorized_ledger.is_authorized(OTHER) is True


def test_authorize_zero_address_rejected(ledger):
    with pytest.raises(InvalidArgumentError):
        ledger.authorize(OWNER, ZERO_ADDRESS)


def test_malformed_address_rejected(ledger):
    with pytest.raises(InvalidArgumentError):
        ledger.authorize(OWNER, "0x1234")
    with pytest.raises(InvalidArgumentError):
        ledger.is_authorized("not-an-address")


def test_addresses_are_case_insensitive(ledger):
    ledger.authorize(OWNER.lower(), PATIENT.lower())
    assert ledger.is_authorized(PATIENT) is True
    assert ledger.is_authorized(PATIENT.upper().replace("0X", "0x")) is True


def test_transfer_ownership_moves_privileges(ledger):
    r = ledger.transfer_ownership(OWNER, OTHER)
    assert ledger.owner == OTHER
    assert r.events[0]["event"] == "OwnershipTransferred"
    assert r.events[0]["args"]["previous_owner"] == OWNER

    with pytest.raises(UnauthorizedError):
        ledger.authorize(OWNER, PATIENT)
    assert ledger.is_authorized(OWNER) is False

    ledger.authorize(OTHER, PATIENT)
    assert ledger.is_authorized(PATIENT) is True


def test_transfer_ownership_checks(ledger):
    with pytest.raises(UnauthorizedError):
        ledger.transfer_ownership(PATIENT, PATIENT)
    with pytest.raises(InvalidArgumentError):
        ledger.transfer_ownership(OWNER, ZERO_ADDRESS)
    assert ledger.owner == OWNER


def test_link_registry_is_owner_only_and_clearable(ledger):
    with pytest.raises(UnauthorizedError):
        ledger.link_registry(PATIENT, OTHER)
    assert ledger.registry_address is None

    ledger.link_registry(OWNER, STRANGER.lower())
    assert ledger.registry_address == STRANGER

    ledger.link_registry(OWNER, ZERO_ADDRESS)
    assert ledger.registry_address is None
    assert [e.event_type for e in ledger.get_events()] == [EventType.REGISTRY_LINKED] * 2
