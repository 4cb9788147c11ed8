"""
In-process medical records ledger.

Every call, read or write, runs under one re-entrant lock, so the
check-then-insert on record ids and the index assignment on append can never
interleave with another caller. Each write validates fully before it touches
state: a call either commits (one block, its events, a receipt) or raises a
:class:`~medledger.errors.LedgerError` and leaves state untouched.
"""
from __future__ import annotations

import functools
import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

from medledger.errors import (
    AlreadyExistsError,
    InvalidArgumentError,
    InvalidStateError,
    LedgerError,
    OutOfRangeError,
)
from medledger.events import EventLog, EventType, LedgerEvent
from medledger.gate import AuthorizationGate
from medledger.identifiers import is_zero_address, normalize_address, transaction_hash
from medledger.models import LedgerState, Receipt, Record
from medledger.storage import LedgerStorage

logger = logging.getLogger(__name__)


def _write(operation: str):
    def deco(fn):
        @functools.wraps(fn)
        def wrapper(self, caller, *args, **kwargs):
            try:
                return fn(self, caller, *args, **kwargs)
            except LedgerError as e:
                logger.warning("Rejected %s from %s: %s (%s)", operation, caller, e.user_message, e.code)
                raise
        return wrapper
    return deco


def _text(value: Any, field: str, *, required: bool = False) -> str:
    if value is None:
        value = ""
    if not isinstance(value, str):
        raise InvalidArgumentError(f"{field} must be a string.", field=field)
    if required and not value:
        raise InvalidArgumentError(f"{field} cannot be empty.", field=field)
    return value


class MedicalRecordsLedger:
    def __init__(
        self,
        owner: str,
        *,
        registry_address: Optional[str] = None,
        clock: Optional[Callable[[], float]] = None,
        keep_events: int = 10_000,
    ):
        owner = normalize_address(owner, field="owner")
        if is_zero_address(owner):
            raise InvalidArgumentError("Owner cannot be the zero address.")
        self.state = LedgerState(owner=owner)
        if registry_address:
            self.state.registry_address = normalize_address(registry_address, field="registry")
        self.storage = LedgerStorage(self.state)
        self.gate = AuthorizationGate(self.state)
        self.events = EventLog(keep=keep_events)
        self._clock = clock or time.time
        self._lock = threading.RLock()

    # ---- internals ----
    def _pending(self, caller: str, operation: str, *args: Any) -> Tuple[int, int, str]:
        block = self.state.block_number + 1
        return block, int(self._clock()), transaction_hash(block, caller, operation, args)

    def _commit(
        self,
        pending: Tuple[int, int, str],
        caller: str,
        operation: str,
        emitted: List[Tuple[EventType, Tuple[str, ...], Dict[str, Any]]],
    ) -> Receipt:
        block, ts, tx = pending
        self.state.block_number = block
        events = [
            LedgerEvent(event_type=et, block_number=block, tx_hash=tx, timestamp=ts, addresses=addrs, payload=payload)
            for et, addrs, payload in emitted
        ]
        logger.info("Block %s: %s by %s (tx %s)", block, operation, caller, tx)
        self.events.publish(events)
        return Receipt(
            tx_hash=tx,
            block_number=block,
            timestamp=ts,
            caller=caller,
            operation=operation,
            events=[e.to_dict() for e in events],
        )

    def _check_index(self, address: str, index: Any) -> int:
        if isinstance(index, bool) or not isinstance(index, int):
            raise InvalidArgumentError("Record index must be an integer.", index=str(index))
        count = self.storage.count(address)
        if index < 0 or index >= count:
            raise OutOfRangeError("Record index out of bounds.", index=index, count=count)
        return index

    # ---- authorization gate ----
    @_write("authorize")
    def authorize(self, caller: str, patient: str) -> Receipt:
        caller = normalize_address(caller, field="caller")
        patient = normalize_address(patient, field="patient")
        with self._lock:
            self.gate.authorize(caller, patient)
            pending = self._pending(caller, "authorize", patient)
            return self._commit(pending, caller, "authorize", [
                (EventType.PATIENT_AUTHORIZED, (patient,),
                 {"patient": patient, "authorized": True, "timestamp": pending[1]}),
            ])

    @_write("deauthorize")
    def deauthorize(self, caller: str, patient: str) -> Receipt:
        caller = normalize_address(caller, field="caller")
        patient = normalize_address(patient, field="patient")
        with self._lock:
            self.gate.deauthorize(caller, patient)
            pending = self._pending(caller, "deauthorize", patient)
            return self._commit(pending, caller, "deauthorize", [
                (EventType.PATIENT_DEAUTHORIZED, (patient,),
                 {"patient": patient, "authorized": False, "timestamp": pending[1]}),
            ])

    @_write("transfer_ownership")
    def transfer_ownership(self, caller: str, new_owner: str) -> Receipt:
        caller = normalize_address(caller, field="caller")
        new_owner = normalize_address(new_owner, field="new_owner")
        with self._lock:
            previous = self.gate.transfer_ownership(caller, new_owner)
            pending = self._pending(caller, "transfer_ownership", new_owner)
            return self._commit(pending, caller, "transfer_ownership", [
                (EventType.OWNERSHIP_TRANSFERRED, (previous, new_owner),
                 {"previous_owner": previous, "new_owner": new_owner, "timestamp": pending[1]}),
            ])

    @_write("link_registry")
    def link_registry(self, caller: str, registry: str) -> Receipt:
        caller = normalize_address(caller, field="caller")
        registry = normalize_address(registry, field="registry")
        with self._lock:
            linked = self.gate.link_registry(caller, registry)
            pending = self._pending(caller, "link_registry", registry)
            return self._commit(pending, caller, "link_registry", [
                (EventType.REGISTRY_LINKED, (), {"registry": linked, "timestamp": pending[1]}),
            ])

    def is_authorized(self, address: str) -> bool:
        address = normalize_address(address)
        with self._lock:
            return self.gate.is_authorized(address)

    def am_i_authorized(self, caller: str) -> bool:
        return self.is_authorized(caller)

    @property
    def owner(self) -> str:
        with self._lock:
            return self.state.owner

    @property
    def registry_address(self) -> Optional[str]:
        with self._lock:
            return self.state.registry_address

    @property
    def block_number(self) -> int:
        with self._lock:
            return self.state.block_number

    # ---- record lifecycle ----
    @_write("add_record")
    def add_record(
        self,
        caller: str,
        record_id: str,
        data_hash: str,
        record_type: str = "",
        metadata: str = "",
    ) -> Receipt:
        caller = normalize_address(caller, field="caller")
        with self._lock:
            self.gate.require_writer(caller, "add_record")
            record_id = _text(record_id, "record_id", required=True)
            data_hash = _text(data_hash, "data_hash", required=True)
            record_type = _text(record_type, "record_type")
            metadata = _text(metadata, "metadata")
            if self.storage.has_record_id(record_id):
                raise AlreadyExistsError("Record ID already exists.", record_id=record_id)

            pending = self._pending(caller, "add_record", record_id, data_hash, record_type, metadata)
            index = self.storage.append(caller, Record(
                record_id=record_id,
                data_hash=data_hash,
                record_type=record_type,
                timestamp=pending[1],
                uploaded_by=caller,
                is_active=True,
                metadata=metadata,
            ))
            return self._commit(pending, caller, "add_record", [
                (EventType.RECORD_ADDED, (caller,), {
                    "patient": caller,
                    "record_id": record_id,
                    "record_type": record_type,
                    "index": index,
                    "timestamp": pending[1],
                    "uploaded_by": caller,
                }),
            ])

    @_write("update_record")
    def update_record(self, caller: str, index: int, data_hash: str, metadata: str = "") -> Receipt:
        caller = normalize_address(caller, field="caller")
        with self._lock:
            self.gate.require_writer(caller, "update_record")
            index = self._check_index(caller, index)
            record = self.storage.get(caller, index)
            if not record.is_active:
                raise InvalidStateError("Record is not active.", record_id=record.record_id, index=index)
            data_hash = _text(data_hash, "data_hash", required=True)
            metadata = _text(metadata, "metadata")

            pending = self._pending(caller, "update_record", index, data_hash, metadata)
            # creation timestamp is kept; the event carries the update time
            record.data_hash = data_hash
            record.metadata = metadata
            return self._commit(pending, caller, "update_record", [
                (EventType.RECORD_UPDATED, (caller,), {
                    "patient": caller,
                    "record_id": record.record_id,
                    "index": index,
                    "timestamp": pending[1],
                }),
            ])

    @_write("deactivate_record")
    def deactivate_record(self, caller: str, index: int) -> Receipt:
        caller = normalize_address(caller, field="caller")
        with self._lock:
            self.gate.require_writer(caller, "deactivate_record")
            index = self._check_index(caller, index)
            record = self.storage.get(caller, index)
            if not record.is_active:
                raise InvalidStateError("Record already deactivated.", record_id=record.record_id, index=index)

            pending = self._pending(caller, "deactivate_record", index)
            record.is_active = False
            return self._commit(pending, caller, "deactivate_record", [
                (EventType.RECORD_DEACTIVATED, (caller,), {
                    "patient": caller,
                    "record_id": record.record_id,
                    "index": index,
                    "timestamp": pending[1],
                }),
            ])

    def get_record(self, caller: str, owner_address: str, index: int) -> Record:
        caller = normalize_address(caller, field="caller")
        owner_address = normalize_address(owner_address, field="patient")
        with self._lock:
            self.gate.require_reader(caller, owner_address)
            index = self._check_index(owner_address, index)
            return self.storage.snapshot(owner_address, index)

    def get_record_ids(self, caller: str, owner_address: str) -> List[str]:
        caller = normalize_address(caller, field="caller")
        owner_address = normalize_address(owner_address, field="patient")
        with self._lock:
            self.gate.require_reader(caller, owner_address)
            return self.storage.active_ids(owner_address)

    def get_record_stats(self, caller: str, owner_address: str) -> Dict[str, Any]:
        """Active-record totals for one address, grouped by record type."""
        caller = normalize_address(caller, field="caller")
        owner_address = normalize_address(owner_address, field="patient")
        with self._lock:
            self.gate.require_reader(caller, owner_address)
            by_type = self.storage.active_by_type(owner_address)
            return {"total_records": sum(by_type.values()), "records_by_type": by_type}

    def get_record_count(self, address: str) -> int:
        address = normalize_address(address)
        with self._lock:
            return self.storage.count(address)

    def get_my_record_count(self, caller: str) -> int:
        return self.get_record_count(caller)

    def get_total_records(self) -> int:
        with self._lock:
            return self.state.total_records

    # ---- events ----
    def get_events(
        self,
        *,
        event_type: Optional[EventType] = None,
        address: Optional[str] = None,
        from_block: int = 0,
    ) -> List[LedgerEvent]:
        if address is not None:
            address = normalize_address(address)
        return self.events.query(event_type=event_type, address=address, from_block=from_block)

    def subscribe(self, handler: Callable[[LedgerEvent], None], event_type: Optional[EventType] = None) -> Callable[[], None]:
        return self.events.subscribe(handler, event_type)
