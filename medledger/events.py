from __future__ import annotations

import collections
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Deque, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    RECORD_ADDED = "RecordAdded"
    RECORD_UPDATED = "RecordUpdated"
    RECORD_DEACTIVATED = "RecordDeactivated"
    PATIENT_AUTHORIZED = "PatientAuthorized"
    PATIENT_DEAUTHORIZED = "PatientDeauthorized"
    OWNERSHIP_TRANSFERRED = "OwnershipTransferred"
    REGISTRY_LINKED = "RegistryLinked"


class LedgerEvent(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    event_type: EventType
    block_number: int
    tx_hash: str
    timestamp: int
    # addresses the event is about, used for filtering
    addresses: Tuple[str, ...] = ()
    payload: Dict[str, Any] = Field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": self.event_type.value,
            "block": self.block_number,
            "tx": self.tx_hash,
            "timestamp": self.timestamp,
            "args": dict(self.payload),
        }


@dataclass
class _Sub:
    handler: Callable[[LedgerEvent], None]
    event_type: Optional[EventType]


class EventLog:
    """
    Append-only log of committed ledger events.

    - events are appended in commit order and never rewritten
    - subscribers run synchronously, in commit order, after the state change
    - a failing subscriber is logged and skipped; the commit stands
    """

    def __init__(self, *, keep: int = 10_000):
        self._lock = threading.Lock()
        self._events: Deque[LedgerEvent] = collections.deque(maxlen=keep if keep > 0 else None)
        self._subs: List[_Sub] = []

    def subscribe(self, handler: Callable[[LedgerEvent], None], event_type: Optional[EventType] = None) -> Callable[[], None]:
        sub = _Sub(handler=handler, event_type=EventType(event_type) if event_type is not None else None)
        with self._lock:
            self._subs.append(sub)

        def _unsubscribe() -> None:
            with self._lock:
                if sub in self._subs:
                    self._subs.remove(sub)

        return _unsubscribe

    def publish(self, events: List[LedgerEvent]) -> None:
        with self._lock:
            self._events.extend(events)
            subs = list(self._subs)
        for ev in events:
            for sub in subs:
                if sub.event_type is not None and sub.event_type != ev.event_type:
                    continue
                try:
                    sub.handler(ev)
                except Exception:
                    logger.exception("Event subscriber failed for %s at block %s", ev.event_type.value, ev.block_number)

    def query(
        self,
        *,
        event_type: Optional[EventType] = None,
        address: Optional[str] = None,
        from_block: int = 0,
    ) -> List[LedgerEvent]:
        with self._lock:
            events = list(self._events)
        out: List[LedgerEvent] = []
        for ev in events:
            if ev.block_number < from_block:
                continue
            if event_type is not None and ev.event_type != EventType(event_type):
                continue
            if address is not None and address not in ev.addresses:
                continue
            out.append(ev)
        return out

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
