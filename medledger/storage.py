from __future__ import annotations

from collections import Counter
from typing import Dict, List, Set

from medledger.models import LedgerState, Record


class LedgerStorage:
    """
    Per-address append-only record arrays plus the global record-id index.

    Not thread-safe on its own; the owning ledger serializes every call.
    """

    def __init__(self, state: LedgerState):
        self.state = state
        self._records: Dict[str, List[Record]] = {}
        self._used_ids: Set[str] = set()

    def count(self, address: str) -> int:
        return len(self._records.get(address, ()))

    def has_record_id(self, record_id: str) -> bool:
        return record_id in self._used_ids

    def append(self, address: str, record: Record) -> int:
        if record.record_id in self._used_ids:
            raise ValueError(f"duplicate record id {record.record_id!r}")
        seq = self._records.setdefault(address, [])
        index = len(seq)
        seq.append(record)
        self._used_ids.add(record.record_id)
        self.state.total_records += 1
        return index

    def get(self, address: str, index: int) -> Record:
        return self._records[address][index]

    def snapshot(self, address: str, index: int) -> Record:
        return self.get(address, index).model_copy()

    def active_ids(self, address: str) -> List[str]:
        # creation order
        return [r.record_id for r in self._records.get(address, []) if r.is_active]

    def active_by_type(self, address: str) -> Dict[str, int]:
        return dict(Counter(r.record_type for r in self._records.get(address, []) if r.is_active))
