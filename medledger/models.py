from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Record(BaseModel):
    model_config = ConfigDict(extra="forbid")

    record_id: str
    data_hash: str
    record_type: str = ""
    timestamp: int
    uploaded_by: str
    is_active: bool = True
    metadata: str = ""


class LedgerState(BaseModel):
    """Contract-level singleton state, owned by one ledger instance."""

    model_config = ConfigDict(extra="forbid")

    owner: str
    registry_address: Optional[str] = None
    total_records: int = 0
    block_number: int = 0


class Receipt(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    tx_hash: str
    block_number: int
    timestamp: int
    caller: str
    operation: str
    events: List[Dict[str, Any]] = Field(default_factory=list)
