"""
Address and hash helpers shared by the ledger and the HTTP layer.

Addresses are normalized to their EIP-55 checksum form so that the same
account spelled in different cases maps to one ledger key.
"""
from __future__ import annotations

import secrets
import time
from typing import Any, Iterable, Optional

from web3 import Web3
from web3.constants import ADDRESS_ZERO

from medledger.errors import InvalidArgumentError

ZERO_ADDRESS = Web3.to_checksum_address(ADDRESS_ZERO)


def normalize_address(value: Any, *, field: str = "address") -> str:
    if not isinstance(value, str) or not Web3.is_address(value):
        raise InvalidArgumentError(f"Invalid {field} format.", field=field, value=str(value))
    return Web3.to_checksum_address(value)


def is_zero_address(address: str) -> bool:
    return normalize_address(address) == ZERO_ADDRESS


def new_record_id(now: Optional[float] = None) -> str:
    # REC-<millis>-<8 hex>
    millis = int((time.time() if now is None else now) * 1000)
    return f"REC-{millis}-{secrets.token_hex(4).upper()}"


def transaction_hash(block_number: int, caller: str, operation: str, args: Iterable[Any]) -> str:
    parts = [str(block_number), caller, operation] + [str(a) for a in args]
    return Web3.to_hex(Web3.keccak(text="|".join(parts)))
