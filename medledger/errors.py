from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass
class LedgerError(Exception):
    code: str
    user_message: str
    http_status: int = 400
    context: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(self.user_message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.user_message,
            "context": dict(self.context or {}),
        }


class UnauthorizedError(LedgerError):
    def __init__(self, user_message: str = "Caller is not allowed to perform this action.", **ctx: Any):
        super().__init__("unauthorized", user_message, http_status=403, context=ctx)


class InvalidArgumentError(LedgerError):
    def __init__(self, user_message: str = "Invalid argument.", **ctx: Any):
        super().__init__("invalid_argument", user_message, http_status=400, context=ctx)


class AlreadyExistsError(LedgerError):
    def __init__(self, user_message: str = "Record ID already exists.", **ctx: Any):
        super().__init__("already_exists", user_message, http_status=409, context=ctx)


class OutOfRangeError(LedgerError):
    def __init__(self, user_message: str = "Record index out of range.", **ctx: Any):
        super().__init__("out_of_range", user_message, http_status=404, context=ctx)


class InvalidStateError(LedgerError):
    def __init__(self, user_message: str = "Record is not active.", **ctx: Any):
        super().__init__("invalid_state", user_message, http_status=409, context=ctx)


class ConfigError(RuntimeError):
    pass
