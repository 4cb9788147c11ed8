from __future__ import annotations

import json
import os
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from medledger.errors import ConfigError, InvalidArgumentError
from medledger.identifiers import normalize_address

CONFIG_ENV_VAR = "MEDLEDGER_CONFIG"

# env var -> config field
ENV_OVERRIDES: Dict[str, str] = {
    "MEDLEDGER_OWNER": "owner_address",
    "MEDLEDGER_REGISTRY": "registry_address",
    "MEDLEDGER_HOST": "bind_host",
    "MEDLEDGER_PORT": "port",
    "MEDLEDGER_DEBUG": "debug",
    "MEDLEDGER_LOG_DIR": "log_dir",
    "MEDLEDGER_KEEP_EVENTS": "keep_events",
}


class LedgerConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    owner_address: str
    registry_address: Optional[str] = None
    bind_host: str = "127.0.0.1"
    port: int = Field(default=5000, ge=1, le=65535)
    debug: bool = False
    log_dir: str = "logs"
    keep_events: int = Field(default=10_000, ge=0)

    @field_validator("owner_address")
    @classmethod
    def _owner(cls, v: str) -> str:
        if not v:
            raise ValueError("owner_address is required")
        return _checked_address(v)

    @field_validator("registry_address")
    @classmethod
    def _registry(cls, v: Optional[str]) -> Optional[str]:
        if not v:
            return None
        return _checked_address(v)


def _checked_address(value: str) -> str:
    try:
        return normalize_address(value)
    except InvalidArgumentError as e:
        raise ValueError(e.user_message) from e


def _read_json(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            obj = json.load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Config file not found: {path}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Config file is not valid JSON: {path} ({e})") from e
    if not isinstance(obj, dict):
        raise ConfigError(f"Config file must hold a JSON object: {path}")
    return obj


def load_config(path: Optional[str] = None, *, env: Optional[Dict[str, str]] = None, **overrides: Any) -> LedgerConfig:
    """
    Build the service config from, in increasing precedence: the JSON file at
    ``path`` (or ``$MEDLEDGER_CONFIG``), ``MEDLEDGER_*`` environment variables,
    and keyword overrides.
    """
    env = os.environ if env is None else env
    raw: Dict[str, Any] = {}
    path = path or env.get(CONFIG_ENV_VAR)
    if path:
        raw.update(_read_json(path))
    for var, key in ENV_OVERRIDES.items():
        if env.get(var) not in (None, ""):
            raw[key] = env[var]
    raw.update({k: v for k, v in overrides.items() if v is not None})
    if not raw.get("owner_address"):
        raise ConfigError("owner_address is required (set MEDLEDGER_OWNER or add it to the config file).")
    try:
        return LedgerConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
