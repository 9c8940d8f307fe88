"""Configuration loader for the memcached cache facade."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Tuple

import yaml
from jsonschema import Draft7Validator

from .errors import ConfigurationInvalid
from .expiry import DEFAULT_EXPIRE
from .store import ServerDescriptor, parse_server_list

DEFAULT_SERVER_LIST = "127.0.0.1:11211"

CONFIG_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "properties": {
        "server_list": {"type": "string"},
        "active": {"type": "boolean"},
        "default_expire": {"type": "integer", "minimum": 0},
        "connect_timeout": {"type": "number", "exclusiveMinimum": 0},
        "timeout": {"type": "number", "exclusiveMinimum": 0},
    },
    "additionalProperties": False,
}

_validator = Draft7Validator(CONFIG_SCHEMA)


def validate_config(data: Dict[str, Any]) -> None:
    errors = sorted(_validator.iter_errors(data), key=lambda e: list(e.path))
    if errors:
        messages = ", ".join(error.message for error in errors)
        raise ConfigurationInvalid(f"cache config validation failed: {messages}")


@dataclass(frozen=True)
class CacheConfig:
    server_list: str
    active: bool
    default_expire: int
    connect_timeout: float
    timeout: float
    servers: Tuple[ServerDescriptor, ...]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheConfig":
        validate_config(data)
        server_list = data.get("server_list", DEFAULT_SERVER_LIST)
        return cls(
            server_list=server_list,
            active=bool(data.get("active", False)),
            default_expire=int(data.get("default_expire", DEFAULT_EXPIRE)),
            connect_timeout=float(data.get("connect_timeout", 1.0)),
            timeout=float(data.get("timeout", 1.0)),
            servers=tuple(parse_server_list(server_list)),
        )


ENV_MAP = {
    "server_list": "CACHE_SERVER_LIST",
    "active": "CACHE_ACTIVE",
    "default_expire": "CACHE_DEFAULT_EXPIRE",
    "connect_timeout": "CACHE_CONNECT_TIMEOUT",
    "timeout": "CACHE_TIMEOUT",
}

_TRUTHY = {"1", "true", "yes", "on"}


def load_yaml(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def merge_env_overrides(config_data: Dict[str, Any]) -> Dict[str, Any]:
    merged = json.loads(json.dumps(config_data))  # deep copy via json

    for key, env_name in ENV_MAP.items():
        if env_name not in os.environ:
            continue
        value: Any = os.environ[env_name]
        if key == "active":
            value = value.strip().lower() in _TRUTHY
        elif key == "default_expire":
            value = int(value)
        elif key in {"connect_timeout", "timeout"}:
            value = float(value)
        elif key == "server_list":
            # env form: comma-separated servers
            value = value.replace(",", "\n")
        merged[key] = value

    return merged


def load_config(config_path: str | Path = "config/cache.yml") -> CacheConfig:
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    data = load_yaml(path)
    data = merge_env_overrides(data)
    return CacheConfig.from_dict(data)
