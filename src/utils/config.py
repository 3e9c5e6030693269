"""Configuration loading and validation for the MCS balance exporter."""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Mapping

DEFAULT_LISTEN_ADDRESS = "0.0.0.0:9601"
DEFAULT_INTERVAL = 300.0
DEFAULT_RETRY_INTERVAL = 10.0
DEFAULT_RETRY_LIMIT = 10
DEFAULT_REQUEST_TIMEOUT = 2.0
DEFAULT_BASE_URL = "https://mcs.mail.ru"

_ALIASES = {
    "listen-address": "listen_address",
    "interval_sec": "interval",
    "retry-interval": "retry_interval",
    "retry_interval_sec": "retry_interval",
    "retry-limit": "retry_limit",
    "request_timeout_sec": "request_timeout",
    "timeout": "request_timeout",
}


class ConfigError(ValueError):
    """Raised when the exporter configuration is missing or invalid."""


@dataclass(frozen=True)
class ExporterConfig:
    host: str = "0.0.0.0"
    port: int = 9601
    interval: float = DEFAULT_INTERVAL
    retry_interval: float = DEFAULT_RETRY_INTERVAL
    retry_limit: int = DEFAULT_RETRY_LIMIT
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    base_url: str = DEFAULT_BASE_URL
    index_path: Path | None = None
    require_initial_auth: bool = False
    reauth_on_unauthorized: bool = False

    @property
    def listen_address(self) -> str:
        return f"{self.host}:{self.port}"

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> "ExporterConfig":
        normalized = normalize_exporter_config(config)
        validate_exporter_config(normalized)
        host, port = parse_listen_address(
            str(normalized.get("listen_address", DEFAULT_LISTEN_ADDRESS))
        )
        index_path = normalized.get("index_path")
        return cls(
            host=host,
            port=port,
            interval=float(normalized.get("interval", DEFAULT_INTERVAL)),
            retry_interval=float(
                normalized.get("retry_interval", DEFAULT_RETRY_INTERVAL)
            ),
            retry_limit=int(normalized.get("retry_limit", DEFAULT_RETRY_LIMIT)),
            request_timeout=float(
                normalized.get("request_timeout", DEFAULT_REQUEST_TIMEOUT)
            ),
            base_url=str(normalized.get("base_url", DEFAULT_BASE_URL)),
            index_path=Path(index_path).expanduser() if index_path else None,
            require_initial_auth=bool(normalized.get("require_initial_auth", False)),
            reauth_on_unauthorized=bool(
                normalized.get("reauth_on_unauthorized", False)
            ),
        )


def normalize_exporter_config(config: Mapping[str, Any]) -> dict[str, Any]:
    normalized = dict(config)
    for alias, name in _ALIASES.items():
        if name not in normalized and alias in normalized:
            normalized[name] = normalized.pop(alias)
    return {key: value for key, value in normalized.items() if value is not None}


def parse_listen_address(address: str) -> tuple[str, int]:
    """Split ``host:port`` (or ``[ipv6]:port``) into its parts."""
    candidate = address.strip()
    match = re.match(r"^\[(?P<host>[^\]]+)\]:(?P<port>\d+)$", candidate) or re.match(
        r"^(?P<host>[^:]*):(?P<port>\d+)$", candidate
    )
    if not match:
        raise ConfigError(
            f"listen_address must look like host:port, got: {address!r}"
        )
    port = int(match.group("port"))
    if not 0 < port < 65536:
        raise ConfigError(f"listen_address port out of range: {port}")
    return match.group("host") or "0.0.0.0", port


def validate_positive_decimal(
    config: Mapping[str, Any], field: str, *, required: bool = False
) -> None:
    """Validate that a field is a positive number."""
    if field not in config:
        if required:
            raise ConfigError(f"Missing required field: {field}")
        return

    value = config[field]
    if isinstance(value, bool):
        raise ConfigError(f"{field} must be a valid number, got: {value}")
    try:
        decimal_value = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise ConfigError(f"{field} must be a valid number, got: {value}") from exc

    if not decimal_value.is_finite() or decimal_value <= 0:
        raise ConfigError(f"{field} must be positive, got: {value}")


def validate_positive_integer(
    config: Mapping[str, Any], field: str, *, required: bool = False, minimum: int = 1
) -> None:
    """Validate that a field is a positive integer."""
    if field not in config:
        if required:
            raise ConfigError(f"Missing required field: {field}")
        return

    value = config[field]
    if not isinstance(value, int) or isinstance(value, bool):
        raise ConfigError(f"{field} must be an integer, got: {type(value).__name__}")

    if value < minimum:
        raise ConfigError(f"{field} must be >= {minimum}, got: {value}")


def validate_flag(config: Mapping[str, Any], field: str) -> None:
    if field in config and not isinstance(config[field], bool):
        raise ConfigError(
            f"{field} must be true or false, got: {type(config[field]).__name__}"
        )


def validate_url(config: Mapping[str, Any], field: str = "base_url") -> None:
    """Validate that a URL field is properly formatted."""
    if field not in config:
        return

    url = config[field]
    if not isinstance(url, str) or not url.strip():
        raise ConfigError(f"{field} must be a non-empty string")

    if not re.match(r"^https?://", url, re.IGNORECASE):
        raise ConfigError(f"{field} must start with http:// or https://, got: {url}")


def validate_exporter_config(config: Mapping[str, Any]) -> None:
    validate_positive_decimal(config, "interval")
    validate_positive_decimal(config, "retry_interval")
    validate_positive_decimal(config, "request_timeout")
    validate_positive_integer(config, "retry_limit")
    validate_flag(config, "require_initial_auth")
    validate_flag(config, "reauth_on_unauthorized")
    validate_url(config)
    if "listen_address" in config and not isinstance(config["listen_address"], str):
        raise ConfigError("listen_address must be a string like host:port")
