"""Credential loading helpers for the MCS balance exporter."""

from __future__ import annotations

import os
import re
from typing import Mapping

import keyring
from keyring.errors import KeyringError

from mcs_client.auth import Credentials
from utils.config import ConfigError

DEFAULT_SERVICE_NAME = "mcs-exporter"
DEFAULT_LOGIN_ENV = "MCS_LOGIN"
DEFAULT_PASSWORD_ENV = "MCS_PASSWORD"
DEFAULT_LOGIN_USERNAME = "login"
DEFAULT_PASSWORD_USERNAME = "password"
_ENV_PATTERN = re.compile(r"^\$\{([A-Z0-9_]+)\}$")


def load_credentials(
    service_name: str = DEFAULT_SERVICE_NAME,
    config: Mapping[str, object] | None = None,
    *,
    login_env: str = DEFAULT_LOGIN_ENV,
    password_env: str = DEFAULT_PASSWORD_ENV,
    use_keyring: bool = True,
) -> Credentials:
    """Load MCS credentials from config, env vars, or keyring in order."""
    # Logins are stripped; passwords are used exactly as stored, whatever the
    # source.
    login = _resolve_value(config, "login")
    password = _resolve_value(config, "password", strip=False)

    if not login:
        login = _clean_value(os.getenv(login_env))
    if not password:
        password = _clean_value(os.getenv(password_env), strip=False)

    if use_keyring and not login:
        login = _get_keyring_value(service_name, DEFAULT_LOGIN_USERNAME)
    if use_keyring and not password:
        password = _get_keyring_value(
            service_name, DEFAULT_PASSWORD_USERNAME, strip=False
        )

    if not login:
        raise ConfigError(f'environment "{login_env}" is not set')
    if not password:
        raise ConfigError(f'environment "{password_env}" is not set')

    return Credentials(login=login, password=password)


def store_credentials(
    service_name: str,
    login: str,
    password: str,
) -> None:
    """Store MCS credentials in the OS keychain via keyring."""
    login_value = _clean_value(login)
    if not login_value or not password:
        raise ValueError("login and password must be non-empty strings.")
    try:
        keyring.set_password(service_name, DEFAULT_LOGIN_USERNAME, login_value)
        keyring.set_password(service_name, DEFAULT_PASSWORD_USERNAME, password)
    except KeyringError as exc:
        raise RuntimeError(
            "Failed to store credentials in the OS keychain. "
            "Ensure a keyring backend is available."
        ) from exc


def _resolve_value(
    config: Mapping[str, object] | None, key: str, *, strip: bool = True
) -> str | None:
    if not config or key not in config:
        return None
    raw = config.get(key)
    if raw is None:
        return None
    if not isinstance(raw, str):
        raw = str(raw)
    match = _ENV_PATTERN.match(raw.strip())
    if match:
        return _clean_value(os.getenv(match.group(1)), strip=strip)
    return _clean_value(raw, strip=strip)


def _clean_value(value: str | None, *, strip: bool = True) -> str | None:
    if value is None:
        return None
    candidate = value.strip() if strip else value
    return candidate or None


def _get_keyring_value(
    service_name: str, username: str, *, strip: bool = True
) -> str | None:
    try:
        return _clean_value(keyring.get_password(service_name, username), strip=strip)
    except KeyringError as exc:
        raise RuntimeError(
            "Failed to access the OS keychain. "
            "Ensure a keyring backend is available."
        ) from exc
