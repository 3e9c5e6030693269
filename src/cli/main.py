"""CLI entry point for the MCS balance exporter."""

from __future__ import annotations

import argparse
import getpass
import importlib.util
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any

import yaml

from exporter import __version__, describe
from exporter.runner import run_exporter
from mcs_client.errors import AuthError
from utils.config import (
    DEFAULT_INTERVAL,
    DEFAULT_LISTEN_ADDRESS,
    DEFAULT_RETRY_INTERVAL,
    DEFAULT_RETRY_LIMIT,
    ConfigError,
    ExporterConfig,
)
from utils.credentials import (
    DEFAULT_LOGIN_ENV,
    DEFAULT_PASSWORD_ENV,
    DEFAULT_SERVICE_NAME,
    load_credentials,
    store_credentials,
)
from utils.logging_config import setup_logging

LOGGER = logging.getLogger("mcs_exporter.cli")

SUPPORTED_FORMATS = (".json", ".toml", ".yaml", ".yml")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="MCS balance exporter for Prometheus")
    parser.add_argument(
        "--version", action="version", version=f"mcs-exporter {__version__}"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser(
        "serve", help="Poll project balances and serve them on /metrics."
    )
    serve_parser.add_argument(
        "--config", help="Optional path to a JSON/TOML/YAML config file."
    )
    serve_parser.add_argument(
        "--listen-address",
        dest="listen_address",
        help=f"The address to listen on for HTTP requests (default: {DEFAULT_LISTEN_ADDRESS}).",
    )
    serve_parser.add_argument(
        "--interval",
        type=float,
        help=f"Interval (in seconds) for request balance (default: {DEFAULT_INTERVAL:g}).",
    )
    serve_parser.add_argument(
        "--retry-interval",
        dest="retry_interval",
        type=float,
        help=f"Interval (in seconds) for load balance when errors (default: {DEFAULT_RETRY_INTERVAL:g}).",
    )
    serve_parser.add_argument(
        "--retry-limit",
        dest="retry_limit",
        type=int,
        help=f"Count of tries when error (default: {DEFAULT_RETRY_LIMIT}).",
    )
    serve_parser.add_argument(
        "--require-initial-auth",
        dest="require_initial_auth",
        action="store_const",
        const=True,
        help="Exit at startup when the first sign-in fails.",
    )
    serve_parser.add_argument(
        "--reauth-on-unauthorized",
        dest="reauth_on_unauthorized",
        action="store_const",
        const=True,
        help="Sign in again on the next cycle after a 401/403 balance response.",
    )
    serve_parser.add_argument(
        "--service-name",
        default=DEFAULT_SERVICE_NAME,
        help=f"Keyring service name used as a credential fallback (default: {DEFAULT_SERVICE_NAME}).",
    )
    serve_parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (DEBUG, INFO, WARNING, ERROR).",
    )
    serve_parser.add_argument("--log-file", help="Optional log file path.")
    serve_parser.add_argument(
        "--structured-logs",
        action="store_true",
        help="Emit JSON log lines.",
    )
    serve_parser.set_defaults(handler=run_serve)

    store_parser = subparsers.add_parser(
        "store-credentials", help="Store MCS credentials in the OS keychain."
    )
    store_parser.add_argument(
        "--service-name",
        default=DEFAULT_SERVICE_NAME,
        help=f"Keyring service name (default: {DEFAULT_SERVICE_NAME}).",
    )
    store_parser.add_argument(
        "--login", help=f"MCS login (defaults to ${DEFAULT_LOGIN_ENV} or prompt)."
    )
    store_parser.set_defaults(handler=run_store_credentials)
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if hasattr(args, "handler"):
        return args.handler(args)
    parser.print_help()
    return 1


def run_serve(args: argparse.Namespace) -> int:
    setup_logging(
        level=args.log_level,
        structured=args.structured_logs,
        sanitize=True,
        log_file=args.log_file,
    )
    try:
        file_config = (
            load_config(Path(args.config).expanduser()) if args.config else {}
        )
        config = ExporterConfig.from_mapping(merge_cli_overrides(file_config, args))
        credentials = load_credentials(args.service_name, file_config)
        LOGGER.info(describe())
        run_exporter(config, credentials)
    except ConfigError as exc:
        LOGGER.error("Configuration error: %s", exc)
        return 2
    except AuthError as exc:
        LOGGER.error("Initial authentication failed: %s", exc)
        return 2
    except (FileNotFoundError, RuntimeError, ValueError) as exc:
        LOGGER.error(str(exc))
        return 2
    except Exception as exc:  # pragma: no cover - safeguard for unexpected issues.
        LOGGER.exception("Unexpected error in exporter: %s", exc)
        return 3
    return 0


def run_store_credentials(args: argparse.Namespace) -> int:
    login = args.login or os.getenv(DEFAULT_LOGIN_ENV)
    password = os.getenv(DEFAULT_PASSWORD_ENV)

    if not login:
        login = input("Enter MCS login: ").strip()
    if not password:
        password = getpass.getpass("Enter MCS password: ")

    try:
        store_credentials(args.service_name, login, password)
    except (RuntimeError, ValueError) as exc:
        print(str(exc), file=sys.stderr)
        return 2
    print(f"Stored credentials in keychain for service '{args.service_name}'.")
    return 0


def merge_cli_overrides(
    config: dict[str, Any], args: argparse.Namespace
) -> dict[str, Any]:
    merged = dict(config)
    for key in (
        "listen_address",
        "interval",
        "retry_interval",
        "retry_limit",
        "require_initial_auth",
        "reauth_on_unauthorized",
    ):
        value = getattr(args, key, None)
        if value is not None:
            merged[key] = value
    return merged


def load_config(config_path: Path) -> dict[str, Any]:
    if not config_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}. Ensure the path is correct and readable."
        )
    suffix = config_path.suffix.lower()
    if suffix not in SUPPORTED_FORMATS:
        supported = ", ".join(SUPPORTED_FORMATS)
        raise ConfigError(
            f"Unsupported config format '{suffix}'. Supported formats: {supported}."
        )
    try:
        if suffix == ".json":
            data = json.loads(config_path.read_text(encoding="utf-8"))
        elif suffix == ".toml":
            data = load_toml(config_path)
        else:
            data = load_yaml(config_path)
    except json.JSONDecodeError as exc:
        raise ConfigError(
            f"Invalid JSON in config file {config_path}: {exc}. Validate the file format."
        ) from exc
    except (RuntimeError, ValueError):
        raise
    except Exception as exc:
        raise RuntimeError(
            f"Failed to parse config file {config_path}: {exc}."
        ) from exc
    if not isinstance(data, dict):
        raise ConfigError(
            f"Config file {config_path} must contain a JSON/TOML/YAML object mapping."
        )
    return data


def load_toml(config_path: Path) -> dict[str, Any]:
    if sys.version_info >= (3, 11):
        import tomllib

        return tomllib.loads(config_path.read_text(encoding="utf-8"))
    if importlib.util.find_spec("tomli") is None:
        raise RuntimeError(
            "TOML config parsing requires Python 3.11+ or the 'tomli' package. Install tomli or use JSON/YAML."
        )
    import tomli  # type: ignore[import-not-found]

    return tomli.loads(config_path.read_text(encoding="utf-8"))


def load_yaml(config_path: Path) -> dict[str, Any]:
    data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"YAML config file {config_path} must contain a mapping at the top level."
        )
    return data


if __name__ == "__main__":
    raise SystemExit(main())
