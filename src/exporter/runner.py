"""Wiring and startup for the MCS balance exporter."""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass

from exporter import __version__
from exporter.metrics import BalanceMetrics
from exporter.poller import BalancePoller
from exporter.server import MetricsServer, serve_until_signalled
from mcs_client.auth import CredentialRedactor, Credentials
from mcs_client.balance import BalanceFetcher
from mcs_client.http import HttpClient
from mcs_client.session import SessionManager
from utils.config import ExporterConfig
from utils.logging_config import install_redaction

LOGGER = logging.getLogger("mcs_exporter.runner")


@dataclass
class Exporter:
    config: ExporterConfig
    redactor: CredentialRedactor
    session: SessionManager
    fetcher: BalanceFetcher
    metrics: BalanceMetrics
    poller: BalancePoller
    server: MetricsServer

    def start_poller(self) -> threading.Thread:
        thread = threading.Thread(
            target=self.poller.run_forever, name="balance-poller", daemon=True
        )
        thread.start()
        return thread


def build_exporter(config: ExporterConfig, credentials: Credentials) -> Exporter:
    redactor = CredentialRedactor(credentials)
    client = HttpClient(base_url=config.base_url, timeout=config.request_timeout)
    session = SessionManager(client, credentials, redactor)
    fetcher = BalanceFetcher(client, redactor)
    metrics = BalanceMetrics()
    poller = BalancePoller(
        session,
        fetcher,
        metrics,
        interval=config.interval,
        retry_interval=config.retry_interval,
        retry_limit=config.retry_limit,
        reauth_on_unauthorized=config.reauth_on_unauthorized,
    )
    server = MetricsServer(
        metrics, config.host, config.port, index_path=config.index_path
    )
    return Exporter(
        config=config,
        redactor=redactor,
        session=session,
        fetcher=fetcher,
        metrics=metrics,
        poller=poller,
        server=server,
    )


def run_exporter(config: ExporterConfig, credentials: Credentials) -> None:
    """Start polling and serve metrics until SIGINT/SIGTERM.

    Raises ``AuthError`` when ``require_initial_auth`` is set and the first
    sign-in fails.
    """
    exporter = build_exporter(config, credentials)
    install_redaction(exporter.redactor)

    LOGGER.info("Starting MCS balance exporter %s", __version__)
    if config.require_initial_auth:
        exporter.session.ensure_authenticated()

    exporter.start_poller()
    LOGGER.info(
        "Exporter will update balance every %g seconds (retry every %g seconds, "
        "retry limit %d)",
        config.interval,
        config.retry_interval,
        config.retry_limit,
    )
    asyncio.run(serve_until_signalled(exporter.server))
