"""Tests for exporter wiring and startup."""

from __future__ import annotations

import pytest

import exporter.runner as runner
from fakes import LOGIN, PASSWORD
from mcs_client.auth import Credentials
from mcs_client.errors import AuthError
from mcs_client.http import HttpClient, HttpStatusError
from utils.config import ExporterConfig


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(login=LOGIN, password=PASSWORD)


@pytest.fixture
def startup(monkeypatch):
    calls: dict[str, object] = {"poller_started": False, "served": None}

    def fake_start_poller(self):
        calls["poller_started"] = True

    def fake_serve(server):
        calls["served"] = server
        return "serve-coroutine"

    def fake_asyncio_run(main):
        assert main == "serve-coroutine"

    monkeypatch.setattr(runner.Exporter, "start_poller", fake_start_poller)
    monkeypatch.setattr(runner, "serve_until_signalled", fake_serve)
    monkeypatch.setattr(runner.asyncio, "run", fake_asyncio_run)
    monkeypatch.setattr(runner, "install_redaction", lambda redactor: None)
    return calls


def test_build_exporter_wires_config_into_components(credentials) -> None:
    config = ExporterConfig.from_mapping(
        {
            "listen_address": "127.0.0.1:9700",
            "interval": 60,
            "retry_interval": 5,
            "retry_limit": 3,
            "request_timeout": 1.5,
            "reauth_on_unauthorized": True,
        }
    )

    exporter = runner.build_exporter(config, credentials)

    assert exporter.poller.interval == 60.0
    assert exporter.poller.retry_interval == 5.0
    assert exporter.poller.retry.limit == 3
    assert exporter.poller.reauth_on_unauthorized is True
    assert exporter.poller.session is exporter.session
    assert exporter.session.authenticated is False
    assert exporter.redactor.redact(PASSWORD) == "<mcs-password>"


def test_run_exporter_starts_poller_and_serves(credentials, startup) -> None:
    config = ExporterConfig.from_mapping({})

    runner.run_exporter(config, credentials)

    assert startup["poller_started"] is True
    assert startup["served"] is not None


def test_run_exporter_does_not_sign_in_up_front_by_default(
    credentials, startup, monkeypatch
) -> None:
    def fail_request(self, *args, **kwargs):
        raise AssertionError("no request expected before polling starts")

    monkeypatch.setattr(HttpClient, "request", fail_request)

    runner.run_exporter(ExporterConfig.from_mapping({}), credentials)

    assert startup["poller_started"] is True


def test_run_exporter_raises_when_required_initial_auth_fails(
    credentials, startup, monkeypatch
) -> None:
    def rejected(self, method, path, body=None, cookies=None):
        raise HttpStatusError(401, "unauthorized")

    monkeypatch.setattr(HttpClient, "request", rejected)
    config = ExporterConfig.from_mapping({"require_initial_auth": True})

    with pytest.raises(AuthError, match="401"):
        runner.run_exporter(config, credentials)

    assert startup["poller_started"] is False
    assert startup["served"] is None
