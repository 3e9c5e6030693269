"""Tests for the aiohttp metrics endpoint."""

from __future__ import annotations

import pytest
from aiohttp import test_utils

from exporter.metrics import BalanceMetrics
from exporter.server import DEFAULT_INDEX_PATH, MetricsServer


@pytest.mark.asyncio
async def test_metrics_endpoint_serves_current_gauges() -> None:
    metrics = BalanceMetrics()
    metrics.set_gauge("Alpha", 12.5)
    metrics.set_gauge("Beta", 0.0)
    server = MetricsServer(metrics)

    async with test_utils.TestClient(test_utils.TestServer(server.app)) as client:
        response = await client.get("/metrics")
        body = await response.text()

    assert response.status == 200
    assert response.headers["Content-Type"].startswith("text/plain")
    assert 'balance_mcs{project="Alpha"} 12.5' in body
    assert 'balance_mcs{project="Beta"} 0.0' in body


@pytest.mark.asyncio
async def test_metrics_endpoint_reflects_updates_between_scrapes() -> None:
    metrics = BalanceMetrics()
    server = MetricsServer(metrics)

    async with test_utils.TestClient(test_utils.TestServer(server.app)) as client:
        empty = await (await client.get("/metrics")).text()
        metrics.set_gauge("Alpha", 7.0)
        updated = await (await client.get("/metrics")).text()

    assert "project=" not in empty
    assert 'balance_mcs{project="Alpha"} 7.0' in updated


@pytest.mark.asyncio
async def test_index_serves_packaged_page() -> None:
    server = MetricsServer(BalanceMetrics())

    async with test_utils.TestClient(test_utils.TestServer(server.app)) as client:
        response = await client.get("/")
        body = await response.text()

    assert response.status == 200
    assert body == DEFAULT_INDEX_PATH.read_text(encoding="utf-8")


@pytest.mark.asyncio
async def test_index_serves_configured_file(tmp_path) -> None:
    index = tmp_path / "index.html"
    index.write_text("<h1>custom</h1>", encoding="utf-8")
    server = MetricsServer(BalanceMetrics(), index_path=index)

    async with test_utils.TestClient(test_utils.TestServer(server.app)) as client:
        response = await client.get("/")
        body = await response.text()

    assert response.status == 200
    assert body == "<h1>custom</h1>"


@pytest.mark.asyncio
async def test_missing_index_returns_not_found(tmp_path) -> None:
    server = MetricsServer(BalanceMetrics(), index_path=tmp_path / "missing.html")

    async with test_utils.TestClient(test_utils.TestServer(server.app)) as client:
        response = await client.get("/")

    assert response.status == 404


@pytest.mark.asyncio
async def test_start_and_stop_bind_and_release_listener() -> None:
    server = MetricsServer(BalanceMetrics(), "127.0.0.1", 0, shutdown_timeout=0.5)

    await server.start()
    await server.start()
    await server.stop()
    await server.stop()
