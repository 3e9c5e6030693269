"""Prometheus gauges published by the exporter."""

from __future__ import annotations

from prometheus_client import CollectorRegistry, Gauge, generate_latest
from prometheus_client.exposition import CONTENT_TYPE_LATEST

PROJECT_LABEL = "project"


class BalanceMetrics:
    """Last known balance per project, exposed in Prometheus text format.

    prometheus_client guards every sample with its own lock, so the poller can
    update values while scrape requests render the registry.
    """

    content_type = CONTENT_TYPE_LATEST

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry if registry is not None else CollectorRegistry()
        self._balance = Gauge(
            "mcs",
            "Balance in mcs account",
            [PROJECT_LABEL],
            subsystem="balance",
            registry=self.registry,
        )

    def set_gauge(self, label: str, value: float) -> None:
        self._balance.labels(**{PROJECT_LABEL: label}).set(value)

    def snapshot(self) -> dict[str, float]:
        values: dict[str, float] = {}
        for family in self._balance.collect():
            for sample in family.samples:
                values[sample.labels[PROJECT_LABEL]] = sample.value
        return values

    def render(self) -> bytes:
        return generate_latest(self.registry)
