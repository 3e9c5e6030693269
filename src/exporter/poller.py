"""Balance polling loop with retry accounting."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Protocol

from mcs_client.balance import BalanceFetcher
from mcs_client.errors import AuthError, FetchError
from mcs_client.session import SessionManager

LOGGER = logging.getLogger("mcs_exporter.poller")


class GaugeSink(Protocol):
    def set_gauge(self, label: str, value: float) -> None: ...


@dataclass(frozen=True)
class PollOutcome:
    success: bool
    reason: str | None = None
    published: int = 0

    @classmethod
    def succeeded(cls, published: int) -> "PollOutcome":
        return cls(success=True, published=published)

    @classmethod
    def failed(cls, reason: str, published: int = 0) -> "PollOutcome":
        return cls(success=False, reason=reason, published=published)


@dataclass
class RetryState:
    limit: int
    consecutive_failures: int = 0

    def __post_init__(self) -> None:
        if self.limit < 1:
            raise ValueError("retry limit must be at least 1")

    def record_success(self) -> None:
        self.consecutive_failures = 0

    def record_failure(self) -> bool:
        """Count a failed cycle; return True when the limit was reached."""
        self.consecutive_failures += 1
        if self.consecutive_failures >= self.limit:
            self.consecutive_failures = 0
            return True
        return False


class BalancePoller:
    """Fetches every project balance and publishes it, forever."""

    def __init__(
        self,
        session: SessionManager,
        fetcher: BalanceFetcher,
        sink: GaugeSink,
        *,
        interval: float = 300.0,
        retry_interval: float = 10.0,
        retry_limit: int = 10,
        reauth_on_unauthorized: bool = False,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        self.session = session
        self.fetcher = fetcher
        self.sink = sink
        self.interval = interval
        self.retry_interval = retry_interval
        self.retry = RetryState(limit=retry_limit)
        self.reauth_on_unauthorized = reauth_on_unauthorized
        self._sleep = sleep or time.sleep

    def poll_once(self) -> PollOutcome:
        try:
            self.session.ensure_authenticated()
        except AuthError as exc:
            return PollOutcome.failed(str(exc))

        projects = self.session.projects
        LOGGER.debug(
            "there are %d projects %s",
            len(projects),
            [project.id for project in projects],
        )
        published = 0
        for project in projects:
            try:
                balance = self.fetcher.fetch_balance(self.session, project.id)
            except FetchError as exc:
                if exc.unauthorized and self.reauth_on_unauthorized:
                    self.session.invalidate()
                return PollOutcome.failed(str(exc), published=published)
            self.sink.set_gauge(project.label, balance)
            published += 1
        return PollOutcome.succeeded(published)

    def run_cycle(self) -> PollOutcome:
        try:
            outcome = self.poll_once()
        except Exception as exc:
            LOGGER.exception("Unexpected error during balance update")
            outcome = PollOutcome.failed(f"unexpected error: {exc}")
        if outcome.success:
            self.retry.record_success()
            LOGGER.debug("Published %d balance(s)", outcome.published)
            delay = self.interval
        else:
            LOGGER.error("Balance update failed: %s", outcome.reason)
            if self.retry.record_failure():
                LOGGER.warning("Retry limit %d has been exceeded", self.retry.limit)
            LOGGER.info(
                "Request will retry after %s seconds",
                _format_seconds(self.retry_interval),
            )
            delay = self.retry_interval
        self._sleep(delay)
        return outcome

    def run_forever(self) -> None:
        LOGGER.info(
            "Balance poller started: interval=%ss retry_interval=%ss retry_limit=%d",
            _format_seconds(self.interval),
            _format_seconds(self.retry_interval),
            self.retry.limit,
        )
        while True:
            self.run_cycle()


def _format_seconds(value: float) -> str:
    return f"{value:g}"
