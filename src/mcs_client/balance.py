"""Project balance lookups against the MCS billing API."""

from __future__ import annotations

from pydantic import ValidationError

from mcs_client.auth import CredentialRedactor
from mcs_client.errors import FetchError
from mcs_client.http import HttpClient, HttpClientError, HttpStatusError
from mcs_client.schemas import BalanceResponse
from mcs_client.session import SessionManager

BILLING_PATH = "/api/v1/projects/{project_id}/billing"


class BalanceFetcher:
    """Reads one project balance per call using an authenticated session."""

    def __init__(
        self, client: HttpClient, redactor: CredentialRedactor | None = None
    ) -> None:
        self._client = client
        self._redactor = redactor or CredentialRedactor(None)

    def fetch_balance(self, session: SessionManager, project_id: str) -> float:
        if not session.authenticated:
            raise FetchError(
                f"session is not authenticated; cannot fetch balance of {project_id}"
            )
        path = BILLING_PATH.format(project_id=project_id)
        try:
            response = self._client.request("GET", path, cookies=session.cookies)
        except HttpStatusError as exc:
            raise FetchError(
                self._redactor.format(
                    "response status code is not 200, but - %s (project %s)",
                    exc.status,
                    project_id,
                ),
                status=exc.status,
            ) from exc
        except HttpClientError as exc:
            raise FetchError(
                self._redactor.format(
                    "balance request for project %s failed: %s", project_id, exc
                )
            ) from exc

        try:
            billing = BalanceResponse.model_validate_json(response.body)
        except ValidationError as exc:
            raise FetchError(
                self._redactor.format(
                    "unparseable balance for project %s: %s",
                    project_id,
                    "; ".join(error.get("msg", "invalid") for error in exc.errors()),
                ),
                status=response.status,
            ) from exc
        return billing.amount
