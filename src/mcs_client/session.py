"""Session management for the MCS billing API."""

from __future__ import annotations

import logging
import threading
from http.cookiejar import CookieJar

from pydantic import ValidationError

from mcs_client.auth import CredentialRedactor, Credentials
from mcs_client.errors import AuthError
from mcs_client.http import HttpClient, HttpClientError, HttpStatusError
from mcs_client.models import Project
from mcs_client.schemas import SigninResponse

LOGGER = logging.getLogger("mcs_exporter.session")

SIGNIN_PATH = "/api/v1/auth/signin"


class SessionManager:
    """Owns the sign-in state, session cookies and the project list.

    ``ensure_authenticated`` is safe to call from several threads: the
    authenticated flag is checked without locking, and the sign-in exchange
    runs under a lock that re-checks the flag, so concurrent callers trigger a
    single exchange.
    """

    def __init__(
        self,
        client: HttpClient,
        credentials: Credentials,
        redactor: CredentialRedactor | None = None,
    ) -> None:
        self._client = client
        self._credentials = credentials
        self._redactor = redactor or CredentialRedactor(credentials)
        self._authenticated = threading.Event()
        self._auth_lock = threading.Lock()
        self._cookies = CookieJar()
        self._projects: tuple[Project, ...] = ()

    @property
    def authenticated(self) -> bool:
        return self._authenticated.is_set()

    @property
    def projects(self) -> tuple[Project, ...]:
        return self._projects

    @property
    def cookies(self) -> CookieJar:
        return self._cookies

    def ensure_authenticated(self) -> None:
        if self._authenticated.is_set():
            return
        with self._auth_lock:
            if self._authenticated.is_set():
                return
            self._authenticate()

    def invalidate(self) -> None:
        """Forget the current session so the next call signs in again."""
        with self._auth_lock:
            self._authenticated.clear()
            self._projects = ()
            self._cookies = CookieJar()
        LOGGER.info("Session invalidated; next cycle will sign in again")

    def _authenticate(self) -> None:
        cookies = CookieJar()
        try:
            response = self._client.request(
                "POST",
                SIGNIN_PATH,
                body=self._credentials.to_payload(),
                cookies=cookies,
            )
        except HttpStatusError as exc:
            raise AuthError(
                self._redactor.format(
                    "auth response status code is not 200, but - %s", exc.status
                )
            ) from exc
        except HttpClientError as exc:
            raise AuthError(
                self._redactor.format("auth request failed: %s", exc)
            ) from exc

        try:
            signin = SigninResponse.model_validate_json(response.body)
            projects = signin.to_projects()
        except ValidationError as exc:
            raise AuthError(
                self._redactor.format(
                    "malformed auth response: %s", _summarize_errors(exc)
                )
            ) from exc

        self._cookies = cookies
        self._projects = projects
        self._authenticated.set()
        LOGGER.info(
            "Signed in to MCS; %d project(s): %s",
            len(self._projects),
            ", ".join(project.label for project in self._projects),
        )


def _summarize_errors(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ())) or "body"
        parts.append(f"{location}: {error.get('msg', 'invalid')}")
    return "; ".join(parts)
