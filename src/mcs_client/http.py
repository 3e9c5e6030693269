"""HTTP client adapter for the MCS billing API."""

from __future__ import annotations

import http.client
import json
import ssl
from dataclasses import dataclass, field
from http.cookiejar import CookieJar
from typing import Any, Mapping
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

DEFAULT_BASE_URL = "https://mcs.mail.ru"
DEFAULT_TIMEOUT = 2.0
DEFAULT_HEADERS = {
    "Accept": "application/json, text/javascript, */*; q=0.01",
    "Content-Type": "application/json",
}


@dataclass
class HttpResponse:
    status: int
    body: str
    headers: dict[str, str] = field(default_factory=dict)


class HttpClientError(Exception):
    """Base exception for HTTP adapter errors."""


class TransportError(HttpClientError):
    """Raised when the request never produced an HTTP response."""


class ResponseDecodeError(HttpClientError):
    """Raised when a response body is not valid UTF-8."""


class HttpStatusError(HttpClientError):
    """Raised for responses outside the 2xx range."""

    def __init__(self, status: int, payload: str = "") -> None:
        message = f"HTTP error {status}"
        if payload:
            message = f"{message}: {payload}"
        super().__init__(message)
        self.status = status
        self.payload = payload


class HttpClient:
    """Thin urllib wrapper with a fixed timeout and no retry logic."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        ssl_context: ssl.SSLContext | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._ssl_context = ssl_context or ssl.create_default_context()

    def build_url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def request(
        self,
        method: str,
        path: str,
        body: Mapping[str, Any] | None = None,
        cookies: CookieJar | None = None,
    ) -> HttpResponse:
        data_bytes = None
        if body is not None:
            data_bytes = json.dumps(body, separators=(",", ":")).encode("utf8")

        http_request = Request(
            url=self.build_url(path),
            method=method.upper(),
            headers=dict(DEFAULT_HEADERS),
            data=data_bytes,
        )
        if cookies is not None:
            cookies.add_cookie_header(http_request)

        try:
            with urlopen(
                http_request, timeout=self.timeout, context=self._ssl_context
            ) as response:
                if cookies is not None:
                    cookies.extract_cookies(response, http_request)
                status = getattr(response, "status", 200)
                headers = dict(response.headers.items()) if response.headers else {}
                raw_body = response.read()
        except HTTPError as exc:
            payload = exc.read().decode("utf8", errors="replace") if exc.fp else ""
            raise HttpStatusError(exc.code, payload) from exc
        except URLError as exc:
            raise TransportError(
                f"Network error while contacting {self.base_url}: {exc.reason}"
            ) from exc
        except (OSError, http.client.HTTPException) as exc:
            # Read timeouts surface as TimeoutError, dropped connections as
            # RemoteDisconnected.
            raise TransportError(
                f"Network error while contacting {self.base_url}: {exc!r}"
            ) from exc

        if status < 200 or status >= 300:
            raise HttpStatusError(status, raw_body.decode("utf8", errors="replace"))
        try:
            payload = raw_body.decode("utf8")
        except UnicodeDecodeError as exc:
            raise ResponseDecodeError(
                f"Response from {self.base_url} is not valid UTF-8: {exc}"
            ) from exc
        return HttpResponse(status=status, body=payload, headers=headers)
