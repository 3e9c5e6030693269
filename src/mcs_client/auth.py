"""Credential helpers for the MCS billing API."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

LOGIN_PLACEHOLDER = "<mcs-login>"
PASSWORD_PLACEHOLDER = "<mcs-password>"


@dataclass(frozen=True)
class Credentials:
    login: str
    password: str = field(repr=False)

    def to_payload(self) -> dict[str, str]:
        return {"email": self.login, "password": self.password}


class CredentialRedactor:
    """Replaces the login and password with placeholders in diagnostic text."""

    def __init__(self, credentials: Credentials | None) -> None:
        self._replacements: list[tuple[str, str]] = []
        if credentials is not None:
            # Longest secret first so a login contained in the password is not
            # substituted inside it.
            pairs = [
                (credentials.password, PASSWORD_PLACEHOLDER),
                (credentials.login, LOGIN_PLACEHOLDER),
            ]
            pairs.sort(key=lambda item: len(item[0]), reverse=True)
            self._replacements = [(secret, label) for secret, label in pairs if secret]

    def redact(self, message: str) -> str:
        for secret, placeholder in self._replacements:
            message = message.replace(secret, placeholder)
        return message

    def format(self, template: str, *args: Any) -> str:
        return self.redact(template % args if args else template)
