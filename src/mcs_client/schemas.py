"""Pydantic schemas for MCS API responses."""

from __future__ import annotations

import math
from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from mcs_client.models import Project

# ============================================================================
# Sign-in
# ============================================================================


class SigninProjectSchema(BaseModel):
    """Project entry of the sign-in response."""

    model_config = ConfigDict(extra="allow")

    pid: str = Field(..., description="Project identifier")
    title: str = Field("", description="Display name of the project")
    roles: list[str] = Field(default_factory=list)
    protected: bool = False
    enabled: bool = True
    is_partner: bool = False

    def to_project(self) -> Project:
        return Project(id=self.pid, title=self.title)


class VerifiedSchema(BaseModel):
    model_config = ConfigDict(extra="allow")

    email: bool = False
    phone: bool = False


class SigninResponse(BaseModel):
    """Body of ``POST /api/v1/auth/signin``."""

    model_config = ConfigDict(extra="allow")

    projects: list[SigninProjectSchema]
    uid: str | None = None
    name: str | None = None
    email: str | None = None
    domain: str | None = None
    ctime: str | None = None
    tfa: bool = False
    postpaid: bool = False
    protected: bool = False
    enabled: bool = True
    verified: VerifiedSchema | None = None
    attr: dict[str, Any] | None = None

    def to_projects(self) -> tuple[Project, ...]:
        return tuple(item.to_project() for item in self.projects)


# ============================================================================
# Billing
# ============================================================================


class BalanceExtraSchema(BaseModel):
    model_config = ConfigDict(extra="allow")

    ctime: int | None = None
    reg_notified: bool | None = None
    first_pay_dmr: int | None = None
    first_pay_order: int | None = None


class BalanceResponse(BaseModel):
    """Body of ``GET /api/v1/projects/{pid}/billing``."""

    model_config = ConfigDict(extra="allow")

    balance: str = Field(..., description="Balance as a decimal string")
    pid: str | None = None
    currency: str | None = None
    domain: str | None = None
    legal_form: str | None = None
    postpaid: bool = False
    bind: bool = False
    autopay: bool = False
    bonus: int | None = None
    extra: BalanceExtraSchema | None = None

    @field_validator("balance", mode="before")
    @classmethod
    def validate_decimal_string(cls, v: Any) -> str:
        """Validate the balance parses as a finite decimal."""
        if v is None or isinstance(v, bool):
            raise ValueError(f"Invalid decimal string: {v!r}")
        text = str(v).strip()
        try:
            value = Decimal(text)
        except InvalidOperation as exc:
            raise ValueError(f"Invalid decimal string: {v!r}") from exc
        if not value.is_finite() or not math.isfinite(float(value)):
            raise ValueError(f"Balance must be finite: {v!r}")
        return text

    @property
    def amount(self) -> float:
        return float(Decimal(self.balance))
