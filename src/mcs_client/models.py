"""Domain models shared by the MCS client and the exporter."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, field_validator


class Project(BaseModel):
    """Project visible to the signed-in account."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Project id cannot be empty")
        return v

    @property
    def label(self) -> str:
        """Metric label for the project, falling back to its id."""
        return self.title or self.id
