"""Schemas for the runtime model settings endpoints."""

from pydantic import Field

from .chat import CamelModel


class CandidateSchema(CamelModel):
    """One entry of the resolved retry order. Credentials never leave the server."""

    endpoint: str
    model: str


class ModelSettingsResponse(CamelModel):
    models: dict[str, str]
    labels: dict[str, str]
    candidates: list[CandidateSchema] = Field(default_factory=list)


class ModelSettingsUpdate(CamelModel):
    """Settings key → new model id. Blank values clear the override."""

    models: dict[str, str]


class AvailableModel(CamelModel):
    id: str
    name: str
