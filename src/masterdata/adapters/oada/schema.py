"""Shapes of the OADA documents the adapters read."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from masterdata.adapters.jobs.schema import JobStatus


class OadaBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ResourceLink(OadaBaseModel):
    """A ``{"_id": ..., "_rev": ...}`` pointer from a parent document to a resource."""

    id: str = Field(alias="_id")
    rev: int | None = Field(default=None, alias="_rev")


class JobDocument(OadaBaseModel):
    """A queued job: ``type`` selects the handler and ``config`` is its input."""

    id: str | None = Field(default=None, alias="_id")
    type: str
    service: str | None = None
    config: dict[str, object] = Field(default_factory=dict)
    status: str | None = None


class JobUpdate(OadaBaseModel):
    status: JobStatus
    result: object | None = None
    error: str | None = None
    finished_at: str = Field(alias="finishedAt")
