"""Job payload schemas for the entity handlers."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class JobStatus(StrEnum):
    SUCCESS = "success"
    FAILURE = "failure"
    TIMEOUT = "timeout"


class JobBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ElementConfig(JobBaseModel):
    element: dict[str, object]


class ElementJob(JobBaseModel):
    """``{config: {element: {...}}}`` for query, generate, ensure and update."""

    config: ElementConfig


class MergeConfig(JobBaseModel):
    from_: str = Field(alias="from", min_length=1)
    to: str = Field(min_length=1)
    external_ids: list[str] = Field(default_factory=list, alias="externalIds")


class MergeJob(JobBaseModel):
    config: MergeConfig


class ResolveConfig(JobBaseModel):
    masterid: str = Field(min_length=1)


class ResolveJob(JobBaseModel):
    config: ResolveConfig
