"""Job handlers exposing the resolution engine operations."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from .schema import ElementJob, MergeJob, ResolveJob

if TYPE_CHECKING:
    from collections.abc import Mapping

    from masterdata.domain.ports import JobHandler, JobService
    from masterdata.domain.resolution import ResolutionEngine

log = getLogger(__name__)

OPERATIONS = ("query", "generate", "ensure", "merge", "update", "resolve")


def job_name(name: str, operation: str) -> str:
    return f"{name}-{operation}"


def build_handlers(engine: ResolutionEngine) -> dict[str, JobHandler]:
    """Map each operation name to a handler taking the raw job document."""

    async def query(job: Mapping[str, object]) -> object:
        element = ElementJob.model_validate(job).config.element
        return engine.query(element).to_payload()

    async def generate(job: Mapping[str, object]) -> object:
        element = ElementJob.model_validate(job).config.element
        entity = await engine.generate_element(element)
        return entity.to_document()

    async def ensure(job: Mapping[str, object]) -> object:
        element = ElementJob.model_validate(job).config.element
        result = await engine.ensure(element)
        return result.to_payload()

    async def merge(job: Mapping[str, object]) -> object:
        config = MergeJob.model_validate(job).config
        entity = await engine.merge_elements(
            config.from_,
            config.to,
            external_ids=config.external_ids,
        )
        return entity.to_document()

    async def update(job: Mapping[str, object]) -> object:
        element = ElementJob.model_validate(job).config.element
        entity = await engine.update(element)
        return entity.to_document()

    async def resolve(job: Mapping[str, object]) -> object:
        masterid = ResolveJob.model_validate(job).config.masterid
        entity = await engine.resolve(masterid)
        return entity.to_document()

    return {
        "query": query,
        "generate": generate,
        "ensure": ensure,
        "merge": merge,
        "update": update,
        "resolve": resolve,
    }


def register_handlers(
    service: JobService,
    engine: ResolutionEngine,
    *,
    name: str,
    timeout: float,
) -> list[str]:
    """Bind ``<name>-<operation>`` handlers on ``service``; returns the job names."""

    names: list[str] = []
    for operation, handler in build_handlers(engine).items():
        job = job_name(name, operation)
        service.on(job, timeout, handler)
        names.append(job)
    log.info("Registered job handlers: %s", ", ".join(names))
    return names
