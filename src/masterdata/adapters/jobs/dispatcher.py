"""In-process job service: named handlers with timeouts and bounded concurrency."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from .schema import JobStatus

if TYPE_CHECKING:
    from collections.abc import Mapping

    from masterdata.domain.ports import JobHandler

log = getLogger(__name__)


class UnknownJobTypeError(LookupError):
    """Raised when a job names a type no handler is registered for."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"No handler registered for job type {name!r}")


@dataclass(slots=True, frozen=True)
class Registration:
    handler: JobHandler
    timeout: float


@dataclass(slots=True, frozen=True)
class JobOutcome:
    status: JobStatus
    result: object | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status is JobStatus.SUCCESS


class JobDispatcher:
    def __init__(self, *, concurrency: int = 1) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.concurrency = concurrency
        self._semaphore = asyncio.Semaphore(concurrency)
        self._handlers: dict[str, Registration] = {}

    @property
    def job_types(self) -> tuple[str, ...]:
        return tuple(self._handlers)

    def on(self, name: str, timeout: float, handler: JobHandler) -> None:
        if name in self._handlers:
            log.warning("Replacing the handler for job type %s", name)
        self._handlers[name] = Registration(handler=handler, timeout=timeout)

    async def dispatch(self, name: str, payload: Mapping[str, object]) -> JobOutcome:
        registration = self._handlers.get(name)
        if registration is None:
            raise UnknownJobTypeError(name)

        async with self._semaphore:
            try:
                async with asyncio.timeout(registration.timeout):
                    result = await registration.handler(payload)
            except TimeoutError:
                log.error("Job %s timed out after %ss", name, registration.timeout)
                return JobOutcome(
                    status=JobStatus.TIMEOUT,
                    error=f"Job {name} timed out after {registration.timeout}s",
                )
            except Exception as exc:  # noqa: BLE001
                log.exception("Job %s failed", name)
                return JobOutcome(status=JobStatus.FAILURE, error=f"{type(exc).__name__}: {exc}")

        log.info("Job %s succeeded", name)
        return JobOutcome(status=JobStatus.SUCCESS, result=result)
