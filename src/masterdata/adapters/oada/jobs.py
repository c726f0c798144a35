"""Runs jobs queued under ``/bookmarks/services/<service>/jobs/pending``."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING, Final, cast

from pydantic import ValidationError

from masterdata.adapters.jobs.dispatcher import JobOutcome, UnknownJobTypeError
from masterdata.adapters.jobs.schema import JobStatus
from masterdata.domain.errors import RemoteOperationError
from masterdata.domain.ports import ChangeType
from masterdata.domain.tree import join_path

from .schema import JobDocument, JobUpdate, ResourceLink

if TYPE_CHECKING:
    from collections.abc import Callable

    from masterdata.adapters.jobs.dispatcher import JobDispatcher
    from masterdata.domain.ports import ChangeFeed, RemoteStore
    from masterdata.domain.tree import Tree

log = getLogger(__name__)

SERVICES_PATH: Final = "/bookmarks/services"
JOBS_TYPE: Final = "application/vnd.oada.service.jobs.1+json"


def _jobs_folder() -> dict[str, object]:
    return {
        "_type": JOBS_TYPE,
        "_rev": 0,
        "day-index": {"*": {"_type": JOBS_TYPE, "_rev": 0}},
    }


SERVICES_TREE: Final[Tree] = {
    "bookmarks": {
        "_type": "application/vnd.oada.bookmarks.1+json",
        "_rev": 0,
        "services": {
            "_type": "application/vnd.oada.services.1+json",
            "_rev": 0,
            "*": {
                "_type": "application/vnd.oada.service.1+json",
                "_rev": 0,
                "jobs": {
                    "_type": JOBS_TYPE,
                    "_rev": 0,
                    "pending": {
                        "_type": JOBS_TYPE,
                        "_rev": 0,
                        "*": {"_type": "application/vnd.oada.service.job.1+json", "_rev": 0},
                    },
                    "success": _jobs_folder(),
                    "failure": _jobs_folder(),
                },
            },
        },
    },
}


def _utcnow() -> datetime:
    return datetime.now(UTC)


class OadaJobRunner:
    """Feeds queued jobs to a dispatcher and files them under success or failure."""

    def __init__(
        self,
        *,
        store: RemoteStore,
        feed: ChangeFeed,
        dispatcher: JobDispatcher,
        service_name: str,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.feed = feed
        self.dispatcher = dispatcher
        self.service_name = service_name
        self.clock = clock
        self.jobs_path = join_path(SERVICES_PATH, service_name, "jobs")
        self.pending_path = join_path(self.jobs_path, "pending")

    async def run(self) -> None:
        await self.store.ensure(self.pending_path, {}, tree=SERVICES_TREE)
        log.info("Waiting for %s jobs at %s", self.service_name, self.pending_path)
        # Jobs still pending from a previous run are replayed as new ones.
        events = self.feed.subscribe(self.pending_path, resume=False)
        async with asyncio.TaskGroup() as group:
            async for event in events:
                if event.type is not ChangeType.ITEM_ADDED or event.item is None:
                    continue
                group.create_task(self.process(event.key, event.item))

    async def process(self, key: str, document: Mapping[str, object]) -> JobOutcome:
        try:
            job = JobDocument.model_validate(document)
        except ValidationError as exc:
            log.error("Job %s is malformed: %s", key, exc)
            outcome = JobOutcome(status=JobStatus.FAILURE, error=f"Malformed job: {exc}")
            await self._finish(key, None, outcome)
            return outcome

        log.info("Starting job %s (%s)", key, job.type)
        try:
            outcome = await self.dispatcher.dispatch(job.type, document)
        except UnknownJobTypeError as exc:
            log.error("Job %s: %s", key, exc)
            outcome = JobOutcome(status=JobStatus.FAILURE, error=str(exc))
        await self._finish(key, job.id, outcome)
        return outcome

    async def _finish(self, key: str, job_id: str | None, outcome: JobOutcome) -> None:
        now = self.clock()
        update = JobUpdate(
            status=outcome.status,
            result=outcome.result,
            error=outcome.error,
            finished_at=now.isoformat(),
        )
        pending = join_path(self.pending_path, key)
        folder = "success" if outcome.succeeded else "failure"
        target = join_path(self.jobs_path, folder, "day-index", now.date().isoformat())
        try:
            await self.store.put(pending, update.model_dump(by_alias=True, exclude_none=True))
            resource_id = job_id or await self._linked_id(key)
            if resource_id is not None:
                await self.store.put(target, {key: {"_id": resource_id}}, tree=SERVICES_TREE)
            await self.store.delete(pending)
        except RemoteOperationError:
            log.exception("Could not file job %s under %s", key, folder)
            return
        log.info("Job %s finished with %s", key, outcome.status)

    async def _linked_id(self, key: str) -> str | None:
        listing = await self.store.get(self.pending_path)
        if not isinstance(listing, Mapping):
            return None
        entry = cast(Mapping[str, object], listing).get(key)
        try:
            return ResourceLink.model_validate(entry).id
        except ValidationError:
            log.warning("Pending job %s is not a link; it will not be filed", key)
            return None
