"""Application orchestration entry points."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Final

from masterdata.adapters.jobs import JobDispatcher, job_name
from masterdata.adapters.oada import OadaJobRunner, OadaStore, PollingListWatch
from masterdata.config import get_service_config, get_store_config
from masterdata.domain.errors import RemoteOperationError
from masterdata.registry import Registry
from masterdata.trading_partners import SEARCH_KEYS, trading_partner_hooks, tree_for

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from masterdata.adapters.http_resilience import ResilientClient
    from masterdata.adapters.jobs import JobOutcome
    from masterdata.config import ResilienceConfig, ServiceConfig, StoreConfig

log = getLogger(__name__)

REGISTRY_NAME: Final = "trading-partners"


@dataclass(slots=True)
class ServiceContext:
    """Everything one running service instance is built from."""

    config: ServiceConfig
    store: OadaStore
    registry: Registry
    dispatcher: JobDispatcher
    jobs: OadaJobRunner

    async def aclose(self) -> None:
        await self.store.aclose()


def build_context(
    *,
    service_config: ServiceConfig | None = None,
    store_config: StoreConfig | None = None,
    client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
) -> ServiceContext:
    config = service_config or get_service_config()
    store = OadaStore(config=store_config or get_store_config(), client_factory=client_factory)
    feed = PollingListWatch(store, poll_interval=config.poll_interval_seconds)

    registry = Registry(
        name=REGISTRY_NAME,
        store=store,
        feed=feed,
        path=config.list_path,
        tree=tree_for(config.list_path),
        search_keys=SEARCH_KEYS,
        hooks=trading_partner_hooks(),
        layout=config.expand_index_layout,
        resume=config.resume,
    )
    dispatcher = JobDispatcher(concurrency=config.concurrency)
    registry.register(dispatcher, config.query_timeout_seconds)
    jobs = OadaJobRunner(
        store=store,
        feed=feed,
        dispatcher=dispatcher,
        service_name=config.service_name,
    )
    return ServiceContext(
        config=config,
        store=store,
        registry=registry,
        dispatcher=dispatcher,
        jobs=jobs,
    )


async def serve(context: ServiceContext) -> None:
    """Initialize the registry, then run the projector and the job runner together."""

    await context.registry.initialize()
    log.info(
        "%s is running against %s",
        context.config.service_name,
        context.registry.path,
    )
    async with asyncio.TaskGroup() as group:
        group.create_task(context.registry.run())
        group.create_task(context.jobs.run())


async def perform(
    context: ServiceContext,
    operation: str,
    job: Mapping[str, object],
) -> JobOutcome:
    """Run one registry operation against the current mirror, as a job would."""

    await context.registry.expand_index.initialize(resume=True)
    return await context.dispatcher.dispatch(job_name(context.registry.name, operation), job)


async def resync(context: ServiceContext) -> int:
    return await context.registry.resync()


def run_service(context_factory: Callable[[], ServiceContext] = build_context) -> None:
    async def main() -> None:
        context = context_factory()
        try:
            await serve(context)
        finally:
            await context.aclose()

    asyncio.run(main())


def run_operation(
    operation: str,
    job: Mapping[str, object],
    *,
    context_factory: Callable[[], ServiceContext] = build_context,
) -> JobOutcome:
    async def main() -> JobOutcome:
        context = context_factory()
        try:
            return await perform(context, operation, job)
        finally:
            await context.aclose()

    outcome = asyncio.run(main())
    log.info("%s finished with %s", operation, outcome.status)
    return outcome


def run_resync(*, context_factory: Callable[[], ServiceContext] = build_context) -> int:
    async def main() -> int:
        context = context_factory()
        try:
            return await resync(context)
        except RemoteOperationError:
            log.exception("Resync of %s failed", context.registry.path)
            raise
        finally:
            await context.aclose()

    return asyncio.run(main())
