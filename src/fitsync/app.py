"""Application orchestration entry points."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from fitsync.adapters.event_sink import HttpEventSink
from fitsync.adapters.google_fit import GoogleFitClient, GoogleFitTokenProvider
from fitsync.adapters.sqlalchemy import (
    is_started,
    refresh_token_store,
    startup,
    sync_state_store,
    user_store,
)
from fitsync.adapters.work_queue import AsyncioWorkQueue, DrainResult
from fitsync.common.logging import configure_logging
from fitsync.config import ImportConfig
from fitsync.domain.fetch_engine import (
    FetchEngine,
    propagate_stream_errors,
    swallow_stream_errors,
)
from fitsync.domain.import_orchestrator import ImportDispatcher, ImportOrchestrator
from fitsync.domain.import_sweep import SweepResult, sweep_ready_imports
from fitsync.domain.model import Platform
from fitsync.domain.users import UsersService

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

    from fitsync.domain.model import PlatformSyncState, UserRecord
    from fitsync.domain.ports.auth import TokenProvider
    from fitsync.domain.ports.events import EventSink
    from fitsync.domain.ports.fetching import DataProvider
    from fitsync.domain.ports.persistence import RecordStore
    from fitsync.domain.ports.queue import WorkQueue

log = getLogger(__name__)


@dataclass(slots=True)
class PlatformServices:
    """Everything needed to sweep, import, link and revoke for one platform."""

    users: RecordStore[UserRecord]
    sync_states: RecordStore[PlatformSyncState]
    orchestrator: ImportOrchestrator
    users_service: UsersService


@dataclass(slots=True)
class ImportCycleResult:
    sweep: SweepResult
    imports: DrainResult = field(default_factory=DrainResult)


def build_platform_services(
    *,
    platform_name: str,
    users: RecordStore[UserRecord],
    sync_states: RecordStore[PlatformSyncState],
    tokens: TokenProvider,
    provider: DataProvider,
    sink: EventSink,
    queue: WorkQueue,
    config: ImportConfig | None = None,
) -> PlatformServices:
    settings = config or ImportConfig()
    retry_policy = settings.retry_policy()
    engine = FetchEngine(
        provider,
        sink,
        options=settings.fetch_options(),
        exception_policy=(
            swallow_stream_errors if settings.swallow_stream_errors else propagate_stream_errors
        ),
    )
    orchestrator = ImportOrchestrator(
        platform_name=platform_name,
        users=users,
        sync_states=sync_states,
        tokens=tokens,
        engine=engine,
        retry_policy=retry_policy,
    )
    users_service = UsersService(
        platform_name=platform_name,
        users=users,
        sync_states=sync_states,
        tokens=tokens,
        queue=queue,
        retry_policy=retry_policy,
    )
    return PlatformServices(
        users=users,
        sync_states=sync_states,
        orchestrator=orchestrator,
        users_service=users_service,
    )


def build_google_fit_services(
    *,
    queue: WorkQueue,
    provider: GoogleFitClient,
    engine: Engine | None = None,
    sink: EventSink | None = None,
    tokens: TokenProvider | None = None,
    config: ImportConfig | None = None,
) -> PlatformServices:
    """Wire the SQLAlchemy stores and Google Fit adapters for the Google Fit platform."""

    platform_name = Platform.GOOGLE_FIT.value
    return build_platform_services(
        platform_name=platform_name,
        users=user_store(engine),
        sync_states=sync_state_store(platform_name, engine),
        tokens=tokens
        or GoogleFitTokenProvider(refresh_tokens=refresh_token_store(platform_name, engine)),
        provider=provider,
        sink=sink or HttpEventSink(),
        queue=queue,
        config=config,
    )


async def run_import_cycle(
    services: PlatformServices,
    *,
    queue: AsyncioWorkQueue,
    config: ImportConfig | None = None,
) -> ImportCycleResult:
    """Sweep ready users into ``queue`` and run every queued import."""

    settings = config or ImportConfig()
    sweep = await sweep_ready_imports(
        users=services.users,
        queue=queue,
        page_size=settings.sweep_page_size,
        retry_policy=settings.retry_policy(),
    )
    dispatcher = ImportDispatcher({services.orchestrator.platform_name: services.orchestrator})
    imports = await queue.drain(dispatcher.dispatch, max_concurrency=settings.max_concurrency)
    log.info(
        "Import cycle finished: queued=%s, imported=%s, failed=%s",
        sweep.queued,
        imports.processed,
        imports.failed,
    )
    return ImportCycleResult(sweep=sweep, imports=imports)


def run_google_fit_import_cycle(*, database_uri: str | None = None) -> ImportCycleResult:
    """Load configuration from the environment and run one Google Fit import cycle."""

    load_dotenv()
    configure_logging()
    config = ImportConfig.from_environment()
    if not is_started():
        startup(database_uri=database_uri)

    async def run() -> ImportCycleResult:
        queue = AsyncioWorkQueue()
        async with GoogleFitClient() as provider:
            services = build_google_fit_services(queue=queue, provider=provider, config=config)
            return await run_import_cycle(services, queue=queue, config=config)

    return asyncio.run(run())
