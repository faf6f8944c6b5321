"""Run one queued import: token refresh, fetch, and the import-state writes around it."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from fitsync.domain.errors import RecordConflictError, TokenRefreshError, UnknownPlatformError
from fitsync.domain.model import ImportMessage, ImportState, PlatformSyncState
from fitsync.domain.resolvers import resolve_conflict_default, resolve_conflict_sync_cursors
from fitsync.domain.time_windows import utcnow
from fitsync.domain.versioned_update import DEFAULT_RETRY_POLICY, update_with_resolution

if TYPE_CHECKING:
    from collections.abc import Mapping

    from fitsync.domain.fetch_engine import FetchEngine, FetchReport
    from fitsync.domain.model import UserRecord
    from fitsync.domain.ports.auth import AccessToken, TokenProvider
    from fitsync.domain.ports.persistence import RecordStore
    from fitsync.domain.time_windows import Clock
    from fitsync.domain.versioned_update import ConflictRetryPolicy

log = getLogger(__name__)


@dataclass(slots=True)
class ImportOutcome:
    user_id: str
    platform_name: str
    final_state: ImportState | None = None
    report: FetchReport | None = None
    skipped_reason: str | None = None

    @property
    def skipped(self) -> bool:
        return self.skipped_reason is not None


class ImportOrchestrator:
    """Drive one (user, platform) pair from ``QUEUED`` to a settled state.

    ``QUEUED -> IMPORTING``, then either ``UNAUTHORIZED`` when no access token
    can be obtained (the fetch never starts) or ``READY_TO_IMPORT`` once the
    fetch has run. A fetch failure is logged and still ends in
    ``READY_TO_IMPORT``. Every user write goes through the default resolver.
    """

    def __init__(
        self,
        *,
        platform_name: str,
        users: RecordStore[UserRecord],
        sync_states: RecordStore[PlatformSyncState],
        tokens: TokenProvider,
        engine: FetchEngine,
        retry_policy: ConflictRetryPolicy = DEFAULT_RETRY_POLICY,
        clock: Clock = utcnow,
    ) -> None:
        self.platform_name = platform_name
        self.users = users
        self.sync_states = sync_states
        self.tokens = tokens
        self.engine = engine
        self.retry_policy = retry_policy
        self.clock = clock

    async def import_data(self, message: ImportMessage) -> ImportOutcome:
        outcome = ImportOutcome(user_id=message.user_id, platform_name=self.platform_name)
        if message.platform_name != self.platform_name:
            raise UnknownPlatformError(message.platform_name)

        user = await self.users.find(message.user_id)
        if user is None:
            log.warning("Import requested for unknown user %s", message.user_id)
            outcome.skipped_reason = "unknown user"
            return outcome

        info = user.find_platform(self.platform_name)
        if info is None or info.import_state is not ImportState.QUEUED:
            state = None if info is None else info.import_state
            log.info(
                "Skipping %s import for user %s in state %s",
                self.platform_name,
                user.id,
                state,
            )
            outcome.final_state = state
            outcome.skipped_reason = "not queued"
            return outcome
        if info.external_user_id != message.platform_user_id:
            log.warning(
                "Import message for user %s names platform user %s; using linked %s",
                user.id,
                message.platform_user_id,
                info.external_user_id,
            )

        user.set_import_state(self.platform_name, ImportState.IMPORTING)
        user = await self._save_user(user)
        state = user.get_platform(self.platform_name).import_state
        if state is not ImportState.IMPORTING:
            log.info("Concurrent write moved user %s to %s; import abandoned", user.id, state)
            outcome.final_state = state
            outcome.skipped_reason = "superseded"
            return outcome

        try:
            access_token = await self.tokens.refresh_token(info.external_user_id)
        except TokenRefreshError as exc:
            log.warning("Token refresh failed for user %s: %s", user.id, exc)
            user.set_import_state(self.platform_name, ImportState.UNAUTHORIZED)
            user = await self._save_user(user)
            outcome.final_state = user.get_platform(self.platform_name).import_state
            return outcome

        outcome.report = await self._fetch(user.id, info.external_user_id, access_token)

        user.last_touched = self.clock()
        user.set_import_state(self.platform_name, ImportState.READY_TO_IMPORT)
        user = await self._save_user(user)
        outcome.final_state = user.get_platform(self.platform_name).import_state
        log.info("Finished %s import for user %s", self.platform_name, user.id)
        return outcome

    async def _fetch(
        self,
        user_id: str,
        external_user_id: str,
        access_token: AccessToken,
    ) -> FetchReport | None:
        sync_state: PlatformSyncState | None = None
        snapshot: dict[str, int] = {}
        report: FetchReport | None = None
        try:
            sync_state = await self.sync_states.find(external_user_id)
            if sync_state is None:
                sync_state = PlatformSyncState(id=external_user_id)
            snapshot = dict(sync_state.cursors)
            streams = await self.engine.list_streams(access_token)
            report = await self.engine.run(
                user_id=user_id,
                access_token=access_token,
                streams=streams,
                sync_state=sync_state,
            )
        except Exception:
            log.exception("Import for user %s failed", user_id)

        if sync_state is not None and sync_state.cursors != snapshot:
            try:
                await self._save_sync_state(sync_state)
            except Exception:
                log.exception("Failed to persist sync cursors for user %s", user_id)
        return report

    async def _save_user(self, user: UserRecord) -> UserRecord:
        return await update_with_resolution(
            self.users, user, resolve_conflict_default, policy=self.retry_policy
        )

    async def _save_sync_state(self, sync_state: PlatformSyncState) -> PlatformSyncState:
        if sync_state.version is None:
            try:
                return await self.sync_states.insert(sync_state)
            except RecordConflictError:
                stored = await self.sync_states.get(sync_state.id)
                sync_state = resolve_conflict_sync_cursors(sync_state, stored)
        return await update_with_resolution(
            self.sync_states,
            sync_state,
            resolve_conflict_sync_cursors,
            policy=self.retry_policy,
        )


class ImportDispatcher:
    """Route raw queue messages to the orchestrator registered for their platform."""

    def __init__(self, orchestrators: Mapping[str, ImportOrchestrator]) -> None:
        self._orchestrators = dict(orchestrators)

    @property
    def platforms(self) -> frozenset[str]:
        return frozenset(self._orchestrators)

    async def dispatch(self, raw_message: str | bytes) -> ImportOutcome:
        message = ImportMessage.from_json(raw_message)
        orchestrator = self._orchestrators.get(message.platform_name)
        if orchestrator is None:
            log.error("No import handler for platform %s", message.platform_name)
            raise UnknownPlatformError(message.platform_name)
        return await orchestrator.import_data(message)


__all__ = ["ImportDispatcher", "ImportOrchestrator", "ImportOutcome"]
