"""Linking, revoking and on-demand importing for one platform's users."""

from __future__ import annotations

from dataclasses import replace
from logging import getLogger
from typing import TYPE_CHECKING

from fitsync.domain.errors import RecordConflictError, TokenRefreshError
from fitsync.domain.import_sweep import queue_platform_import
from fitsync.domain.model import (
    ImportState,
    PlatformInfo,
    PlatformSyncState,
    RevokeReason,
    UserRecord,
)
from fitsync.domain.resolvers import resolve_conflict_authorization
from fitsync.domain.time_windows import utcnow
from fitsync.domain.versioned_update import DEFAULT_RETRY_POLICY, update_with_resolution

if TYPE_CHECKING:
    from fitsync.domain.ports.auth import TokenProvider
    from fitsync.domain.ports.persistence import RecordStore
    from fitsync.domain.ports.queue import WorkQueue
    from fitsync.domain.time_windows import Clock
    from fitsync.domain.versioned_update import ConflictRetryPolicy

log = getLogger(__name__)


class UsersService:
    def __init__(
        self,
        *,
        platform_name: str,
        users: RecordStore[UserRecord],
        sync_states: RecordStore[PlatformSyncState],
        tokens: TokenProvider,
        queue: WorkQueue,
        retry_policy: ConflictRetryPolicy = DEFAULT_RETRY_POLICY,
        clock: Clock = utcnow,
    ) -> None:
        self.platform_name = platform_name
        self.users = users
        self.sync_states = sync_states
        self.tokens = tokens
        self.queue = queue
        self.retry_policy = retry_policy
        self.clock = clock

    async def ensure_user(self, user_id: str, external_user_id: str) -> UserRecord:
        """Link ``user_id`` to the platform, creating the user on first linkage.

        A new link starts in ``READY_TO_IMPORT``. Linking again after a
        revocation re-enables imports; a link that is already active is left
        alone. Writes to existing users use the authorization resolver.
        """

        linked = PlatformInfo(platform_name=self.platform_name, external_user_id=external_user_id)
        user = await self.users.find(user_id)
        if user is None:
            try:
                user = await self.users.insert(
                    UserRecord(id=user_id, platforms={self.platform_name: linked})
                )
            except RecordConflictError:
                user = await self.users.get(user_id)
            else:
                log.info("Created user %s linked to %s", user_id, self.platform_name)
                await self._ensure_sync_state(external_user_id)
                return user

        current = user.find_platform(self.platform_name)
        if current is None:
            user.add_platform(linked)
        elif current.import_state is ImportState.UNAUTHORIZED:
            user.platforms[self.platform_name] = linked
        elif current.external_user_id != external_user_id:
            user.platforms[self.platform_name] = replace(
                current, external_user_id=external_user_id
            )
        else:
            await self._ensure_sync_state(external_user_id)
            return user

        user = await update_with_resolution(
            self.users, user, resolve_conflict_authorization, policy=self.retry_policy
        )
        log.info("Linked user %s to %s", user_id, self.platform_name)
        await self._ensure_sync_state(external_user_id)
        return user

    async def revoke_access(self, user_id: str) -> UserRecord:
        """Revoke the platform token and mark the link ``UNAUTHORIZED``.

        A token that can no longer be refreshed is already unusable, so the
        link is marked revoked without calling the provider.
        """

        user = await self.users.get(user_id)
        info = user.get_platform(self.platform_name)
        try:
            access_token = await self.tokens.refresh_token(info.external_user_id)
        except TokenRefreshError as exc:
            log.warning("Could not refresh token for user %s before revoking: %s", user_id, exc)
        else:
            await self.tokens.revoke_token(access_token)

        user.platforms[self.platform_name] = replace(
            info.with_state(ImportState.UNAUTHORIZED),
            revoked_reason=RevokeReason.USER_INITIATED,
            revoked_at=self.clock(),
        )
        user = await update_with_resolution(
            self.users, user, resolve_conflict_authorization, policy=self.retry_policy
        )
        log.info(
            "Revoked %s access for user %s (state now %s)",
            self.platform_name,
            user_id,
            user.get_platform(self.platform_name).import_state,
        )
        return user

    async def queue_import(self, user_id: str) -> bool:
        """Queue an import for one user now instead of waiting for the sweep."""

        user = await self.users.get(user_id)
        _, queued = await queue_platform_import(
            user,
            self.platform_name,
            users=self.users,
            queue=self.queue,
            retry_policy=self.retry_policy,
        )
        return queued

    async def _ensure_sync_state(self, external_user_id: str) -> None:
        if await self.sync_states.find(external_user_id) is not None:
            return
        try:
            await self.sync_states.insert(PlatformSyncState(id=external_user_id))
        except RecordConflictError:
            log.debug("Sync state for %s created concurrently", external_user_id)


__all__ = ["UsersService"]
