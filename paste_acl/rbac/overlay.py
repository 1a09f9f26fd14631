"""
Permission overlay — one user's rights on one paste, for one request.

    overlay = await PermissionOverlay.load(PermissionStore(db), user_id, paste_id)
    if overlay.has(Permission.GRANT):
        await target_overlay.grant(Permission.READ | Permission.WRITE)

The overlay is either Active (holding a snapshot of the row) or Failed
(holding the first storage error).  Failed is terminal:

- `has()` answers False, it never raises.
- `grant()` / `revoke()` re-raise the stored error without touching
  the database again.

Callers that must tell "denied" apart from "lookup failed" check
`overlay.error`, not `has()`.

Grants are merged by the database in one statement, so concurrent
grants from different overlays never lose bits.  Revokes are computed
from this overlay's snapshot; a grant committed by someone else after
`load()` can be overwritten by a later revoke here.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Awaitable, TypeVar, Union

from sqlalchemy.exc import SQLAlchemyError

from paste_acl.models.permission import Permission, PermissionRecord, validate_mask
from paste_acl.services.permission_store import Absent, Found, PermissionStorage

T = TypeVar("T")

# Anything the driver / pool / timeout can throw at us on a round trip.
STORAGE_ERRORS = (SQLAlchemyError, OSError, asyncio.TimeoutError)


@dataclass
class Active:
    snapshot: PermissionRecord


@dataclass(frozen=True)
class Failed:
    error: BaseException


OverlayState = Union[Active, Failed]


class PermissionOverlay:
    def __init__(
        self,
        store: PermissionStorage,
        state: OverlayState,
        *,
        timeout: float | None = None,
        logger: logging.Logger | None = None,
    ):
        self.store = store
        self.timeout = timeout
        self.logger = logger
        self._state = state

    @classmethod
    async def load(
        cls,
        store: PermissionStorage,
        user_id: uuid.UUID,
        paste_id: str,
        *,
        timeout: float | None = None,
        logger: logging.Logger | None = None,
    ) -> "PermissionOverlay":
        """
        Read the (user, paste) row, or start from an empty unsaved one.

        Storage failures do not raise here; they come back as a Failed
        overlay.  Task cancellation is still propagated.
        """
        try:
            found = await _bounded(store.fetch_one(user_id, paste_id), timeout)
        except STORAGE_ERRORS as exc:
            if logger is not None:
                logger.error("Permission lookup failed for user %s on paste %s: %s", user_id, paste_id, exc)
            return cls(store, Failed(exc), timeout=timeout, logger=logger)

        if isinstance(found, Found):
            snapshot = found.record
        elif isinstance(found, Absent):
            snapshot = PermissionRecord(user_id=user_id, paste_id=paste_id)
        else:
            raise TypeError(f"unexpected fetch result {found!r}")
        return cls(store, Active(snapshot), timeout=timeout, logger=logger)

    # ── State ────────────────────────────────────────────────────────
    @property
    def state(self) -> OverlayState:
        return self._state

    @property
    def error(self) -> BaseException | None:
        if isinstance(self._state, Failed):
            return self._state.error
        return None

    @property
    def permissions(self) -> Permission:
        if isinstance(self._state, Active):
            return Permission(self._state.snapshot.permissions)
        return Permission(0)

    def has(self, permission: int) -> bool:
        if isinstance(self._state, Active):
            return self._state.snapshot.permissions & permission != 0
        return False

    # ── Mutations ────────────────────────────────────────────────────
    async def grant(self, permission: int) -> None:
        state = self._state
        if isinstance(state, Failed):
            raise state.error
        bits = validate_mask(permission)
        if bits == 0:
            return

        snapshot = state.snapshot
        merged = await self._call(
            self.store.upsert_merge(snapshot.user_id, snapshot.paste_id, bits)
        )
        snapshot.permissions = merged
        if self.logger is not None:
            self.logger.info(
                "New permission set %x for user %s on paste %s",
                merged,
                snapshot.user_id,
                snapshot.paste_id,
            )

    async def revoke(self, permission: int) -> None:
        state = self._state
        if isinstance(state, Failed):
            raise state.error
        bits = validate_mask(permission)

        snapshot = state.snapshot
        if snapshot.permissions == 0:
            # Nothing stored, nothing to take away.
            return

        new_mask = snapshot.permissions & ~bits
        if new_mask == 0:
            await self._call(self.store.delete(snapshot.user_id, snapshot.paste_id))
        else:
            await self._call(self.store.update(snapshot.user_id, snapshot.paste_id, new_mask))
        snapshot.permissions = new_mask

    async def _call(self, awaitable: Awaitable[T]) -> T:
        """Run one storage round trip; any failure poisons the overlay."""
        try:
            return await _bounded(awaitable, self.timeout)
        except (*STORAGE_ERRORS, asyncio.CancelledError) as exc:
            self._poison(exc)
            raise

    def _poison(self, exc: BaseException) -> None:
        if self.logger is not None:
            self.logger.error("Permission write failed: %r", exc)
        self._state = Failed(exc)

    def __repr__(self) -> str:
        if isinstance(self._state, Failed):
            return f"<PermissionOverlay failed={self._state.error!r}>"
        snap = self._state.snapshot
        return f"<PermissionOverlay user={snap.user_id} paste={snap.paste_id} perms={snap.permissions:#x}>"


async def _bounded(awaitable: Awaitable[T], timeout: float | None) -> T:
    if timeout is None:
        return await awaitable
    return await asyncio.wait_for(awaitable, timeout)
