"""
Permission store — the only code that touches `user_paste_permissions`.

Four primitives, each a single statement:

- fetch_one     SELECT ... LIMIT 1, reported as Found / Absent
- upsert_merge  INSERT ... ON CONFLICT DO UPDATE SET mask = mask | new
                RETURNING mask  (atomic, no read-after-write window)
- update        UPDATE mask for an existing row
- delete        DELETE the row

The store only flushes.  Commit / rollback belongs to whoever owns the
session (`get_db` for requests).
"""

import uuid
from dataclasses import dataclass
from typing import Protocol, Union

from sqlalchemy import delete, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import ArgumentError
from sqlalchemy.ext.asyncio import AsyncSession

from paste_acl.models.base import utcnow
from paste_acl.models.permission import PermissionRecord, UserPastePermission


@dataclass(frozen=True)
class Found:
    record: PermissionRecord


@dataclass(frozen=True)
class Absent:
    pass


FetchResult = Union[Found, Absent]


class PermissionStorage(Protocol):
    async def fetch_one(self, user_id: uuid.UUID, paste_id: str) -> FetchResult: ...

    async def upsert_merge(self, user_id: uuid.UUID, paste_id: str, bits: int) -> int: ...

    async def update(self, user_id: uuid.UUID, paste_id: str, new_mask: int) -> None: ...

    async def delete(self, user_id: uuid.UUID, paste_id: str) -> None: ...


# Dialects with INSERT ... ON CONFLICT ... RETURNING support.
_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class PermissionStore:
    """SQLAlchemy-backed implementation of `PermissionStorage`."""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _insert(self):
        dialect = self.session.get_bind().dialect.name
        try:
            return _UPSERT_INSERTS[dialect]
        except KeyError:
            raise ArgumentError(f"upsert-merge is not supported on {dialect!r}") from None

    async def fetch_one(self, user_id: uuid.UUID, paste_id: str) -> FetchResult:
        # Plain columns, not entities: the identity map would otherwise
        # hand back a row loaded before a Core upsert/update/delete.
        stmt = (
            select(
                UserPastePermission.user_id,
                UserPastePermission.paste_id,
                UserPastePermission.permissions,
            )
            .where(
                UserPastePermission.user_id == user_id,
                UserPastePermission.paste_id == paste_id,
            )
            .limit(1)
        )
        result = await self.session.execute(stmt)
        row = result.one_or_none()
        if row is None:
            return Absent()
        return Found(PermissionRecord(row.user_id, row.paste_id, int(row.permissions)))

    async def upsert_merge(self, user_id: uuid.UUID, paste_id: str, bits: int) -> int:
        """Insert the row or OR `bits` into the stored mask; return the merged mask."""
        table = UserPastePermission.__table__
        stmt = self._insert()(table).values(
            user_id=user_id,
            paste_id=paste_id,
            permissions=int(bits),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.user_id, table.c.paste_id],
            set_={
                "permissions": table.c.permissions.op("|")(stmt.excluded.permissions),
                "updated_at": utcnow(),
            },
        ).returning(table.c.permissions)

        result = await self.session.execute(stmt)
        merged = result.scalar_one()
        await self.session.flush()
        return int(merged)

    async def update(self, user_id: uuid.UUID, paste_id: str, new_mask: int) -> None:
        stmt = (
            update(UserPastePermission)
            .where(
                UserPastePermission.user_id == user_id,
                UserPastePermission.paste_id == paste_id,
            )
            .values(permissions=int(new_mask), updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)
        await self.session.flush()

    async def delete(self, user_id: uuid.UUID, paste_id: str) -> None:
        stmt = (
            delete(UserPastePermission)
            .where(
                UserPastePermission.user_id == user_id,
                UserPastePermission.paste_id == paste_id,
            )
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)
        await self.session.flush()
