from __future__ import annotations

"""
Per-(user, paste) permission model.

A user's rights on a paste are a single bitmask row.  Rules the rest of
the package relies on:

- (user_id, paste_id) is the primary key, so there is at most one row
  per pair and it doubles as the upsert conflict target.
- A missing row means "no permissions".  A row whose mask is zero must
  never be written; revoking the last bit deletes the row instead.
"""

import enum
import uuid
from dataclasses import dataclass

from sqlalchemy import BigInteger, CheckConstraint, String
from sqlalchemy.orm import Mapped, mapped_column

from paste_acl.models.base import Base, TimestampMixin

# Masks are stored as unsigned 32-bit values.
MAX_PERMISSION_MASK = 0xFFFFFFFF


class Permission(enum.IntFlag):
    READ = 1 << 0
    WRITE = 1 << 1
    GRANT = 1 << 2
    DELETE = 1 << 3

    ALL = READ | WRITE | GRANT | DELETE


def validate_mask(value: int) -> int:
    """Reject anything that is not an unsigned 32-bit integer."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"permission mask must be an int, got {type(value).__name__}")
    if not 0 <= value <= MAX_PERMISSION_MASK:
        raise ValueError(f"permission mask {value:#x} out of range")
    return int(value)


class UserPastePermission(Base, TimestampMixin):
    __tablename__ = "user_paste_permissions"

    user_id: Mapped[uuid.UUID] = mapped_column(primary_key=True)
    paste_id: Mapped[str] = mapped_column(String(64), primary_key=True, index=True)
    permissions: Mapped[int] = mapped_column(BigInteger, nullable=False)

    __table_args__ = (
        CheckConstraint("permissions > 0", name="ck_user_paste_permissions_nonzero"),
    )

    def __repr__(self) -> str:
        return f"<UserPastePermission user={self.user_id} paste={self.paste_id} perms={self.permissions:#x}>"


@dataclass
class PermissionRecord:
    """Detached snapshot of one row (or of the not-yet-written default)."""

    user_id: uuid.UUID
    paste_id: str
    permissions: int = 0
