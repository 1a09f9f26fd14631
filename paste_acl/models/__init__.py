"""
Models package — import every model so SQLAlchemy's Base.metadata
knows about all tables (critical for `create_all` / Alembic).
"""

from paste_acl.models.base import Base, TimestampMixin
from paste_acl.models.permission import (
    MAX_PERMISSION_MASK,
    Permission,
    PermissionRecord,
    UserPastePermission,
    validate_mask,
)

__all__ = [
    "Base",
    "TimestampMixin",
    "MAX_PERMISSION_MASK",
    "Permission",
    "PermissionRecord",
    "UserPastePermission",
    "validate_mask",
]
