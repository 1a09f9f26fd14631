"""
RBAC dependencies — per-paste permission enforcement for routes.

`require_paste_permission` is a *dependency factory*: call it with one
or more `Permission` flags and it returns a FastAPI dependency that will:

1. Resolve the caller's user id (`get_current_user_id`).
2. Load a PermissionOverlay for (user, `paste_id` path parameter).
3. Return 503 if the lookup itself failed.
4. Return 403 if any required bit is missing, with NO detail about
   which ones (prevents enumeration).
5. Hand the overlay to the route, which may grant / revoke through it.

Usage in a route:
    @router.post("/pastes/{paste_id}/grants")
    async def grant(overlay = Depends(require_paste_permission(Permission.GRANT))): ...

Authentication is owned by the surrounding application.  The default
`get_current_user_id` reads an `X-User-Id` header set by the auth
gateway; apps with their own auth override it via
`app.dependency_overrides[get_current_user_id]`.
"""

import logging
import uuid

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from paste_acl.core.config import settings
from paste_acl.core.database import get_db
from paste_acl.models.permission import Permission
from paste_acl.rbac.overlay import PermissionOverlay
from paste_acl.services.permission_store import PermissionStore

logger = logging.getLogger("rbac")


async def get_current_user_id(
    x_user_id: str | None = Header(default=None),
) -> uuid.UUID:
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    try:
        return uuid.UUID(x_user_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user id",
        ) from None


async def get_permission_overlay(
    paste_id: str,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> PermissionOverlay:
    """Load the caller's overlay for `paste_id` WITHOUT any permission check."""
    return await PermissionOverlay.load(
        PermissionStore(db),
        user_id,
        paste_id,
        timeout=settings.PERMISSION_QUERY_TIMEOUT,
        logger=logger,
    )


class require_paste_permission:
    """
    Dependency factory.

    Can be used as:
        Depends(require_paste_permission(Permission.READ))
        Depends(require_paste_permission(Permission.WRITE, Permission.GRANT))
    """

    def __init__(self, *permissions: Permission):
        self.required = list(permissions)

    async def __call__(
        self,
        overlay: PermissionOverlay = Depends(get_permission_overlay),
    ) -> PermissionOverlay:
        if overlay.error is not None:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Permission lookup failed",
            )

        missing = [p for p in self.required if not overlay.has(p)]
        if missing:
            logger.warning(
                "Paste permission denied for %r, required: %s, missing: %s",
                overlay,
                self.required,
                missing,
            )
            # Intentionally vague: do NOT reveal which bits are missing
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )

        return overlay
