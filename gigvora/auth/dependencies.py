"""FastAPI auth dependencies: get_current_user, require_roles, require_permission."""

import uuid

import sentry_sdk
import structlog
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError

from gigvora.auth.rbac import check_permission
from gigvora.core.security import decode_access_token
from gigvora.models.enums import UserType
from gigvora.schemas.auth import CurrentUser

logger = structlog.get_logger()

bearer_scheme = HTTPBearer(auto_error=True)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
) -> CurrentUser:
    """Verify the bearer token and build the request's user context.

    The token carries ``sub`` (user id), ``user_type``, ``roles`` and an
    optional ``workspace_id``.
    """
    try:
        payload = decode_access_token(credentials.credentials)
        current_user = CurrentUser(
            user_id=uuid.UUID(str(payload["sub"])),
            user_type=UserType(payload.get("user_type", UserType.USER.value)),
            roles=[str(r) for r in payload.get("roles", [])],
            workspace_id=(
                uuid.UUID(str(payload["workspace_id"])) if payload.get("workspace_id") else None
            ),
        )
    except (JWTError, KeyError, ValueError) as e:
        logger.warning("jwt_verification_failed", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    sentry_sdk.set_user({"id": str(current_user.user_id)})
    sentry_sdk.set_tag("user_type", current_user.user_type.value)

    return current_user


def require_roles(allowed_roles: list[str]):
    """
    Dependency factory: the current user must hold one of ``allowed_roles``.

    Usage:
        @router.get("/admin/...", dependencies=[Depends(require_roles(["admin"]))])
    """

    async def _check_role(
        current_user: CurrentUser = Depends(get_current_user),
    ) -> CurrentUser:
        held = set(current_user.roles) | {current_user.user_type.value}
        if not held & set(allowed_roles):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Not authorized. Required one of: {sorted(allowed_roles)}",
            )
        return current_user

    return _check_role


def require_permission(action: str, resource_type: str):
    """Dependency factory: checks a specific (action, resource_type) permission."""

    async def _check_perm(
        current_user: CurrentUser = Depends(get_current_user),
    ) -> CurrentUser:
        if not check_permission(current_user, action, resource_type):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission denied: {action} on {resource_type}",
            )
        return current_user

    return _check_perm
