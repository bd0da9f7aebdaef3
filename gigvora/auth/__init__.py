"""Auth package: bearer-token dependencies and role permissions."""

from gigvora.auth.dependencies import get_current_user, require_permission, require_roles
from gigvora.auth.rbac import check_permission

__all__ = [
    "check_permission",
    "get_current_user",
    "require_permission",
    "require_roles",
]
