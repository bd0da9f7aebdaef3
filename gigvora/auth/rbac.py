"""Role permission matrix.

Permissions are (action, resource_type) tuples. A user holds the union of
the permissions granted to each of their roles; ``admin`` holds everything.
"""

from gigvora.schemas.auth import CurrentUser


class Action:
    VIEW = "view"
    MANAGE = "manage"


class Resource:
    WALLET = "wallet"
    DISPUTE = "dispute"
    AGENCY_PROJECT = "agency_project"
    PRESENCE = "presence"
    WORKSPACE_TEMPLATE = "workspace_template"
    COMPLIANCE = "compliance"


_MEMBER_PERMS: set[tuple[str, str]] = {
    (Action.VIEW, Resource.WALLET),
    (Action.MANAGE, Resource.WALLET),
    (Action.VIEW, Resource.DISPUTE),
    (Action.MANAGE, Resource.DISPUTE),
    (Action.VIEW, Resource.PRESENCE),
    (Action.MANAGE, Resource.PRESENCE),
    (Action.VIEW, Resource.WORKSPACE_TEMPLATE),
    (Action.VIEW, Resource.COMPLIANCE),
    (Action.MANAGE, Resource.COMPLIANCE),
}

_AGENCY_EXTRA: set[tuple[str, str]] = {
    (Action.VIEW, Resource.AGENCY_PROJECT),
    (Action.MANAGE, Resource.AGENCY_PROJECT),
}

PERMISSION_MATRIX: dict[str, set[tuple[str, str]]] = {
    "user": _MEMBER_PERMS,
    "freelancer": _MEMBER_PERMS,
    "company": _MEMBER_PERMS | {(Action.VIEW, Resource.AGENCY_PROJECT)},
    "headhunter": _MEMBER_PERMS,
    "mentor": _MEMBER_PERMS,
    "agency": _MEMBER_PERMS | _AGENCY_EXTRA,
}


def check_permission(user: CurrentUser, action: str, resource_type: str) -> bool:
    """Check whether any of the user's roles grants (action, resource_type)."""
    if user.is_admin:
        return True
    roles = set(user.roles) | {user.user_type.value}
    return any((action, resource_type) in PERMISSION_MATRIX.get(role, set()) for role in roles)
