"""Role based permissions for staff users"""

_OFFICE_PERMISSIONS = {
    "clients:read",
    "clients:write",
    "locations:read",
    "locations:write",
    "subscriptions:read",
    "subscriptions:write",
    "jobs:read",
    "jobs:write",
    "jobs:assign",
    "routes:read",
    "routes:write",
}

ROLE_PERMISSIONS: dict[str, frozenset] = {
    "OWNER": frozenset(
        _OFFICE_PERMISSIONS
        | {"clients:delete", "subscriptions:cancel", "jobs:complete", "settings:write"}
    ),
    "MANAGER": frozenset(_OFFICE_PERMISSIONS | {"subscriptions:cancel", "jobs:complete"}),
    "OFFICE": frozenset(_OFFICE_PERMISSIONS),
    "CREW_LEAD": frozenset(
        {
            "clients:read",
            "locations:read",
            "subscriptions:read",
            "jobs:read",
            "jobs:write",
            "jobs:complete",
            "routes:read",
        }
    ),
    "FIELD_TECH": frozenset(
        {"clients:read", "locations:read", "jobs:read", "jobs:complete", "routes:read"}
    ),
    "ACCOUNTANT": frozenset({"clients:read", "subscriptions:read"}),
    "CLIENT": frozenset({"locations:read", "subscriptions:read", "jobs:read"}),
}


def has_permission(role: str | None, permission: str) -> bool:
    return permission in ROLE_PERMISSIONS.get(role or "", frozenset())


def has_any_permission(role: str | None, permissions) -> bool:
    return any(has_permission(role, p) for p in permissions)
