# Overview: Role -> action permission checks for route guards.

from __future__ import annotations

from typing import Mapping, Protocol

ADMIN_ROLES = frozenset({"SuperAdmin", "CompanyAdmin"})

_MANAGEMENT = frozenset({
    "inventory.view",
    "inventory.adjust",
    "sales.create",
    "sales.view",
    "purchaseOrders.manage",
})

CORE_ROLE_PERMISSIONS: dict[str, frozenset[str]] = {
    "SuperAdmin": _MANAGEMENT,
    "CompanyAdmin": _MANAGEMENT,
    "Admin": _MANAGEMENT,
    "Cashier": frozenset({"sales.create", "sales.view"}),
    "Sales": frozenset({"sales.create", "sales.view"}),
    "Warehouse": frozenset({"inventory.view", "inventory.adjust"}),
    "Finance": frozenset({"purchaseOrders.manage"}),
}


class PermissionChecker(Protocol):
    def has_permission(self, role: str, action: str) -> bool: ...


class RolePermissionChecker:
    """Static role map; construct with a different mapping to add custom roles."""

    def __init__(self, role_permissions: Mapping[str, frozenset[str]] | None = None):
        self._role_permissions = dict(role_permissions or CORE_ROLE_PERMISSIONS)

    def has_permission(self, role: str, action: str) -> bool:
        return action in self._role_permissions.get(role, frozenset())


def is_admin_role(role: str | None) -> bool:
    return role in ADMIN_ROLES
