# backend/lib/water_core/access.py
"""
Who may see and do what. The role comes from the identity service; here it
is only normalized and turned into a set of capabilities, so no caller ever
compares role strings itself.
"""
from enum import Enum
from typing import Dict, FrozenSet, List, Optional

from .errors import AccessDenied


class Role(Enum):
    ANONYMOUS = "anonymous"
    CUSTOMER = "customer"
    OFFICE_STAFF = "office_staff"
    ADMIN = "admin"

    @classmethod
    def parse(cls, value: Optional[str]) -> "Role":
        """Unknown or missing roles fall back to ANONYMOUS."""
        v = (value or "").strip().lower()
        for role in cls:
            if role.value == v:
                return role
        return cls.ANONYMOUS


class Capability(Enum):
    VIEW_CONSUMPTION = "view_consumption"
    VIEW_BILL = "view_bill"
    MANAGE_CLIENTS = "manage_clients"
    EDIT_READINGS = "edit_readings"
    VIEW_REPORTS = "view_reports"
    EXPORT = "export"


_PUBLIC = frozenset({Capability.VIEW_CONSUMPTION, Capability.VIEW_BILL})
_BACK_OFFICE = _PUBLIC | {
    Capability.MANAGE_CLIENTS,
    Capability.EDIT_READINGS,
    Capability.VIEW_REPORTS,
    Capability.EXPORT,
}

_CAPABILITIES: Dict[Role, FrozenSet[Capability]] = {
    Role.ANONYMOUS: _PUBLIC,
    Role.CUSTOMER: _PUBLIC,
    Role.OFFICE_STAFF: frozenset(_BACK_OFFICE),
    Role.ADMIN: frozenset(_BACK_OFFICE),
}


def capabilities(role: Role) -> FrozenSet[Capability]:
    return _CAPABILITIES.get(role, _PUBLIC)


def require(role: Role, capability: Capability) -> None:
    if capability not in capabilities(role):
        raise AccessDenied(f"Role '{role.value}' is not allowed to {capability.value.replace('_', ' ')}")


PUBLIC_NAV = [
    {"name": "Home", "path": "/"},
    {"name": "Clients", "path": "/clientes"},
]

ADMIN_NAV = [
    {"name": "Dashboard", "path": "/admin/dashboard"},
    {"name": "Client Management", "path": "/admin/clientes"},
    {"name": "Reports", "path": "/admin/informes"},
]


def nav_items(role: Role) -> List[Dict[str, str]]:
    items = list(PUBLIC_NAV)
    if Capability.MANAGE_CLIENTS in capabilities(role):
        items += ADMIN_NAV
        items.append({"name": "Log out", "path": "/logout"})
    elif role is Role.ANONYMOUS:
        items.append({"name": "Login", "path": "/login"})
    return items


def navbar_style(path: str, role: Role) -> Dict[str, object]:
    """Navbar colour and elevation for a route."""
    path = path or "/"
    if path == "/":
        return {"background": "rgba(255, 255, 255, 0.15)", "elevation": 0}
    if path.startswith("/admin") and Capability.MANAGE_CLIENTS in capabilities(role):
        return {"background": "primary.dark", "elevation": 4}
    return {"background": "primary.main", "elevation": 4}
