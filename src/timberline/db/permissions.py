# static role -> section/action table for the back office
from __future__ import annotations

from typing import Dict, FrozenSet

from timberline.db.models import UserRole

SECTIONS = ("dashboard", "orders", "users", "leads", "deals", "prices", "settings")
ACTIONS = ("view", "edit", "delete")

_ALL = frozenset(ACTIONS)
_VIEW = frozenset({"view"})
_EDIT = frozenset({"view", "edit"})

PERMISSIONS: Dict[UserRole, Dict[str, FrozenSet[str]]] = {
    UserRole.MANAGER: {
        "dashboard": _VIEW,
        "orders": _EDIT,
        "leads": _EDIT,
        "deals": _VIEW,
        "prices": _VIEW,
    },
    UserRole.ADMIN: {
        "dashboard": _VIEW,
        "orders": _ALL,
        "users": _EDIT,
        "leads": _ALL,
        "deals": _ALL,
        "prices": _VIEW,
        "settings": _EDIT,
    },
}


def can(role: str, section: str, action: str = "view") -> bool:
    try:
        role = UserRole(role)
    except ValueError:
        return False
    if role == UserRole.SUPER_ADMIN:
        return True
    return action in PERMISSIONS.get(role, {}).get(section, frozenset())


def sections_for(role: str) -> list:
    return [s for s in SECTIONS if can(role, s, "view")]
