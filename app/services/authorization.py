"""Data-driven permission checks.

The role × module × action matrix lives in ``role_permissions``; each cell
carries a scope that is evaluated against the record being touched:

* ``global``: any record
* ``department``: ``context["department_id"]`` must equal the actor's department
* ``own``: ``context["owner_id"]`` must equal the actor's id

The workflow engines only ask ``can_perform`` / ``require_permission``.
User and permission administration is reserved for the admin role.
"""
import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.config import settings
from app.errors import PermissionDenied
from app.models.user import User, RolePermission, PermissionScope

logger = logging.getLogger(__name__)

GLOBAL = PermissionScope.global_.value
DEPARTMENT = PermissionScope.department.value
OWN = PermissionScope.own.value

_ASSIGNMENT_ACTIONS = ["view", "create", "borrow", "return", "close", "reopen", "sign_link"]
_PO_ACTIONS = ["view", "create", "submit", "approve", "order", "receive", "close", "cancel"]

DEFAULT_PERMISSIONS: dict[str, dict[str, dict[str, str]]] = {
    "admin": {
        "assets": {a: GLOBAL for a in ["view", "create", "update"]},
        "assignments": {a: GLOBAL for a in _ASSIGNMENT_ACTIONS},
        "stationary": {a: GLOBAL for a in ["view", "create", "approve", "approve_l2", "issue", "manage"]},
        "purchase_orders": {a: GLOBAL for a in _PO_ACTIONS},
        "tickets": {a: GLOBAL for a in ["view", "create", "assign", "update", "close", "cancel", "sweep"]},
    },
    "technician": {
        "assets": {a: GLOBAL for a in ["view", "create", "update"]},
        "assignments": {a: GLOBAL for a in ["view", "create", "borrow", "return", "close", "sign_link"]},
        "stationary": {"view": OWN, "create": OWN},
        "tickets": {a: GLOBAL for a in ["view", "create", "assign", "update", "close", "cancel"]},
    },
    "department_head": {
        "assets": {"view": GLOBAL},
        "assignments": {"view": OWN, "sign_link": OWN},
        "stationary": {"view": DEPARTMENT, "create": OWN, "approve": DEPARTMENT},
        "tickets": {"view": OWN, "create": GLOBAL, "cancel": OWN},
    },
    "director": {
        "assets": {"view": GLOBAL},
        "assignments": {"view": GLOBAL},
        "stationary": {"view": GLOBAL, "create": OWN, "approve": GLOBAL, "approve_l2": GLOBAL},
        "purchase_orders": {"view": GLOBAL, "approve": GLOBAL},
        "tickets": {"view": GLOBAL, "create": GLOBAL},
    },
    "storekeeper": {
        "assets": {"view": GLOBAL},
        "stationary": {"view": GLOBAL, "create": OWN, "issue": GLOBAL, "manage": GLOBAL},
        "purchase_orders": {a: GLOBAL for a in ["view", "create", "submit", "order", "receive", "close", "cancel"]},
        "tickets": {"view": OWN, "create": GLOBAL},
    },
    "user": {
        "assignments": {"view": OWN, "sign_link": OWN},
        "stationary": {"view": OWN, "create": OWN},
        "tickets": {"view": OWN, "create": GLOBAL, "cancel": OWN},
    },
}


def _scope_allows(scope: str, actor: User, context: dict[str, Any]) -> bool:
    if scope == GLOBAL:
        return True
    if scope == DEPARTMENT:
        department_id = context.get("department_id")
        return department_id is None or department_id == actor.department_id
    if scope == OWN:
        owner_id = context.get("owner_id")
        return owner_id is None or owner_id == actor.id
    logger.warning("Unknown permission scope %r", scope)
    return False


def module_enabled(module: str) -> bool:
    return module not in settings.DISABLED_MODULES


def has_module_access(db: Session, actor: User | None, module: str) -> bool:
    if actor is None or not actor.is_active or not module_enabled(module):
        return False
    return db.scalar(
        select(RolePermission.id)
        .where(RolePermission.role == actor.role, RolePermission.module == module)
        .limit(1)
    ) is not None


def can_perform(
    db: Session,
    actor: User | None,
    module: str,
    action: str,
    context: dict[str, Any] | None = None,
) -> bool:
    if actor is None or not actor.is_active or not module_enabled(module):
        return False
    permission = db.scalar(
        select(RolePermission).where(
            RolePermission.role == actor.role,
            RolePermission.module == module,
            RolePermission.action == action,
        )
    )
    if permission is None:
        return False
    return _scope_allows(permission.scope, actor, context or {})


def scope_for(db: Session, actor: User | None, module: str, action: str) -> str | None:
    """Scope of the actor's grant, or None. List endpoints filter rows by it."""
    if actor is None or not actor.is_active or not module_enabled(module):
        return None
    return db.scalar(
        select(RolePermission.scope).where(
            RolePermission.role == actor.role,
            RolePermission.module == module,
            RolePermission.action == action,
        )
    )


def require_permission(
    db: Session,
    actor: User | None,
    module: str,
    action: str,
    context: dict[str, Any] | None = None,
) -> None:
    if not can_perform(db, actor, module, action, context):
        raise PermissionDenied(
            f"Not allowed to {action} in {module}",
            module=module,
            action=action,
        )


def seed_default_permissions(db: Session) -> int:
    """Insert missing matrix cells. Existing cells (possibly customised) are kept."""
    existing = {
        (p.role, p.module, p.action)
        for p in db.scalars(select(RolePermission)).all()
    }
    added = 0
    for role, modules in DEFAULT_PERMISSIONS.items():
        for module, actions in modules.items():
            for action, scope in actions.items():
                if (role, module, action) in existing:
                    continue
                db.add(RolePermission(role=role, module=module, action=action, scope=scope))
                added += 1
    db.commit()
    return added
