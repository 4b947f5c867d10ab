# Overview: Role-based permission resolution and seeding.

"""
Permission checks.

DESIGN PRINCIPLES:
- Fail closed: deny by default, require an explicit grant through a role
- Denials are logged; grants are not
"""

import logging

from ..extensions import db
from ..models import UserRole, Role, RolePermission, Permission
from ..permissions import PERMISSION_CODES, PERMISSION_DEFINITIONS, DEFAULT_ROLE_PERMISSIONS
from ..validation import NotFoundError, ValidationError


logger = logging.getLogger(__name__)


class PermissionDeniedError(Exception):
    """Raised when user lacks required permission."""


def get_user_permissions(user_id: int) -> set[str]:
    """Union of permission codes over all of the user's roles."""
    rows = (
        db.session.query(Permission.code)
        .join(RolePermission, RolePermission.permission_id == Permission.id)
        .join(UserRole, UserRole.role_id == RolePermission.role_id)
        .filter(UserRole.user_id == user_id)
        .distinct()
        .all()
    )
    return {code for (code,) in rows}


def user_has_permission(user_id: int, permission_code: str) -> bool:
    return permission_code in get_user_permissions(user_id)


def require_permission(user_id: int, permission_code: str, resource: str | None = None) -> None:
    """
    Raise PermissionDeniedError unless the user holds permission_code.

    Usage:
        require_permission(user.id, "CREATE_SALE", resource="/api/pos/checkout")
    """
    if not user_has_permission(user_id, permission_code):
        logger.warning("Permission denied: user=%s permission=%s resource=%s", user_id, permission_code, resource)
        raise PermissionDeniedError(f"Permission denied: {permission_code}")


def get_user_role_names(user_id: int) -> list[str]:
    rows = (
        db.session.query(Role.name)
        .join(UserRole, UserRole.role_id == Role.id)
        .filter(UserRole.user_id == user_id)
        .order_by(Role.name)
        .all()
    )
    return [name for (name,) in rows]


def get_role_permissions(role_name: str) -> list[str]:
    role = db.session.query(Role).filter_by(name=role_name).first()
    if not role:
        raise NotFoundError(f"Role '{role_name}' not found")
    return sorted(rp.permission.code for rp in role.role_permissions)


def initialize_permissions() -> int:
    """
    Create Permission rows for every code in PERMISSION_DEFINITIONS.

    Idempotent; returns the number created.
    """
    created_count = 0

    for code, name, description, category in PERMISSION_DEFINITIONS:
        existing = db.session.query(Permission).filter_by(code=code).first()
        if not existing:
            db.session.add(Permission(code=code, name=name, description=description, category=category))
            created_count += 1

    db.session.commit()
    return created_count


def assign_default_role_permissions() -> int:
    """Link built-in roles to DEFAULT_ROLE_PERMISSIONS. Idempotent."""
    created_count = 0

    for role_name, permission_codes in DEFAULT_ROLE_PERMISSIONS.items():
        role = db.session.query(Role).filter_by(name=role_name).first()
        if not role:
            continue

        for permission_code in permission_codes:
            permission = db.session.query(Permission).filter_by(code=permission_code).first()
            if not permission:
                continue

            existing = db.session.query(RolePermission).filter_by(
                role_id=role.id,
                permission_id=permission.id
            ).first()

            if not existing:
                db.session.add(RolePermission(role_id=role.id, permission_id=permission.id))
                created_count += 1

    db.session.commit()
    return created_count


def _role_and_permission(role_name: str, permission_code: str) -> tuple[Role, Permission]:
    if permission_code not in PERMISSION_CODES:
        raise ValidationError(f"Unknown permission code: {permission_code}")
    role = db.session.query(Role).filter_by(name=role_name).first()
    if not role:
        raise NotFoundError(f"Role '{role_name}' not found")

    permission = db.session.query(Permission).filter_by(code=permission_code).first()
    if not permission:
        raise NotFoundError(f"Permission '{permission_code}' not found")
    return role, permission


def grant_permission_to_role(role_name: str, permission_code: str) -> RolePermission:
    role, permission = _role_and_permission(role_name, permission_code)

    existing = db.session.query(RolePermission).filter_by(
        role_id=role.id,
        permission_id=permission.id
    ).first()
    if existing:
        return existing

    role_permission = RolePermission(role_id=role.id, permission_id=permission.id)
    db.session.add(role_permission)
    db.session.commit()
    return role_permission


def revoke_permission_from_role(role_name: str, permission_code: str) -> bool:
    role, permission = _role_and_permission(role_name, permission_code)

    role_permission = db.session.query(RolePermission).filter_by(
        role_id=role.id,
        permission_id=permission.id
    ).first()

    if role_permission:
        db.session.delete(role_permission)
        db.session.commit()
        return True

    return False
