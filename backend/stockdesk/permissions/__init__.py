# Overview: Permission codes, their categories and the built-in role grants.

from .categories import PermissionCategory
from .definitions import (
    PERMISSION_CODES,
    PERMISSION_DEFINITIONS,
    INVENTORY_PERMISSIONS,
    SALES_PERMISSIONS,
    CUSTOMER_PERMISSIONS,
    FINANCE_PERMISSIONS,
    EMPLOYEE_PERMISSIONS,
    USER_PERMISSIONS,
    SYSTEM_PERMISSIONS,
)
from .roles import DEFAULT_ROLES, DEFAULT_ROLE_PERMISSIONS

__all__ = [
    "PermissionCategory",
    "PERMISSION_CODES",
    "PERMISSION_DEFINITIONS",
    "INVENTORY_PERMISSIONS",
    "SALES_PERMISSIONS",
    "CUSTOMER_PERMISSIONS",
    "FINANCE_PERMISSIONS",
    "EMPLOYEE_PERMISSIONS",
    "USER_PERMISSIONS",
    "SYSTEM_PERMISSIONS",
    "DEFAULT_ROLES",
    "DEFAULT_ROLE_PERMISSIONS",
]
