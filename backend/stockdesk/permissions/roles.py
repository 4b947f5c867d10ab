# Overview: Default permission sets per built-in role.

from .definitions import PERMISSION_DEFINITIONS


DEFAULT_ROLES = [
    ("admin", "Full system access"),
    ("manager", "Inventory, sales, staff and finance management"),
    ("cashier", "POS sales and pending bills"),
]


_ADMIN_ONLY = {"MANAGE_PERMISSIONS", "SYSTEM_ADMIN", "CREATE_USER", "EDIT_USER"}


DEFAULT_ROLE_PERMISSIONS = {
    "admin": [perm[0] for perm in PERMISSION_DEFINITIONS],
    "manager": [perm[0] for perm in PERMISSION_DEFINITIONS if perm[0] not in _ADMIN_ONLY],
    "cashier": [
        "VIEW_INVENTORY",
        "CREATE_SALE",
        "MANAGE_PENDING_BILLS",
        "VIEW_TRANSACTIONS",
        "VIEW_CUSTOMERS",
        "VIEW_NOTIFICATIONS",
    ],
}
