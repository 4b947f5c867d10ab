# Overview: All permission definitions organized by category.
# Each permission is defined as: (code, name, description, category)

from .categories import PermissionCategory


# -- INVENTORY --

INVENTORY_PERMISSIONS = [
    ("VIEW_INVENTORY", "View Inventory", "View products, balances and stock movements", PermissionCategory.INVENTORY),
    ("MANAGE_PRODUCTS", "Manage Products", "Create, edit, import and delete products and categories", PermissionCategory.INVENTORY),
    ("RECORD_MOVEMENTS", "Record Movements", "Record stock in/out movements", PermissionCategory.INVENTORY),
    ("DELETE_MOVEMENTS", "Delete Movements", "Delete a stock movement (reverses its balance effect)", PermissionCategory.INVENTORY),
    ("MANAGE_WAREHOUSES", "Manage Warehouses", "Create and edit warehouses, move Extra items to regular stock", PermissionCategory.INVENTORY),
    ("RECONCILE_INVENTORY", "Reconcile Inventory", "Rebuild balances from the movement ledger", PermissionCategory.INVENTORY),
]


# -- SALES --

SALES_PERMISSIONS = [
    ("CREATE_SALE", "Create Sale", "Check out carts and add manual POS items", PermissionCategory.SALES),
    ("MANAGE_PENDING_BILLS", "Manage Pending Bills", "Park, resume, close and delete pending bills", PermissionCategory.SALES),
    ("VIEW_TRANSACTIONS", "View Transactions", "View completed sales and receipts", PermissionCategory.SALES),
    ("VIEW_REPORTS", "View Reports", "View sales summaries, best sellers and the activity feed", PermissionCategory.SALES),
]


# -- CUSTOMERS --

CUSTOMER_PERMISSIONS = [
    ("VIEW_CUSTOMERS", "View Customers", "View customers and suppliers", PermissionCategory.CUSTOMERS),
    ("MANAGE_CUSTOMERS", "Manage Customers", "Create, edit and delete customers and suppliers", PermissionCategory.CUSTOMERS),
    ("MANAGE_LOANS", "Manage Loans", "Issue customer loans and record payments", PermissionCategory.CUSTOMERS),
    ("MANAGE_TICKETS", "Manage Support Tickets", "Open and resolve support tickets", PermissionCategory.CUSTOMERS),
]


# -- FINANCE --

FINANCE_PERMISSIONS = [
    ("VIEW_EXPENSES", "View Expenses", "View expenses and budgets", PermissionCategory.FINANCE),
    ("MANAGE_EXPENSES", "Manage Expenses", "Record expenses and maintain budgets", PermissionCategory.FINANCE),
]


# -- EMPLOYEES --

EMPLOYEE_PERMISSIONS = [
    ("VIEW_EMPLOYEES", "View Employees", "View employee records", PermissionCategory.EMPLOYEES),
    ("MANAGE_EMPLOYEES", "Manage Employees", "Edit employees, attendance, payroll and employee loans", PermissionCategory.EMPLOYEES),
    ("APPROVE_LEAVE", "Approve Leave", "Approve or reject leave requests", PermissionCategory.EMPLOYEES),
]


# -- USERS --

USER_PERMISSIONS = [
    ("VIEW_USERS", "View Users", "View user list and roles", PermissionCategory.USERS),
    ("CREATE_USER", "Create User", "Create new user accounts", PermissionCategory.USERS),
    ("EDIT_USER", "Edit User", "Edit users, assign roles, deactivate accounts", PermissionCategory.USERS),
    ("MANAGE_PERMISSIONS", "Manage Permissions", "Grant and revoke role permissions", PermissionCategory.USERS),
]


# -- SYSTEM --

SYSTEM_PERMISSIONS = [
    ("VIEW_NOTIFICATIONS", "View Notifications", "View derived stock, loan and ticket alerts", PermissionCategory.SYSTEM),
    ("MANAGE_SETTINGS", "Manage Settings", "Change business settings (currency, tax, receipts)", PermissionCategory.SYSTEM),
    ("SYSTEM_ADMIN", "System Administration", "Full system access", PermissionCategory.SYSTEM),
]


PERMISSION_DEFINITIONS = (
    INVENTORY_PERMISSIONS
    + SALES_PERMISSIONS
    + CUSTOMER_PERMISSIONS
    + FINANCE_PERMISSIONS
    + EMPLOYEE_PERMISSIONS
    + USER_PERMISSIONS
    + SYSTEM_PERMISSIONS
)

PERMISSION_CODES = frozenset(code for code, _name, _description, _category in PERMISSION_DEFINITIONS)
