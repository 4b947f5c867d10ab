from .catalog import Category, Product, Warehouse
from .inventory import StockMovement, InventoryBalance
from .parties import Customer, Supplier, SupportTicket
from .pos import PendingBill, PendingBillItem, Transaction, TransactionItem
from .loans import Loan, LoanPayment
from .hr import Employee, Attendance, LeaveRequest, Payroll, EmployeeLoan, EmployeeLoanPayment
from .expenses import ExpenseCategory, Expense, Budget
from .settings import SystemSetting
from .auth import User, Role, UserRole, Permission, RolePermission, SessionToken

__all__ = [
    'Category', 'Product', 'Warehouse',
    'StockMovement', 'InventoryBalance',
    'Customer', 'Supplier', 'SupportTicket',
    'PendingBill', 'PendingBillItem', 'Transaction', 'TransactionItem',
    'Loan', 'LoanPayment',
    'Employee', 'Attendance', 'LeaveRequest', 'Payroll', 'EmployeeLoan', 'EmployeeLoanPayment',
    'ExpenseCategory', 'Expense', 'Budget',
    'SystemSetting',
    'User', 'Role', 'UserRole', 'Permission', 'RolePermission', 'SessionToken',
]
