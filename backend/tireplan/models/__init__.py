from .tenancy import User, Store, ROLE_SUPER_ADMIN, ROLE_STORE_ADMIN, ROLE_STAFF
from .inventory import (
    Product, ProductStock, Brand, StockInRecord, StockTransferRecord,
    PLACEHOLDER_PRODUCT_ID, SERVICE_STOCK_THRESHOLD,
)
from .sales import Sale, SaleItem, PAYMENT_METHODS
from .customers import Customer
from .auth import SessionToken, PHASE_STORE_SELECT, PHASE_APP, PHASE_SUPER_ADMIN
from .operations import (
    Reservation, Staff, ExpenseRecord, LeaveRequest, LEAVE_TYPES, LEAVE_STATUSES,
)

__all__ = [
    'User', 'Store', 'ROLE_SUPER_ADMIN', 'ROLE_STORE_ADMIN', 'ROLE_STAFF',
    'Product', 'ProductStock', 'Brand', 'StockInRecord', 'StockTransferRecord',
    'PLACEHOLDER_PRODUCT_ID', 'SERVICE_STOCK_THRESHOLD',
    'Sale', 'SaleItem', 'PAYMENT_METHODS',
    'Customer',
    'SessionToken', 'PHASE_STORE_SELECT', 'PHASE_APP', 'PHASE_SUPER_ADMIN',
    'Reservation', 'Staff', 'ExpenseRecord', 'LeaveRequest', 'LEAVE_TYPES', 'LEAVE_STATUSES',
]
