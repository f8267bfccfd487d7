from enum import StrEnum


class UserRole(StrEnum):
    CUSTOMER = 'customer'
    STAFF = 'staff'  # receptionist / cashier booking on behalf of a customer
    TENANT_ADMIN = 'tenant_admin'
