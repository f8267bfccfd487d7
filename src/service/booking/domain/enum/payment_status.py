from enum import StrEnum


class PaymentStatus(StrEnum):
    UNPAID = 'unpaid'
    AWAITING_PAYMENT = 'awaiting_payment'
    PAID = 'paid'
    PAID_MANUAL = 'paid_manual'
    REFUNDED = 'refunded'


class PaymentMethod(StrEnum):
    ONSITE = 'onsite'
    TRANSFER = 'transfer'
