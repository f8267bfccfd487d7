from datetime import date, datetime
from decimal import Decimal
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from src.service.booking.driving_adapter.http_controller.schema.availability_schema import (
    QuoteLineResponse,
)


class AllocateRequest(BaseModel):
    model_config = {
        'json_schema_extra': {
            'examples': [
                {
                    'service_id': 1,
                    'adult_count': 2,
                    'child_count': 1,
                    'strategy': 'parallel',
                    'slot_date': '2026-03-01',
                    'start_time': '09:00',
                    'end_time': '10:00',
                },
                {
                    'service_id': 1,
                    'adult_count': 2,
                    'strategy': 'consecutive',
                    'slot_date': '2026-03-01',
                    'start_time': '09:00',
                    'end_time': '10:00',
                    'selected_slot_ids': [10, 11],
                },
            ]
        }
    }

    service_id: int
    adult_count: int = Field(ge=0)
    child_count: int = Field(default=0, ge=0)
    strategy: Literal['parallel', 'consecutive'] = 'parallel'
    slot_date: date
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    selected_slot_ids: List[int] = []
    offer_id: Optional[int] = None
    customer_id: Optional[int] = None  # staff booking on behalf of a customer


class QuoteResponse(BaseModel):
    lines: List[QuoteLineResponse]
    total: Decimal
    covered_units: int
    paid_units: int
    entitlement_exhausted: bool


class AllocationResponse(BaseModel):
    service_id: int
    ticket_count: int
    quote: QuoteResponse
    entitlement_remaining: int


class LockRequest(AllocateRequest):
    """Guests identify with the `X-Guest-Token` header issued by the OTP verify endpoint"""


class LockResponse(BaseModel):
    model_config = {
        'json_schema_extra': {
            'example': {
                'lock_id': '01936d8f-5e73-7c4e-a9c5-123456789abc',  # UUID7
                'expires_at': '2026-03-01T08:02:00+00:00',
                'seconds_remaining': 120,
                'quote': {
                    'lines': [],
                    'total': '300.00',
                    'covered_units': 0,
                    'paid_units': 2,
                    'entitlement_exhausted': False,
                },
            }
        }
    }

    lock_id: UUID
    expires_at: datetime
    seconds_remaining: int
    quote: QuoteResponse


class ReleaseLockResponse(BaseModel):
    lock_id: UUID
    released: bool


class CommitRequest(BaseModel):
    model_config = {
        'json_schema_extra': {
            'example': {
                'lock_id': '01936d8f-5e73-7c4e-a9c5-123456789abc',
                'customer_name': 'Sara',
                'customer_phone': '+966501234567',
                'customer_email': 'sara@example.com',
            }
        }
    }

    lock_id: UUID
    customer_name: str = Field(min_length=1)
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = None


class BookingResponse(BaseModel):
    id: UUID
    slot_id: int
    resource_id: Optional[int] = None
    ticket_kind: str
    unit_price: Decimal
    status: str
    payment_status: str
    payment_method: Optional[str] = None
    package_subscription_id: Optional[int] = None


class BookingGroupResponse(BaseModel):
    booking_group_id: UUID
    ticket_count: int
    total_price: Decimal
    bookings: List[BookingResponse]


class PaymentStatusUpdateRequest(BaseModel):
    model_config = {
        'json_schema_extra': {
            'example': {
                'payment_status': 'paid',
                'payment_method': 'transfer',
                'transaction_reference': 'TRX-2026-0001',
            }
        }
    }

    payment_status: Literal['unpaid', 'awaiting_payment', 'paid', 'paid_manual', 'refunded']
    payment_method: Optional[Literal['onsite', 'transfer']] = None
    transaction_reference: Optional[str] = None
