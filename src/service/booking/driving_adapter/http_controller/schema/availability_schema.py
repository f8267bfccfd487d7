from datetime import date
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel


class SlotResponse(BaseModel):
    id: int
    shift_id: int
    resource_id: Optional[int] = None
    slot_date: date
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    free_capacity: int
    booked_count: int
    is_past: bool = False


class TimeWindowResponse(BaseModel):
    slot_date: date
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    free_capacity: int
    slot_ids: List[int]


class AvailabilityResponse(BaseModel):
    model_config = {
        'json_schema_extra': {
            'example': {
                'service_id': 1,
                'start_date': '2026-03-01',
                'end_date': '2026-04-30',
                'counts_by_date': {'2026-03-01': 4},
                'slots': [
                    {
                        'id': 10,
                        'shift_id': 2,
                        'resource_id': 5,
                        'slot_date': '2026-03-01',
                        'start_time': '09:00',
                        'end_time': '10:00',
                        'free_capacity': 3,
                        'booked_count': 1,
                        'is_past': False,
                    }
                ],
                'time_windows': [
                    {
                        'slot_date': '2026-03-01',
                        'start_time': '09:00',
                        'end_time': '10:00',
                        'free_capacity': 3,
                        'slot_ids': [10],
                    }
                ],
            }
        }
    }

    service_id: int
    start_date: date
    end_date: date
    counts_by_date: dict[date, int]
    slots: List[SlotResponse]
    time_windows: List[TimeWindowResponse]


class SubscriptionBalanceResponse(BaseModel):
    subscription_id: int
    original: int
    remaining: int
    used: int
    expires_at: Optional[str] = None


class EntitlementResponse(BaseModel):
    model_config = {
        'json_schema_extra': {
            'example': {
                'available': True,
                'remaining': 3,
                'balances': [
                    {
                        'subscription_id': 7,
                        'original': 10,
                        'remaining': 3,
                        'used': 7,
                        'expires_at': '2026-12-31T00:00:00+00:00',
                    }
                ],
            }
        }
    }

    available: bool
    remaining: int
    balances: List[SubscriptionBalanceResponse]


class QuoteLineResponse(BaseModel):
    unit_index: int
    slot_id: int
    resource_id: Optional[int] = None
    ticket_kind: str
    list_price: Decimal
    unit_price: Decimal
    covered_by_package: bool
    package_subscription_id: Optional[int] = None
    is_extension: bool = False
