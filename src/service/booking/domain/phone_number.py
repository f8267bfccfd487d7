"""
Phone normalization and per-country validation for guest verification

Numbers are normalized to `+<country code><national number>` before validation, so the
same guest always lands on the same verification session.
"""

import re

from src.service.booking.domain.booking_exceptions import InvalidPhoneFormatError


DEFAULT_COUNTRY_CODE = '+966'

# National number patterns (without the country code)
COUNTRY_PATTERNS: dict[str, re.Pattern[str]] = {
    '+966': re.compile(r'^5\d{8}$'),  # Saudi Arabia
    '+971': re.compile(r'^[2-9]\d{8}$'),  # UAE
    '+965': re.compile(r'^[569]\d{7}$'),  # Kuwait
    '+974': re.compile(r'^[3-7]\d{7}$'),  # Qatar
    '+973': re.compile(r'^[3-9]\d{7}$'),  # Bahrain
    '+968': re.compile(r'^[79]\d{7}$'),  # Oman
    '+20': re.compile(r'^1\d{9}$'),  # Egypt
    '+1': re.compile(r'^[2-9]\d{9}$'),  # US / Canada
    '+44': re.compile(r'^7\d{9}$'),  # UK mobile
    '+91': re.compile(r'^[6-9]\d{9}$'),  # India
    '+33': re.compile(r'^[6-7]\d{8}$'),  # France mobile
    '+49': re.compile(r'^\d{10,11}$'),  # Germany
    '+61': re.compile(r'^4\d{8}$'),  # Australia mobile
    '+86': re.compile(r'^1[3-9]\d{9}$'),  # China mobile
}

_GENERIC_E164 = re.compile(r'^\+\d{7,15}$')
_SEPARATORS = re.compile(r'[\s\-().]')


def _split_country_code(phone: str) -> tuple[str, str] | None:
    for code in sorted(COUNTRY_PATTERNS, key=len, reverse=True):
        if phone.startswith(code):
            return code, phone[len(code) :]
    return None


def normalize_phone(raw: str, *, default_country_code: str = DEFAULT_COUNTRY_CODE) -> str:
    phone = _SEPARATORS.sub('', raw or '')
    if phone.startswith('00'):
        phone = f'+{phone[2:]}'
    elif not phone.startswith('+'):
        # Local format, e.g. 0501234567
        phone = f'{default_country_code}{phone.lstrip("0")}'

    # Egyptian numbers are commonly written with the trunk 0 after the country code
    if phone.startswith('+200'):
        phone = f'+20{phone[4:]}'
    return phone


def validate_phone(raw: str, *, default_country_code: str = DEFAULT_COUNTRY_CODE) -> str:
    """
    Normalize and validate a phone number.

    Returns:
        Normalized `+<country><number>` string

    Raises:
        InvalidPhoneFormatError: empty input or a number not matching its country's rule
    """
    if not raw or not raw.strip():
        raise InvalidPhoneFormatError(raw or '', 'phone number is required')

    phone = normalize_phone(raw, default_country_code=default_country_code)
    if not _GENERIC_E164.match(phone):
        raise InvalidPhoneFormatError(raw, 'must contain 7 to 15 digits after the country code')

    if split := _split_country_code(phone):
        country_code, national = split
        if not COUNTRY_PATTERNS[country_code].match(national):
            raise InvalidPhoneFormatError(raw, f'not a valid number for {country_code}')
    return phone
