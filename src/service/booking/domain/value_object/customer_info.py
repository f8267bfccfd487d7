from typing import Optional

import attrs


def _not_blank(instance: object, attribute: 'attrs.Attribute[str]', value: str) -> None:
    if not value or not value.strip():
        raise ValueError(f'{attribute.name} must not be empty')


@attrs.define(frozen=True)
class CustomerInfo:
    """Customer snapshot denormalized onto every booking row at commit time"""

    name: str = attrs.field(validator=_not_blank)
    phone: str = attrs.field(validator=_not_blank)
    email: Optional[str] = None
    customer_id: Optional[int] = None
