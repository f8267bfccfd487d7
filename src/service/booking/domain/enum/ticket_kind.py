from enum import StrEnum


class TicketKind(StrEnum):
    ADULT = 'adult'
    CHILD = 'child'
