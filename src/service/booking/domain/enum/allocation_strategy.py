from enum import StrEnum


class AllocationStrategy(StrEnum):
    PARALLEL = 'parallel'  # same window, different resources
    CONSECUTIVE = 'consecutive'  # caller-selected slots on one resource
