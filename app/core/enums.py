from enum import Enum


class PostingType(str, Enum):
    """Location ordering used by the auto-posting scheduler."""

    RANDOM = "random"
    ROUTE_BASED = "route_based"
    LGA_BASED = "lga_based"


class MergedGroupStatus(str, Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"


class SupervisorRole(str, Enum):
    SUPERVISOR = "supervisor"
    FIELD_MONITOR = "field_monitor"
