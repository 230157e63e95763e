"""
Parking condition model

Closed vocabulary of parking rules and the time-scoped rule type the tag
parser produces.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Union

from .opening_hours import TimeSpan


class ConditionCategory(Enum):
    """Semantic parking-rule classification"""
    FREE = "free"
    DISC = "disc"
    NO_PARKING = "no_parking"
    NO_STOPPING = "no_stopping"
    NOT_APPLICABLE = "not_applicable"
    TICKET = "ticket"
    CUSTOMERS = "customers"
    RESIDENTS = "residents"
    DISABLED = "disabled"
    SEPARATELY_MAPPED = "separately_mapped"
    UNKNOWN = "unknown"


class Side(Enum):
    """Lane side relative to the way's node direction"""
    LEFT = "left"
    RIGHT = "right"
    BOTH = "both"


class Always:
    """Unconditional time span"""

    is_timed = False

    def contains(self, instant: datetime) -> bool:
        return True

    def __repr__(self) -> str:
        return "ALWAYS"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Always)

    def __hash__(self) -> int:
        return hash(Always)


ALWAYS = Always()

AnyTimeSpan = Union[TimeSpan, Always]


@dataclass(frozen=True)
class ConditionRule:
    """A category that holds on one side during a time span"""
    time_span: AnyTimeSpan
    category: ConditionCategory
    side: Side

    @property
    def is_timed(self) -> bool:
        return not isinstance(self.time_span, Always)

    def applies_to(self, side: Side) -> bool:
        return self.side == side or self.side == Side.BOTH
