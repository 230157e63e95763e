"""
Legend: condition category -> display color
"""

from dataclasses import dataclass
from typing import Dict, List

from .conditions import ConditionCategory
from ..config import get_config


@dataclass(frozen=True)
class LegendEntry:
    category: ConditionCategory
    color: str
    text: str


LEGEND: List[LegendEntry] = [
    LegendEntry(ConditionCategory.FREE, "limegreen", "Free parking"),
    LegendEntry(ConditionCategory.DISC, "yellowgreen", "Disc"),
    LegendEntry(ConditionCategory.NO_PARKING, "orange", "No parking"),
    LegendEntry(ConditionCategory.NO_STOPPING, "salmon", "No stopping"),
    LegendEntry(ConditionCategory.NOT_APPLICABLE, "#FFC7B6", "Not applicable"),
    LegendEntry(ConditionCategory.TICKET, "dodgerblue", "Paid parking"),
    LegendEntry(ConditionCategory.CUSTOMERS, "greenyellow", "For customers"),
    LegendEntry(ConditionCategory.RESIDENTS, "hotpink", "For residents"),
    LegendEntry(ConditionCategory.DISABLED, "turquoise", "Disabled"),
    LegendEntry(ConditionCategory.SEPARATELY_MAPPED, "gray", "Parking street side mapped separately"),
]

_COLORS: Dict[ConditionCategory, str] = {entry.category: entry.color for entry in LEGEND}


def get_color(category: ConditionCategory) -> str:
    """Legend color, or the configured unknown color for unresolved conditions"""
    return _COLORS.get(category, get_config().lanes.unknown_color)
