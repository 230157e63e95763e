"""
Parking condition module

- Conditions: Category/side enums and time-scoped rules
- Opening hours: Time expression parsing
- Tag parser: Tags -> ordered rules
- Resolver: Rules + instant -> category
- Geometry: Lane offsets and stroke parameters by zoom
- Lanes / Areas: Render records for ways, areas and points
- Render state: The records on the map
"""

from .conditions import ConditionCategory, ConditionRule, Side, ALWAYS
from .tag_parser import TagConditionParser
from .resolver import ConditionResolver
from .geometry import GeometryOffsetEngine
from .lanes import LaneAssembler
from .areas import AreaAssembler
from .render_state import RenderState

__all__ = [
    "ConditionCategory",
    "ConditionRule",
    "Side",
    "ALWAYS",
    "TagConditionParser",
    "ConditionResolver",
    "GeometryOffsetEngine",
    "LaneAssembler",
    "AreaAssembler",
    "RenderState",
]
