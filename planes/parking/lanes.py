"""
Lane assembly

Combines condition resolution and lane geometry into the render records
for one way: a lane per side, a single 'empty' lane, or nothing.
"""

from datetime import datetime
from typing import Dict, List, Optional

from .conditions import ConditionCategory, ConditionRule, Side
from .geometry import GeometryOffsetEngine, validate_path
from .legend import get_color
from .models import GeoJSONLineString, LaneSide, StyleParams
from .resolver import ConditionResolver
from .tag_parser import TagConditionParser
from ..config import get_config
from ..exceptions import InvalidGeometry
from ..osm.models import OsmWay


EMPTY_KEY = "empty"
LANE_KEY_PREFIXES = ("right", "left", EMPTY_KEY)


def lane_key(side_key: str, way_id: int) -> str:
    return f"{side_key}{way_id}"


def lane_keys(way_id: int) -> List[str]:
    """Every key a way's lanes can be stored under"""
    return [lane_key(prefix, way_id) for prefix in LANE_KEY_PREFIXES]


class LaneAssembler:
    """Builds LaneSide records for lane-bearing ways"""

    def __init__(
        self,
        parser: Optional[TagConditionParser] = None,
        geometry: Optional[GeometryOffsetEngine] = None
    ):
        self.config = get_config()
        self.parser = parser or TagConditionParser()
        self.geometry = geometry or GeometryOffsetEngine()
        self.resolver = ConditionResolver()

    def assemble(
        self,
        way: OsmWay,
        node_coords: Dict[int, List[float]],
        zoom: float,
        editor_mode: bool,
        instant: datetime
    ) -> Dict[str, LaneSide]:
        """
        Build the lanes of one way

        Args:
            way: the way
            node_coords: node id -> [lon, lat]
            zoom: map zoom
            editor_mode: include sides whose condition is unknown, and an
                'empty' lane for untagged ways
            instant: date and time to resolve conditions at

        Returns:
            Mapping 'left'/'right'/'empty' + way id -> LaneSide; empty for
            ways that do not carry lanes

        Raises:
            InvalidGeometry: missing node coordinates or a degenerate path
        """
        road_class = self.parser.road_class(way.tags)
        if road_class is None:
            return {}

        missing = [n for n in way.nodes if n not in node_coords]
        if missing:
            raise InvalidGeometry(f"Missing coordinates for nodes {missing[:5]}", way.id)
        coords = way.get_coordinates(node_coords)
        try:
            validate_path(coords)
        except InvalidGeometry as e:
            raise InvalidGeometry(str(e), way.id) from e

        rules = self.parser.parse(way.tags, entity_id=way.id)
        categories = self.side_categories(rules, instant, editor_mode)

        if not categories:
            if not editor_mode:
                return {}
            return {lane_key(EMPTY_KEY, way.id): self._lane(
                way, road_class, Side.BOTH, ConditionCategory.UNKNOWN, coords, zoom
            )}

        left = categories.get(Side.LEFT)
        right = categories.get(Side.RIGHT)
        if left is not None and left == right and zoom < self.config.lanes.split_zoom:
            return {lane_key(EMPTY_KEY, way.id): self._lane(way, road_class, Side.BOTH, left, coords, zoom)}

        return {
            lane_key(side.value, way.id): self._lane(way, road_class, side, category, coords, zoom)
            for side, category in categories.items()
        }

    def side_categories(
        self,
        rules: List[ConditionRule],
        instant: datetime,
        editor_mode: bool
    ) -> Dict[Side, ConditionCategory]:
        """Category per side that has rules, leaving out unknown ones outside the editor"""
        categories = {}
        for side in (Side.LEFT, Side.RIGHT):
            if not self.resolver.has_rules(rules, side):
                continue
            category = self.resolver.resolve(rules, side, instant)
            if category == ConditionCategory.UNKNOWN and not editor_mode:
                continue
            categories[side] = category
        return categories

    def _lane(
        self,
        way: OsmWay,
        road_class: str,
        side: Side,
        category: ConditionCategory,
        coords: List[List[float]],
        zoom: float
    ) -> LaneSide:
        stroke = self.geometry.stroke_for_zoom(zoom, road_class)
        side_key = EMPTY_KEY if side == Side.BOTH else side.value
        unknown = category == ConditionCategory.UNKNOWN
        style = StyleParams(
            color=get_color(category),
            weight_px=stroke.weight_px,
            offset_px=0.0 if side == Side.BOTH else stroke.offset_px,
            opacity=self.config.lanes.opacity,
            dash_array=self.config.lanes.unknown_dash if unknown else None,
        )
        return LaneSide(
            key=lane_key(side_key, way.id),
            way_id=way.id,
            side=side,
            road_class=road_class,
            category=category,
            geometry=GeoJSONLineString(
                coordinates=self.geometry.offset_path(coords, side, zoom, road_class)
            ),
            style=style,
        )
