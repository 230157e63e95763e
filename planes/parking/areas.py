"""
Parking areas and points

Builds render records for amenity=parking ways and multipolygon relations
(polygons, no sides) and for amenity=parking / parking_entrance nodes
(markers). Conditions resolve the same way as lanes, on Side.BOTH.
"""

from datetime import datetime
from typing import Dict, List, Optional

from loguru import logger
from shapely.geometry import LineString, MultiPolygon, Polygon, mapping
from shapely.ops import polygonize, unary_union

from .conditions import Side
from .legend import get_color
from .models import GeoJSONMultiPolygon, GeoJSONPoint, GeoJSONPolygon, ParkingArea, ParkingPoint, StyleParams
from .resolver import ConditionResolver
from .tag_parser import TagConditionParser
from ..config import get_config
from ..exceptions import InvalidGeometry
from ..osm.models import OsmNode, OsmRelation, OsmWay


POINT_AMENITIES = ("parking", "parking_entrance")


def area_key(osm_type: str, osm_id: int) -> str:
    return f"{osm_type}{osm_id}"


def point_key(node_id: int) -> str:
    return f"node{node_id}"


class AreaAssembler:
    """Builds ParkingArea and ParkingPoint records"""

    def __init__(self, parser: Optional[TagConditionParser] = None):
        self.config = get_config()
        self.parser = parser or TagConditionParser()
        self.resolver = ConditionResolver()

    def assemble_area(
        self,
        way: OsmWay,
        node_coords: Dict[int, List[float]],
        instant: datetime
    ) -> Dict[str, ParkingArea]:
        """
        Build the area record of a closed amenity=parking way

        Raises:
            InvalidGeometry: the way is not a closed ring or the ring is invalid
        """
        if way.tags.get("amenity") != "parking":
            return {}
        if not way.is_closed:
            raise InvalidGeometry("Parking area way is not closed", way.id)
        missing = [n for n in way.nodes if n not in node_coords]
        if missing:
            raise InvalidGeometry(f"Missing coordinates for nodes {missing[:5]}", way.id)

        polygon = Polygon(way.get_coordinates(node_coords))
        if not polygon.is_valid or polygon.area == 0:
            raise InvalidGeometry("Parking area ring is not a valid polygon", way.id)

        return {area_key("way", way.id): self._area("way", way.id, way.tags, polygon, instant)}

    def assemble_relation(
        self,
        relation: OsmRelation,
        node_coords: Dict[int, List[float]],
        ways: Dict[int, OsmWay],
        instant: datetime
    ) -> Dict[str, ParkingArea]:
        """
        Build the area record of an amenity=parking multipolygon

        Outer and inner member ways are joined into rings; members missing
        from the download are left out.

        Raises:
            InvalidGeometry: no closed outer ring can be formed
        """
        if relation.tags.get("amenity") != "parking":
            return {}

        outer = self._rings(relation, "outer", node_coords, ways)
        # Untagged roles are treated as outer, as editors do
        outer += self._rings(relation, "", node_coords, ways)
        inner = self._rings(relation, "inner", node_coords, ways)
        if not outer:
            raise InvalidGeometry("Multipolygon has no closed outer ring", relation.id)

        shape = unary_union(outer)
        if inner:
            shape = shape.difference(unary_union(inner))
        if shape.is_empty:
            raise InvalidGeometry("Multipolygon is empty after removing inner rings", relation.id)

        return {area_key("relation", relation.id): self._area("relation", relation.id, relation.tags, shape, instant)}

    def assemble_point(
        self,
        node: OsmNode,
        zoom: float,
        instant: datetime
    ) -> Dict[str, ParkingPoint]:
        """Build the marker record of a parking or parking_entrance node"""
        amenity = node.tags.get("amenity")
        if amenity not in POINT_AMENITIES:
            return {}

        rules = self.parser.parse(node.tags, area=True, entity_id=node.id)
        category = self.resolver.resolve(rules, Side.BOTH, instant)
        radius = self.point_radius(zoom)
        return {point_key(node.id): ParkingPoint(
            key=point_key(node.id),
            node_id=node.id,
            amenity=amenity,
            category=category,
            geometry=GeoJSONPoint(coordinates=node.get_coordinates()),
            radius_px=radius,
            style=StyleParams(color=get_color(category), weight_px=1.0, opacity=self.config.lanes.opacity),
        )}

    def point_radius(self, zoom: float) -> float:
        points = self.config.points
        steps = max(0.0, zoom - points.min_zoom)
        return points.base_radius_px + points.radius_step_px * steps

    def _area(self, osm_type: str, osm_id: int, tags: Dict[str, str], shape, instant: datetime) -> ParkingArea:
        rules = self.parser.parse(tags, area=True, entity_id=osm_id)
        category = self.resolver.resolve(rules, Side.BOTH, instant)
        return ParkingArea(
            key=area_key(osm_type, osm_id),
            osm_type=osm_type,
            osm_id=osm_id,
            category=category,
            geometry=_to_geojson(shape),
            style=StyleParams(
                color=get_color(category),
                weight_px=self.config.areas.weight_px,
                opacity=self.config.areas.opacity,
            ),
        )

    @staticmethod
    def _rings(
        relation: OsmRelation,
        role: str,
        node_coords: Dict[int, List[float]],
        ways: Dict[int, OsmWay]
    ) -> List[Polygon]:
        lines = []
        for member in relation.way_members(role):
            way = ways.get(member.ref)
            if way is None:
                logger.debug(f"Relation {relation.id}: member way {member.ref} not downloaded")
                continue
            coords = way.get_coordinates(node_coords)
            if len(coords) >= 2:
                lines.append(LineString(coords))
        if not lines:
            return []
        return [p for p in polygonize(unary_union(lines)) if p.is_valid and p.area > 0]


def _to_geojson(shape):
    """Convert a shapely (Multi)Polygon to the GeoJSON record type"""
    geojson = mapping(shape)
    if isinstance(shape, Polygon):
        return GeoJSONPolygon(coordinates=_lists(geojson["coordinates"]))
    if isinstance(shape, MultiPolygon):
        return GeoJSONMultiPolygon(coordinates=_lists(geojson["coordinates"]))
    polygons = [g for g in getattr(shape, "geoms", []) if isinstance(g, Polygon)]
    if not polygons:
        raise InvalidGeometry(f"Unexpected area geometry {shape.geom_type}")
    return GeoJSONMultiPolygon(coordinates=_lists(mapping(MultiPolygon(polygons))["coordinates"]))


def _lists(value):
    """shapely's mapping() uses tuples; the GeoJSON models use lists"""
    if isinstance(value, (tuple, list)):
        return [_lists(v) for v in value]
    return float(value)
