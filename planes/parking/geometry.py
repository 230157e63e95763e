"""
Lane geometry

Offsets a way's centerline to the left or right at a zoom-dependent
distance, keeping node count and direction, and builds the wider selection
backlights.

Offsets are configured in screen pixels per zoom level (so the two sides
separate visually) and converted to meters at the path's latitude before
offsetting in a local metric frame.
"""

import math
from dataclasses import dataclass
from typing import Dict, List, Tuple

from shapely.geometry import LineString

from .conditions import Side
from .models import Backlight, GeoJSONLineString, StyleParams
from ..config import get_config
from ..exceptions import InvalidGeometry


EARTH_CIRCUMFERENCE_M = 40075016.686
TILE_SIZE_PX = 256
M_PER_DEG_LAT = 111000

# Longest miter, as a multiple of the offset, at sharp corners
MITER_LIMIT = 4.0


@dataclass(frozen=True)
class LaneStroke:
    """Offset and weight in pixels for one road class at one zoom"""
    offset_px: float
    weight_px: float


def meters_per_pixel(zoom: float, lat: float) -> float:
    """Ground resolution of a web-mercator map"""
    return EARTH_CIRCUMFERENCE_M * math.cos(math.radians(lat)) / (TILE_SIZE_PX * 2 ** zoom)


def degrees_to_local(
    coords: List[List[float]],
    ref_lon: float,
    ref_lat: float
) -> List[Tuple[float, float]]:
    """Convert [lon, lat] coordinates to local [x, y] meters from reference"""
    m_per_deg_lon = M_PER_DEG_LAT * math.cos(math.radians(ref_lat))
    return [((lon - ref_lon) * m_per_deg_lon, (lat - ref_lat) * M_PER_DEG_LAT) for lon, lat in coords]


def local_to_degrees(
    local_coords: List[Tuple[float, float]],
    ref_lon: float,
    ref_lat: float
) -> List[List[float]]:
    """Convert local [x, y] meters to [lon, lat] degrees"""
    m_per_deg_lon = M_PER_DEG_LAT * math.cos(math.radians(ref_lat))
    return [[ref_lon + x / m_per_deg_lon, ref_lat + y / M_PER_DEG_LAT] for x, y in local_coords]


class GeometryOffsetEngine:
    """Computes lane centerlines and stroke parameters"""

    def __init__(self):
        self.config = get_config()

    def stroke_for_zoom(self, zoom: float, road_class: str = "minor") -> LaneStroke:
        """
        Offset and weight for a zoom level

        Zooms outside the configured table clamp to its first/last entry;
        below min_offset_zoom the offset is zero.
        """
        styles = self.config.lanes.zoom_styles
        levels = sorted(styles)
        level = min(max(int(math.floor(zoom)), levels[0]), levels[-1])
        # Fill gaps in the table from the nearest lower level
        level = max(z for z in levels if z <= level)
        style = styles[level]

        if road_class == "major":
            offset, weight = style.offset_major, style.weight_major
        else:
            offset, weight = style.offset_minor, style.weight_minor

        if zoom < self.config.lanes.min_offset_zoom:
            offset = 0.0
        return LaneStroke(offset_px=float(offset), weight_px=float(weight))

    def offset_path(
        self,
        node_coords: List[List[float]],
        side: Side,
        zoom: float,
        road_class: str = "minor"
    ) -> List[List[float]]:
        """
        Offset a path to one side

        Args:
            node_coords: ordered [lon, lat] coordinates of the way's nodes
            side: Side.LEFT or Side.RIGHT relative to the node direction;
                Side.BOTH returns the centerline itself
            zoom: map zoom
            road_class: 'major' or 'minor'

        Returns:
            Offset coordinates, same count and direction as the input

        Raises:
            InvalidGeometry: fewer than two nodes, or zero length
        """
        validate_path(node_coords)
        if side == Side.BOTH:
            return [list(c) for c in node_coords]

        stroke = self.stroke_for_zoom(zoom, road_class)
        if stroke.offset_px == 0:
            return [list(c) for c in node_coords]

        ref_lon = sum(c[0] for c in node_coords) / len(node_coords)
        ref_lat = sum(c[1] for c in node_coords) / len(node_coords)
        distance = stroke.offset_px * meters_per_pixel(zoom, ref_lat)
        if side == Side.RIGHT:
            distance = -distance

        local = degrees_to_local(node_coords, ref_lon, ref_lat)
        shifted = offset_local(local, distance)
        return local_to_degrees(shifted, ref_lon, ref_lat)

    def get_backlights(
        self,
        node_coords: List[List[float]],
        zoom: float,
        road_class: str = "minor"
    ) -> Dict[Side, Backlight]:
        """
        Selection highlight for a clicked way

        Same offsets as the lanes, with a wider, translucent stroke.
        """
        stroke = self.stroke_for_zoom(zoom, road_class)
        backlight = self.config.backlight
        style = StyleParams(
            color=backlight.color,
            weight_px=stroke.weight_px + backlight.extra_weight_px,
            offset_px=stroke.offset_px,
            opacity=backlight.opacity,
        )
        return {
            side: Backlight(
                side=side,
                geometry=GeoJSONLineString(coordinates=self.offset_path(node_coords, side, zoom, road_class)),
                style=style,
            )
            for side in (Side.LEFT, Side.RIGHT)
        }


def validate_path(node_coords: List[List[float]]) -> None:
    """Raise InvalidGeometry for paths that cannot be drawn as a line"""
    if len(node_coords) < 2:
        raise InvalidGeometry(f"Way needs at least 2 nodes, got {len(node_coords)}")
    if LineString(node_coords).length == 0:
        raise InvalidGeometry("Way has zero length")


def offset_local(coords: List[Tuple[float, float]], distance: float) -> List[Tuple[float, float]]:
    """
    Shift every vertex perpendicular to the path

    Positive distance is to the left of the direction of travel. Interior
    vertices are placed on the intersection of the two offset edges (miter),
    limited to MITER_LIMIT times the distance. Repeated vertices keep their
    neighbour's normal, so the output has as many vertices as the input.
    """
    normals = []
    for i in range(len(coords) - 1):
        dx = coords[i + 1][0] - coords[i][0]
        dy = coords[i + 1][1] - coords[i][1]
        length = math.sqrt(dx * dx + dy * dy)
        if length < 1e-9:
            normals.append(None)
        else:
            # Left-hand normal
            normals.append((-dy / length, dx / length))

    shifted = []
    for i, (x, y) in enumerate(coords):
        before = _nearest_normal(normals, i - 1, -1)
        after = _nearest_normal(normals, i, 1)
        if before is None:
            before = after
        if after is None:
            after = before

        mx = before[0] + after[0]
        my = before[1] + after[1]
        m_len = math.sqrt(mx * mx + my * my)
        if m_len < 1e-9:
            # Path doubles back on itself
            nx, ny, scale = after[0], after[1], 1.0
        else:
            nx, ny = mx / m_len, my / m_len
            cos_half = nx * after[0] + ny * after[1]
            scale = min(1.0 / cos_half, MITER_LIMIT) if cos_half > 1e-9 else MITER_LIMIT

        shifted.append((x + nx * distance * scale, y + ny * distance * scale))

    return shifted


def _nearest_normal(normals, start: int, step: int):
    i = start
    while 0 <= i < len(normals):
        if normals[i] is not None:
            return normals[i]
        i += step
    return None
