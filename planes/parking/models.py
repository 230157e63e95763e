"""
Pydantic models for render records

These are what the map surface receives: lane, area and point records keyed
by side+wayId, type+id or 'node'+id, with GeoJSON geometry ([lon, lat]).
Records are frozen; a change in inputs produces a replacement record.
"""

from typing import List, Optional, Literal, Union
from pydantic import BaseModel, ConfigDict

from .conditions import ConditionCategory, Side


# ============================================================
# GeoJSON Types
# ============================================================

class GeoJSONPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["Point"] = "Point"
    coordinates: List[float]  # [longitude, latitude]


class GeoJSONLineString(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["LineString"] = "LineString"
    coordinates: List[List[float]]  # [[lon, lat], ...]


class GeoJSONPolygon(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["Polygon"] = "Polygon"
    coordinates: List[List[List[float]]]  # [[[lon, lat], ...]]


class GeoJSONMultiPolygon(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["MultiPolygon"] = "MultiPolygon"
    coordinates: List[List[List[List[float]]]]


# ============================================================
# Render Records
# ============================================================

class StyleParams(BaseModel):
    """Stroke parameters at the zoom the record was built for"""
    model_config = ConfigDict(frozen=True)

    color: str
    weight_px: float
    offset_px: float = 0.0
    opacity: float = 0.9
    dash_array: Optional[str] = None


class LaneSide(BaseModel):
    """One rendered lane for one side of one way"""
    model_config = ConfigDict(frozen=True)

    key: str  # 'left'/'right'/'empty' + way id
    way_id: int
    side: Side
    road_class: str
    category: ConditionCategory
    geometry: GeoJSONLineString
    style: StyleParams


class Backlight(BaseModel):
    """Selection highlight drawn beneath a clicked way's lanes"""
    model_config = ConfigDict(frozen=True)

    side: Side
    geometry: GeoJSONLineString
    style: StyleParams


class ParkingArea(BaseModel):
    """amenity=parking way or multipolygon relation"""
    model_config = ConfigDict(frozen=True)

    key: str  # 'way'/'relation' + id
    osm_type: str
    osm_id: int
    category: ConditionCategory
    geometry: Union[GeoJSONPolygon, GeoJSONMultiPolygon]
    style: StyleParams


class ParkingPoint(BaseModel):
    """amenity=parking or amenity=parking_entrance node"""
    model_config = ConfigDict(frozen=True)

    key: str  # 'node' + id
    node_id: int
    amenity: str
    category: ConditionCategory
    geometry: GeoJSONPoint
    radius_px: float
    style: StyleParams
