"""
Render state

The lane, area and point records currently on the map, plus the view
parameters (zoom, instant, editor mode) they were built for. One controller
owns an instance; the OSM data is passed in rather than captured.
"""

from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple, Union

from loguru import logger

from .areas import AreaAssembler, area_key, point_key
from .conditions import Side
from .geometry import GeometryOffsetEngine
from .lanes import LaneAssembler, lane_key, lane_keys, LANE_KEY_PREFIXES, EMPTY_KEY
from .models import Backlight, LaneSide, ParkingArea, ParkingPoint
from .tag_parser import TagConditionParser
from ..exceptions import InvalidGeometry, UnknownEntity
from ..osm.models import EntityKey, OsmNode, OsmRelation, OsmWay, ParsedOsmData


class RenderState:
    """Owned mapping of render keys to records"""

    def __init__(self, zoom: float, instant: datetime, editor_mode: bool = False):
        self.zoom = zoom
        self.instant = instant
        self.editor_mode = editor_mode

        self.lanes: Dict[str, LaneSide] = {}
        self.areas: Dict[str, ParkingArea] = {}
        self.points: Dict[str, ParkingPoint] = {}

        parser = TagConditionParser()
        self.geometry = GeometryOffsetEngine()
        self.lane_assembler = LaneAssembler(parser, self.geometry)
        self.area_assembler = AreaAssembler(parser)

    # ------------------------------------------------------------
    # Building
    # ------------------------------------------------------------

    def merge(self, data: ParsedOsmData, new: Optional[ParsedOsmData] = None) -> List[str]:
        """
        Render entities that are not on the map yet

        Args:
            data: all known entities (coordinates and relation members are
                looked up here)
            new: entities of the latest download; defaults to all of data

        Returns:
            Keys of the records added. An entity whose geometry is invalid is
            logged and skipped; the rest of the batch is still rendered.
        """
        new = new or data
        added: List[str] = []
        failed = 0

        for relation_id in new.relations:
            relation = data.relations.get(relation_id) or new.relations[relation_id]
            if relation.tags.get("amenity") != "parking" or area_key("relation", relation.id) in self.areas:
                continue
            records = self._guard(relation, lambda: self.area_assembler.assemble_relation(
                relation, data.node_coords, data.ways, self.instant))
            failed += records is None
            added += self._store(self.areas, records)

        for way_id in new.ways:
            # The store may hold a locally edited copy
            way = data.ways.get(way_id) or new.ways[way_id]
            if way.tags.get("highway"):
                if any(key in self.lanes for key in lane_keys(way.id)):
                    continue
                records = self._guard(way, lambda: self.lane_assembler.assemble(
                    way, data.node_coords, self.zoom, self.editor_mode, self.instant))
                failed += records is None
                added += self._store(self.lanes, records)
            elif way.tags.get("amenity") == "parking":
                if area_key("way", way.id) in self.areas:
                    continue
                records = self._guard(way, lambda: self.area_assembler.assemble_area(
                    way, data.node_coords, self.instant))
                failed += records is None
                added += self._store(self.areas, records)

        for node_id in new.nodes:
            node = data.nodes.get(node_id) or new.nodes[node_id]
            if point_key(node.id) in self.points:
                continue
            records = self._guard(node, lambda: self.area_assembler.assemble_point(node, self.zoom, self.instant))
            failed += records is None
            added += self._store(self.points, records)

        logger.info(f"Rendered {len(added)} new records ({failed} entities skipped)")
        return added

    def refresh(self, data: ParsedOsmData) -> None:
        """Rebuild every record for the current zoom, instant and mode"""
        self.lanes = {}
        self.areas = {}
        self.points = {}
        self.merge(data)

    def set_datetime(self, instant: datetime, data: ParsedOsmData) -> None:
        if instant == self.instant:
            return
        self.instant = instant
        self.refresh(data)

    def set_zoom(self, zoom: float, data: ParsedOsmData) -> None:
        if zoom == self.zoom:
            return
        self.zoom = zoom
        self.refresh(data)

    def set_editor_mode(self, editor_mode: bool, data: ParsedOsmData) -> None:
        """Switch mode; leaving the editor drops the 'empty' prompt lanes"""
        if editor_mode == self.editor_mode:
            return
        self.editor_mode = editor_mode
        if not editor_mode:
            self.drop_empty_lanes()
        self.refresh(data)

    def replace_way(self, way: OsmWay, data: ParsedOsmData) -> Dict[str, LaneSide]:
        """
        Replace the lanes of an edited way

        Raises:
            InvalidGeometry: the edited way cannot be drawn; its old lanes are
                already removed
        """
        self.remove_lanes(way.id)
        lanes = self.lane_assembler.assemble(way, data.node_coords, self.zoom, self.editor_mode, self.instant)
        self.lanes.update(lanes)
        return lanes

    # ------------------------------------------------------------
    # Removal and re-keying
    # ------------------------------------------------------------

    def remove_lanes(self, way_id: int) -> List[str]:
        removed = []
        for key in lane_keys(way_id):
            if self.lanes.pop(key, None) is not None:
                removed.append(key)
        return removed

    def drop_empty_lanes(self) -> List[str]:
        removed = [key for key in self.lanes if key.startswith(EMPTY_KEY)]
        for key in removed:
            del self.lanes[key]
        return removed

    def drop_entities(self, keys: Iterable[EntityKey]) -> None:
        """Remove all records of the given (type, id) entities"""
        for entity_type, entity_id in keys:
            if entity_type == "way":
                self.remove_lanes(entity_id)
                self.areas.pop(area_key("way", entity_id), None)
            elif entity_type == "relation":
                self.areas.pop(area_key("relation", entity_id), None)
            elif entity_type == "node":
                self.points.pop(point_key(entity_id), None)

    def rekey(self, old_to_new: Dict[EntityKey, int]) -> None:
        """
        Move records of uploaded entities from temporary to server ids

        No record keyed by a temporary id is left behind.
        """
        for (entity_type, old_id), new_id in old_to_new.items():
            if entity_type == "way":
                for prefix in LANE_KEY_PREFIXES:
                    lane = self.lanes.pop(lane_key(prefix, old_id), None)
                    if lane is not None:
                        new_key = lane_key(prefix, new_id)
                        self.lanes[new_key] = lane.model_copy(update={"key": new_key, "way_id": new_id})
            if entity_type in ("way", "relation"):
                area = self.areas.pop(area_key(entity_type, old_id), None)
                if area is not None:
                    new_key = area_key(entity_type, new_id)
                    self.areas[new_key] = area.model_copy(update={"key": new_key, "osm_id": new_id})
            if entity_type == "node":
                point = self.points.pop(point_key(old_id), None)
                if point is not None:
                    new_key = point_key(new_id)
                    self.points[new_key] = point.model_copy(update={"key": new_key, "node_id": new_id})

    # ------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------

    def lanes_for(self, way_id: int) -> Dict[str, LaneSide]:
        return {key: self.lanes[key] for key in lane_keys(way_id) if key in self.lanes}

    def backlights(self, way: OsmWay, data: ParsedOsmData) -> Dict[Side, Backlight]:
        """Selection highlight for a rendered way"""
        lanes = self.lanes_for(way.id)
        if not lanes:
            raise UnknownEntity(f"Way {way.id} has no rendered lanes")
        road_class = next(iter(lanes.values())).road_class
        return self.geometry.get_backlights(way.get_coordinates(data.node_coords), self.zoom, road_class)

    # ------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------

    @staticmethod
    def _guard(entity: Union[OsmNode, OsmWay, OsmRelation], build) -> Optional[Dict[str, object]]:
        try:
            return build()
        except InvalidGeometry as e:
            logger.warning(f"Skipping {entity.type} {entity.id}: {e}")
            return None

    @staticmethod
    def _store(target: Dict[str, object], records: Optional[Dict[str, object]]) -> List[str]:
        if not records:
            return []
        target.update(records)
        return list(records)

    def summary(self) -> Tuple[int, int, int]:
        return len(self.lanes), len(self.areas), len(self.points)
