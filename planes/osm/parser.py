"""
OSM response parser

Parses Overpass / OSM API JSON responses into a ParsedOsmData store
"""

from typing import Dict, Any, Optional
from loguru import logger

from .models import OsmNode, OsmWay, OsmRelation, RelationMember, ParsedOsmData


class OsmResponseParser:
    """Parses Overpass and OSM API (map.json) responses"""

    @staticmethod
    def parse_elements(data: Dict[str, Any]) -> ParsedOsmData:
        """
        Parse a JSON response into nodes, ways and relations

        Untagged nodes only contribute coordinates; tagged nodes are kept as
        OsmNode objects too. Elements that lack required fields are skipped
        so one broken element does not fail the whole response.

        Args:
            data: JSON response with an "elements" list

        Returns:
            ParsedOsmData
        """
        parsed = ParsedOsmData()
        skipped = 0

        for element in data.get("elements", []):
            try:
                element_type = element["type"]
                if element_type == "node":
                    OsmResponseParser._parse_node(element, parsed)
                elif element_type == "way":
                    way = OsmResponseParser._parse_way(element)
                    parsed.put(way)
                elif element_type == "relation":
                    relation = OsmResponseParser._parse_relation(element)
                    parsed.put(relation)
            except (KeyError, TypeError, ValueError) as e:
                skipped += 1
                logger.warning(f"Skipping malformed OSM element {element.get('type')}/{element.get('id')}: {e}")

        if skipped:
            logger.info(f"Skipped {skipped} malformed elements")
        return parsed

    @staticmethod
    def _parse_node(element: Dict[str, Any], parsed: ParsedOsmData) -> None:
        node_id = int(element["id"])
        lat = float(element["lat"])
        lon = float(element["lon"])
        parsed.node_coords[node_id] = [lon, lat]
        tags = element.get("tags")
        if tags:
            parsed.nodes[node_id] = OsmNode(
                id=node_id,
                lat=lat,
                lon=lon,
                tags=dict(tags),
                **OsmResponseParser._meta(element)
            )

    @staticmethod
    def _parse_way(element: Dict[str, Any]) -> OsmWay:
        # Overpass 'out geom' adds inline geometry; node ids are what we key on
        return OsmWay(
            id=int(element["id"]),
            nodes=tuple(int(n) for n in element["nodes"]),
            tags=dict(element.get("tags", {})),
            **OsmResponseParser._meta(element)
        )

    @staticmethod
    def _parse_relation(element: Dict[str, Any]) -> OsmRelation:
        members = tuple(
            RelationMember(type=m["type"], ref=int(m["ref"]), role=m.get("role", ""))
            for m in element.get("members", [])
        )
        return OsmRelation(
            id=int(element["id"]),
            members=members,
            tags=dict(element.get("tags", {})),
            **OsmResponseParser._meta(element)
        )

    @staticmethod
    def _meta(element: Dict[str, Any]) -> Dict[str, Optional[Any]]:
        version = element.get("version")
        return {
            "version": int(version) if version is not None else None,
            "user": element.get("user"),
            "uid": element.get("uid"),
            "timestamp": element.get("timestamp"),
            "changeset": element.get("changeset"),
        }
