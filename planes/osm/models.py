"""
OSM data models

Data classes for representing OSM nodes, ways and relations, and the
id-addressed store they are downloaded into.

Entity snapshots are frozen: an edit produces a new snapshot with
dataclasses.replace() and the store's index is updated to point at it.
Coordinates are [lon, lat] throughout.
"""

from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Tuple, Union


# Provenance fields a locally created entity must not carry
PROVENANCE_FIELDS = ("user", "uid", "timestamp", "changeset")


@dataclass(frozen=True)
class OsmNode:
    """Represents an OSM node (point)"""
    id: int
    lat: float
    lon: float
    tags: Dict[str, str] = field(default_factory=dict)
    version: Optional[int] = None
    user: Optional[str] = None
    uid: Optional[int] = None
    timestamp: Optional[str] = None
    changeset: Optional[int] = None

    type = "node"

    @property
    def key(self) -> Tuple[str, int]:
        return (self.type, self.id)

    def get_coordinates(self) -> List[float]:
        """Get coordinate as [lon, lat]"""
        return [self.lon, self.lat]


@dataclass(frozen=True)
class OsmWay:
    """Represents an OSM way (line or polygon) as an ordered tuple of node ids"""
    id: int
    nodes: Tuple[int, ...]
    tags: Dict[str, str] = field(default_factory=dict)
    version: Optional[int] = None
    user: Optional[str] = None
    uid: Optional[int] = None
    timestamp: Optional[str] = None
    changeset: Optional[int] = None

    type = "way"

    @property
    def key(self) -> Tuple[str, int]:
        return (self.type, self.id)

    @property
    def is_closed(self) -> bool:
        return len(self.nodes) >= 4 and self.nodes[0] == self.nodes[-1]

    def get_coordinates(self, node_coords: Dict[int, List[float]]) -> List[List[float]]:
        """
        Get coordinates as [lon, lat] list

        Nodes without a known coordinate are skipped, so the result can be
        shorter than the node list.
        """
        return [node_coords[n] for n in self.nodes if n in node_coords]


@dataclass(frozen=True)
class RelationMember:
    """One (member entity, role) entry of a relation"""
    type: str
    ref: int
    role: str = ""


@dataclass(frozen=True)
class OsmRelation:
    """Represents an OSM relation"""
    id: int
    members: Tuple[RelationMember, ...]
    tags: Dict[str, str] = field(default_factory=dict)
    version: Optional[int] = None
    user: Optional[str] = None
    uid: Optional[int] = None
    timestamp: Optional[str] = None
    changeset: Optional[int] = None

    type = "relation"

    @property
    def key(self) -> Tuple[str, int]:
        return (self.type, self.id)

    def way_members(self, role: Optional[str] = None) -> List[RelationMember]:
        return [
            m for m in self.members
            if m.type == "way" and (role is None or m.role == role)
        ]


OsmEntity = Union[OsmNode, OsmWay, OsmRelation]
EntityKey = Tuple[str, int]


def strip_provenance(entity: OsmEntity) -> OsmEntity:
    """Drop server-only fields (author, edit timestamp, changeset)"""
    return replace(entity, **{name: None for name in PROVENANCE_FIELDS})


def same_content(a: OsmEntity, b: OsmEntity) -> bool:
    """Compare two snapshots ignoring version and provenance"""
    if a.type != b.type or a.tags != b.tags:
        return False
    if isinstance(a, OsmNode):
        return (a.lat, a.lon) == (b.lat, b.lon)
    if isinstance(a, OsmWay):
        return a.nodes == b.nodes
    return a.members == b.members


@dataclass
class ParsedOsmData:
    """
    Entities of one or more downloads, addressed by id

    node_coords holds the coordinate of every node seen, including untagged
    way nodes that are not kept as OsmNode objects.
    """
    nodes: Dict[int, OsmNode] = field(default_factory=dict)
    ways: Dict[int, OsmWay] = field(default_factory=dict)
    relations: Dict[int, OsmRelation] = field(default_factory=dict)
    node_coords: Dict[int, List[float]] = field(default_factory=dict)
    ways_in_relation: Dict[int, List[int]] = field(default_factory=dict)

    def get(self, key: EntityKey) -> Optional[OsmEntity]:
        entity_type, entity_id = key
        store = self._store(entity_type)
        return store.get(entity_id)

    def put(self, entity: OsmEntity) -> None:
        """Insert or replace an entity snapshot"""
        self._store(entity.type)[entity.id] = entity
        if isinstance(entity, OsmNode):
            self.node_coords[entity.id] = entity.get_coordinates()
        elif isinstance(entity, OsmRelation):
            self._index_relation(entity)

    def remove(self, key: EntityKey) -> None:
        entity_type, entity_id = key
        self._store(entity_type).pop(entity_id, None)
        if entity_type == "relation":
            for relation_ids in self.ways_in_relation.values():
                if entity_id in relation_ids:
                    relation_ids.remove(entity_id)

    def merge(self, other: "ParsedOsmData") -> int:
        """
        Merge another download into this one

        Entities already present are kept (the local copy may carry edits), so
        results can be merged in any order. Returns the number of new entities.
        """
        added = 0
        for node_id, coords in other.node_coords.items():
            self.node_coords.setdefault(node_id, coords)
        for store_name in ("nodes", "ways", "relations"):
            mine = getattr(self, store_name)
            for entity_id, entity in getattr(other, store_name).items():
                if entity_id in mine:
                    continue
                mine[entity_id] = entity
                if isinstance(entity, OsmRelation):
                    self._index_relation(entity)
                added += 1
        return added

    def rekey(self, old_to_new: Dict[EntityKey, int]) -> None:
        """Move locally created entities to their server ids"""
        node_map = {old_id: new_id for (t, old_id), new_id in old_to_new.items() if t == "node"}
        way_map = {old_id: new_id for (t, old_id), new_id in old_to_new.items() if t == "way"}
        for (entity_type, old_id), new_id in old_to_new.items():
            store = self._store(entity_type)
            entity = store.pop(old_id, None)
            if entity is not None:
                store[new_id] = replace(entity, id=new_id)
            if entity_type == "node" and old_id in self.node_coords:
                self.node_coords[new_id] = self.node_coords.pop(old_id)
        if node_map:
            for way_id, way in list(self.ways.items()):
                if any(n in node_map for n in way.nodes):
                    self.ways[way_id] = replace(way, nodes=tuple(node_map.get(n, n) for n in way.nodes))
        for relation_id, relation in list(self.relations.items()):
            members = tuple(_remap_member(m, old_to_new) for m in relation.members)
            if members != relation.members:
                self.relations[relation_id] = replace(relation, members=members)
        relation_map = {old_id: new_id for (t, old_id), new_id in old_to_new.items() if t == "relation"}
        rebuilt: Dict[int, List[int]] = {}
        for way_id, relation_ids in self.ways_in_relation.items():
            rebuilt[way_map.get(way_id, way_id)] = [relation_map.get(r, r) for r in relation_ids]
        self.ways_in_relation = rebuilt

    def _index_relation(self, relation: OsmRelation) -> None:
        for member in relation.way_members():
            relation_ids = self.ways_in_relation.setdefault(member.ref, [])
            if relation.id not in relation_ids:
                relation_ids.append(relation.id)

    def _store(self, entity_type: str) -> Dict[int, OsmEntity]:
        if entity_type == "node":
            return self.nodes
        if entity_type == "way":
            return self.ways
        if entity_type == "relation":
            return self.relations
        raise ValueError(f"Unknown OSM entity type: {entity_type}")


def _remap_member(member: RelationMember, old_to_new: Dict[EntityKey, int]) -> RelationMember:
    new_id = old_to_new.get((member.type, member.ref))
    if new_id is None:
        return member
    return replace(member, ref=new_id)
