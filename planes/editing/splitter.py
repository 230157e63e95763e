"""
Way splitting ("cut")

Divides a way into two at an interior node so the two parts can carry
different parking conditions. The original way keeps its id and the nodes up
to the split node; a new way with a freshly allocated negative id takes the
split node and everything after it. Both keep the original tags.
"""

from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Tuple

from loguru import logger

from .session import EditSession
from ..exceptions import InvalidSplitPoint, SplitInProgress
from ..osm.models import EntityKey, OsmRelation, OsmWay, ParsedOsmData, RelationMember, strip_provenance


@dataclass
class CutResult:
    original: OsmWay
    new_way: OsmWay
    relations: List[OsmRelation] = field(default_factory=list)


class WaySplitter:
    """
    Cuts ways in the shared entity store and records the result in the session

    A cut may be prepared with begin_cut(), which marks the way as having a
    split in progress; no other cut of that way can begin until the pending
    one is carried out or cancelled.
    """

    def __init__(self, session: EditSession, data: ParsedOsmData):
        self.session = session
        self.data = data
        self._markers: Dict[int, List[int]] = {}

    def begin_cut(self, way: OsmWay) -> List[int]:
        """
        Mark a way for cutting

        Returns:
            Node ids the way can be cut at (all interior nodes)

        Raises:
            SplitInProgress: a cut of this way is already pending
            InvalidSplitPoint: the way has no interior node
        """
        if way.id in self._markers:
            raise SplitInProgress(f"A cut of way {way.id} is already in progress")
        candidates = list(way.nodes[1:-1])
        if not candidates:
            raise InvalidSplitPoint(f"Way {way.id} has no interior node to cut at")
        self._markers[way.id] = candidates
        return candidates

    def cancel_cut(self, way_id: int) -> bool:
        return self._markers.pop(way_id, None) is not None

    def is_pending(self, way_id: int) -> bool:
        return way_id in self._markers

    def cut(self, way: OsmWay, split_node_id: int) -> Tuple[OsmWay, OsmWay]:
        """
        Split a way at an interior node

        Args:
            way: the way to cut
            split_node_id: a node of the way other than its first and last

        Returns:
            (original way truncated to end at the split node, new way starting at it)

        Raises:
            InvalidSplitPoint: split_node_id is not an interior node; nothing changes
        """
        result = self.cut_way(way, split_node_id)
        return result.original, result.new_way

    def cut_way(self, way: OsmWay, split_node_id: int) -> CutResult:
        """
        Same as cut(), also returning the relations that gained the new way

        Everything is checked before the store, the session or the id
        counter is touched, so a rejected cut leaves no trace. The pending
        marker of the way is cleared either way.
        """
        try:
            index = _interior_index(way, split_node_id)
            if index is None:
                raise InvalidSplitPoint(
                    f"Node {split_node_id} is not an interior node of way {way.id}"
                )
            original = replace(way, nodes=tuple(way.nodes[:index + 1]))
            relations = self._relations_holding(way.id)
            self.session.check_recordable(original)
            for relation in relations:
                self.session.check_recordable(relation)

            new_way = replace(
                strip_provenance(way),
                id=self.session.allocate_id(),
                version=1,
                nodes=tuple(way.nodes[index:]),
                tags=dict(way.tags),
            )
            relations = [_with_member_after(relation, way.id, new_way.id) for relation in relations]

            self.data.put(original)
            self.data.put(new_way)
            for relation in relations:
                self.data.put(relation)

            self.session.record_change(new_way)
            self.session.record_change(original)
            for relation in relations:
                self.session.record_change(relation)
        finally:
            self._markers.pop(way.id, None)

        logger.info(
            f"Cut way {way.id} at node {split_node_id}: "
            f"{len(original.nodes)} + {len(new_way.nodes)} nodes, new way {new_way.id}"
        )
        return CutResult(original=original, new_way=new_way, relations=relations)

    def rekey(self, old_to_new: Dict[EntityKey, int]) -> None:
        """Move pending cuts of uploaded ways and nodes to their server ids"""
        way_map = {old: new for (t, old), new in old_to_new.items() if t == "way"}
        node_map = {old: new for (t, old), new in old_to_new.items() if t == "node"}
        self._markers = {
            way_map.get(way_id, way_id): [node_map.get(n, n) for n in candidates]
            for way_id, candidates in self._markers.items()
        }

    def _relations_holding(self, way_id: int) -> List[OsmRelation]:
        relations = []
        for relation_id in self.data.ways_in_relation.get(way_id, []):
            relation = self.data.relations.get(relation_id)
            if relation is not None:
                relations.append(relation)
        return relations


def _with_member_after(relation: OsmRelation, way_id: int, new_way_id: int) -> OsmRelation:
    """Insert the new way right after every membership of the original, same role"""
    members: List[RelationMember] = []
    for member in relation.members:
        members.append(member)
        if member.type == "way" and member.ref == way_id:
            members.append(RelationMember(type="way", ref=new_way_id, role=member.role))
    return replace(relation, members=tuple(members))


def _interior_index(way: OsmWay, node_id: int) -> Optional[int]:
    for index in range(1, len(way.nodes) - 1):
        if way.nodes[index] == node_id:
            return index
    return None
