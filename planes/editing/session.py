"""
Edit session

Tracks entities changed or created locally during one editing session and
turns them into a change-set for upload.

Invariants:
- an entity with a negative id was created in this session and has never
  been uploaded;
- an entity with a positive id is a modification of a server entity and
  carries the version it was downloaded with.
"""

from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Optional, Tuple

from loguru import logger

from ..exceptions import DuplicateAllocation, UnknownEntity
from ..osm.models import EntityKey, OsmEntity, OsmRelation, OsmWay, same_content


@dataclass
class ChangeSet:
    """Changed entities partitioned for upload. Deletes are not modelled."""
    creates: List[OsmEntity] = field(default_factory=list)
    modifies: List[OsmEntity] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.creates and not self.modifies

    def __len__(self) -> int:
        return len(self.creates) + len(self.modifies)


@dataclass
class UploadResult:
    """What the server assigned: (type, old id) -> (new id, new version)"""
    changeset_id: int
    assigned: Dict[EntityKey, Tuple[int, int]] = field(default_factory=dict)

    @property
    def id_map(self) -> Dict[EntityKey, int]:
        return {key: new_id for key, (new_id, _) in self.assigned.items()}


class EditSession:
    """Single-writer store of local changes"""

    def __init__(self):
        self.changed_entities: Dict[EntityKey, OsmEntity] = {}
        self.baseline: Dict[EntityKey, OsmEntity] = {}
        self._next_id = -1
        # Lowest id handed out so far; every id in [_lowest_id, 0) is allocated
        self._lowest_id = 0

    @property
    def changes_count(self) -> int:
        return len(self.changed_entities)

    def allocate_id(self) -> int:
        """
        Next unused negative id, strictly decreasing for the session lifetime

        Raises:
            DuplicateAllocation: the counter produced an id already handed out
        """
        new_id = self._next_id
        if new_id >= self._lowest_id:
            logger.error(f"Id allocator produced duplicate id {new_id}")
            raise DuplicateAllocation(f"Id {new_id} was already allocated")
        self._lowest_id = new_id
        self._next_id = new_id - 1
        return new_id

    def register_baseline(self, entities: Iterable[OsmEntity]) -> None:
        """Remember downloaded snapshots; the first one seen for an id wins"""
        for entity in entities:
            if entity.id > 0:
                self.baseline.setdefault(entity.key, entity)

    def check_recordable(self, entity: OsmEntity) -> None:
        """
        Raise the error record_change() would raise for this entity, if any

        Lets callers validate before touching shared state.
        """
        if entity.id < 0 and entity.id < self._lowest_id:
            raise UnknownEntity(f"{entity.type} {entity.id} was not created in this session")
        if entity.id > 0 and not entity.version:
            raise ValueError(f"{entity.type} {entity.id} has no version; it cannot be uploaded")

    def record_change(self, entity: OsmEntity) -> int:
        """
        Insert or overwrite the latest local version of an entity

        Returns:
            Number of distinct changed entities

        Raises:
            UnknownEntity: a negative id this session never allocated
            ValueError: a server entity without a version
        """
        self.check_recordable(entity)
        self.changed_entities[entity.key] = entity
        logger.debug(f"Recorded change of {entity.type} {entity.id} ({self.changes_count} changes)")
        return self.changes_count

    def get(self, key: EntityKey) -> Optional[OsmEntity]:
        return self.changed_entities.get(key)

    def build_change_set(self) -> ChangeSet:
        """
        Partition changes into creates (negative id) and modifies

        A server entity that is back to its downloaded content is left out.
        """
        change_set = ChangeSet()
        for key, entity in self.changed_entities.items():
            if entity.id < 0:
                change_set.creates.append(entity)
                continue
            original = self.baseline.get(key)
            if original is not None and same_content(original, entity):
                continue
            change_set.modifies.append(entity)
        return change_set

    def remap_ids(self, old_to_new: Dict[EntityKey, int]) -> None:
        """
        Rekey locally created entities to their server-assigned ids

        Rewrites keys, entity ids, way node references and relation member
        references.

        Raises:
            UnknownEntity: an old id is not a local creation held by this session
        """
        for key in old_to_new:
            if key[1] >= 0 or key not in self.changed_entities:
                raise UnknownEntity(f"Cannot remap {key[0]} {key[1]}: not a local creation in this session")

        node_map = {old: new for (t, old), new in old_to_new.items() if t == "node"}
        remapped: Dict[EntityKey, OsmEntity] = {}
        for key, entity in self.changed_entities.items():
            new_id = old_to_new.get(key, entity.id)
            if new_id != entity.id:
                entity = replace(entity, id=new_id)
            if isinstance(entity, OsmWay) and node_map:
                entity = replace(entity, nodes=tuple(node_map.get(n, n) for n in entity.nodes))
            elif isinstance(entity, OsmRelation):
                entity = replace(entity, members=tuple(
                    replace(m, ref=old_to_new[(m.type, m.ref)]) if (m.type, m.ref) in old_to_new else m
                    for m in entity.members
                ))
            remapped[entity.key] = entity
        self.changed_entities = remapped
        logger.info(f"Remapped {len(old_to_new)} local ids to server ids")

    def commit_upload(self, result: UploadResult) -> List[OsmEntity]:
        """
        Apply a successful upload: remap ids, take the new versions as the
        baseline and clear the acknowledged changes

        An entity the server did not acknowledge stays in the session
        unchanged (with its local id) and is not taken into the baseline.

        Returns:
            The uploaded entities with server ids and versions
        """
        created = {key: ids for key, ids in result.assigned.items() if key[1] < 0}
        self.remap_ids({key: new_id for key, (new_id, _) in created.items()})

        versions = {(key[0], new_id): version for key, (new_id, version) in result.assigned.items()}
        committed = []
        pending: Dict[EntityKey, OsmEntity] = {}
        for key, entity in self.changed_entities.items():
            version = versions.get(key)
            if version is None:
                original = self.baseline.get(key)
                # Back to its downloaded content, so it was never sent
                if entity.id > 0 and original is not None and same_content(original, entity):
                    continue
                pending[key] = entity
                continue
            entity = replace(entity, version=version)
            committed.append(entity)
            self.baseline[entity.key] = entity

        if pending:
            logger.warning(
                f"Changeset {result.changeset_id} did not acknowledge {len(pending)} entities; "
                f"keeping them as local changes: {sorted(pending)}"
            )
        self.changed_entities = pending
        logger.info(f"Committed {len(committed)} entities from changeset {result.changeset_id}")
        return committed

    def discard(self) -> List[EntityKey]:
        """Drop all local changes, returning the keys that were held"""
        keys = list(self.changed_entities)
        self.changed_entities = {}
        return keys

