"""
osmChange serialisation

Builds the XML documents the OSM API expects for a changeset upload and
reads back the diffResult it returns.
"""

import xml.etree.ElementTree as ET
from typing import Dict, List, Tuple

from .session import ChangeSet
from ..exceptions import UploadError
from ..osm.models import EntityKey, OsmEntity, OsmNode, OsmRelation, OsmWay


# Referenced entities must be created before the entities referring to them
TYPE_ORDER = {"node": 0, "way": 1, "relation": 2}


def build_changeset_xml(tags: Dict[str, str]) -> bytes:
    """<osm><changeset> document for changeset/create"""
    root = ET.Element("osm")
    changeset = ET.SubElement(root, "changeset")
    for key, value in sorted(tags.items()):
        ET.SubElement(changeset, "tag", k=key, v=value)
    return ET.tostring(root, encoding="utf-8")


def build_osmchange(change_set: ChangeSet, changeset_id: int, generator: str) -> bytes:
    """
    Serialise creates and modifies into an osmChange document

    Args:
        change_set: output of EditSession.build_change_set()
        changeset_id: id of the open changeset
        generator: written to the generator attribute
    """
    root = ET.Element("osmChange", version="0.6", generator=generator)
    for action, entities in (("create", change_set.creates), ("modify", change_set.modifies)):
        if not entities:
            continue
        block = ET.SubElement(root, action)
        for entity in sorted(entities, key=lambda e: (TYPE_ORDER[e.type], abs(e.id))):
            block.append(_element(entity, changeset_id, include_version=action != "create"))
    return ET.tostring(root, encoding="utf-8")


def _element(entity: OsmEntity, changeset_id: int, include_version: bool) -> ET.Element:
    elem = ET.Element(entity.type)
    elem.set("id", str(entity.id))
    if include_version:
        elem.set("version", str(entity.version))
    elem.set("changeset", str(changeset_id))

    if isinstance(entity, OsmNode):
        elem.set("lat", repr(entity.lat))
        elem.set("lon", repr(entity.lon))
    elif isinstance(entity, OsmWay):
        for node_ref in entity.nodes:
            ET.SubElement(elem, "nd", ref=str(node_ref))
    elif isinstance(entity, OsmRelation):
        for member in entity.members:
            ET.SubElement(elem, "member", type=member.type, ref=str(member.ref), role=member.role)

    for key, value in sorted(entity.tags.items()):
        ET.SubElement(elem, "tag", k=key, v=value)
    return elem


def parse_diff_result(xml_text: str) -> Dict[EntityKey, Tuple[int, int]]:
    """
    Read a diffResult into {(type, old_id): (new_id, new_version)}

    Deleted entities (no new_id) are not reported.
    """
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as e:
        raise UploadError(f"Unreadable diffResult: {e}", body=xml_text) from e
    if root.tag != "diffResult":
        raise UploadError(f"Expected diffResult, got <{root.tag}>", body=xml_text)

    assigned: Dict[EntityKey, Tuple[int, int]] = {}
    for elem in root:
        new_id = elem.get("new_id")
        if new_id is None:
            continue
        assigned[(elem.tag, int(elem.get("old_id")))] = (int(new_id), int(elem.get("new_version")))
    return assigned


def entity_summary(change_set: ChangeSet) -> List[str]:
    """Short 'type id' strings, for logging"""
    return [f"{e.type} {e.id}" for e in change_set.creates + change_set.modifies]
