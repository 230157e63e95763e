import os
import time

from planes.osm.cache import OSMCache
from planes.osm.download import DownloadClient, DownloadTracker, build_overpass_query
from planes.osm.models import OsmRelation, OsmWay, ParsedOsmData, RelationMember, same_content, strip_provenance
from planes.osm.parser import OsmResponseParser

from conftest import make_street


RESPONSE = {
    "elements": [
        {"type": "node", "id": 1, "lat": 52.5, "lon": 13.400, "version": 2},
        {"type": "node", "id": 2, "lat": 52.5, "lon": 13.401, "version": 1},
        {"type": "node", "id": 3, "lat": 52.5005, "lon": 13.4005, "version": 4,
         "tags": {"amenity": "parking_entrance"}},
        {"type": "way", "id": 100, "nodes": [1, 2], "version": 6, "user": "mapper", "uid": 42,
         "tags": {"highway": "residential", "parking:condition:both": "free"}},
        {"type": "relation", "id": 300, "version": 1,
         "members": [{"type": "way", "ref": 100, "role": "outer"}],
         "tags": {"type": "multipolygon", "amenity": "parking"}},
        {"type": "way", "id": 101},
        {"type": "node", "id": 4, "lat": "north", "lon": 13.4},
    ]
}


def test_parse_elements():
    data = OsmResponseParser.parse_elements(RESPONSE)

    assert set(data.node_coords) == {1, 2, 3}
    assert data.node_coords[2] == [13.401, 52.5]
    assert set(data.nodes) == {3}
    assert data.nodes[3].version == 4

    way = data.ways[100]
    assert way.nodes == (1, 2)
    assert way.version == 6
    assert way.user == "mapper"
    assert way.key == ("way", 100)

    assert data.relations[300].way_members("outer") == [RelationMember("way", 100, "outer")]
    assert data.ways_in_relation == {100: [300]}


def test_malformed_elements_are_skipped():
    data = OsmResponseParser.parse_elements(RESPONSE)
    assert 101 not in data.ways
    assert 4 not in data.node_coords


def test_merge_keeps_local_copies():
    local = ParsedOsmData()
    edited = make_street({"parking:condition": "free"}, nodes=(1, 2))
    local.put(edited)

    downloaded = OsmResponseParser.parse_elements(RESPONSE)
    added = local.merge(downloaded)

    assert local.ways[100] == edited
    assert 300 in local.relations
    assert added == 2


def test_rekey_moves_entities_and_references():
    data = ParsedOsmData()
    data.put(OsmWay(id=-1, nodes=(1, 2), tags={"highway": "service"}, version=1))
    data.put(OsmRelation(id=300, members=(RelationMember("way", -1, "outer"),), version=1))

    data.rekey({("way", -1): 9001})

    assert set(data.ways) == {9001}
    assert data.ways[9001].id == 9001
    assert data.relations[300].members[0].ref == 9001
    assert data.ways_in_relation == {9001: [300]}


def test_strip_provenance():
    way = strip_provenance(make_street())
    assert (way.user, way.uid, way.timestamp, way.changeset) == (None, None, None, None)
    assert way.version == 3
    assert same_content(way, make_street())


def test_download_generations():
    tracker = DownloadTracker()
    first = tracker.begin()
    second = tracker.begin()
    assert tracker.latest == second

    assert tracker.accept(second)
    assert not tracker.accept(first)
    assert not tracker.accept(second)
    assert not tracker.accept(second + 1)


def test_overpass_query_uses_bbox():
    query = build_overpass_query((52.50, 13.40, 52.51, 13.42), 90)
    assert "(52.5,13.4,52.51,13.42)" in query
    assert "[timeout:90]" in query


class FakeOverpass:
    def __init__(self):
        self.queries = []

    def query(self, query):
        self.queries.append(query)
        return RESPONSE


class FakeOsmApi:
    def __init__(self):
        self.boxes = []

    def get_map(self, bbox):
        self.boxes.append(bbox)
        return RESPONSE


def test_view_downloads_are_cached(tmp_path):
    overpass = FakeOverpass()
    client = DownloadClient(overpass=overpass, osm_api=FakeOsmApi(), cache_dir=str(tmp_path))
    bbox = (52.50, 13.40, 52.51, 13.42)

    first = client.download_bbox(bbox, editor_mode=False)
    second = client.download_bbox(bbox, editor_mode=False)

    assert len(overpass.queries) == 1
    assert set(first.ways) == set(second.ways) == {100}


def test_editor_downloads_bypass_cache(tmp_path):
    osm_api = FakeOsmApi()
    client = DownloadClient(overpass=FakeOverpass(), osm_api=osm_api, cache_dir=str(tmp_path))
    bbox = (52.50, 13.40, 52.51, 13.42)

    client.download_bbox(bbox, editor_mode=True)
    client.download_bbox(bbox, editor_mode=True)

    assert osm_api.boxes == [bbox, bbox]
    assert list(tmp_path.iterdir()) == []


def test_expired_cache_entry_is_ignored(tmp_path):
    cache = OSMCache(str(tmp_path), max_age_s=60)
    path = cache.get_cache_path((1.0, 2.0, 3.0, 4.0), "overpass")
    cache.save(path, {"elements": []})
    assert cache.load(path) == {"elements": []}

    old = time.time() - 3600
    os.utime(path, (old, old))
    assert cache.load(path) is None

    assert cache.clear() == 1
    assert not os.path.exists(path)


def test_cache_off_without_directory():
    assert OSMCache(None).get_cache_path((1.0, 2.0, 3.0, 4.0), "overpass") is None
