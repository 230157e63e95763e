from dataclasses import replace

import pytest

from planes.controller import ParkingController
from planes.editing.session import UploadResult
from planes.exceptions import InvalidSplitPoint, StaleDownload, UnknownEntity
from planes.osm.models import OsmWay, ParsedOsmData
from planes.parking.conditions import ConditionCategory, Side

from conftest import MONDAY_MORNING, SUNDAY_NOON, make_street


BBOX = (52.49, 13.39, 52.51, 13.42)


class FakeDownloadClient:
    def __init__(self, data):
        self.data = data
        self.requests = []

    def download_bbox(self, bbox, editor_mode):
        self.requests.append((bbox, editor_mode))
        return self.data


class FakeUploadClient:
    """Assigns ids from 9001 up to created entities and bumps versions of modified ones"""

    def __init__(self):
        self.uploaded = []

    def upload(self, change_set, editor_name, version, comment="Parking lanes"):
        self.uploaded.append(change_set)
        assigned = {}
        for offset, entity in enumerate(change_set.creates):
            assigned[entity.key] = (9001 + offset, 1)
        for entity in change_set.modifies:
            assigned[entity.key] = (entity.id, entity.version + 1)
        return UploadResult(changeset_id=77, assigned=assigned)


@pytest.fixture
def controller(osm_data):
    return ParkingController(
        zoom=17,
        instant=MONDAY_MORNING,
        editor_mode=True,
        download_client=FakeDownloadClient(osm_data),
        upload_client=FakeUploadClient(),
    )


def test_fetch_renders_download(controller):
    added = controller.fetch(BBOX)
    assert {"left100", "right100", "way200", "node500"} <= set(added)
    assert controller.download_client.requests == [(BBOX, True)]


def test_fetch_below_min_zoom_downloads_nothing(controller):
    controller.set_zoom(12)
    assert controller.fetch(BBOX) == []
    assert controller.download_client.requests == []


def test_stale_download_is_rejected(controller, osm_data):
    first = controller.downloads.begin()
    second = controller.downloads.begin()
    controller.apply_download(second, ParsedOsmData())

    with pytest.raises(StaleDownload):
        controller.apply_download(first, osm_data)
    assert controller.data.ways == {}
    assert controller.render.lanes == {}


def test_set_datetime(controller, osm_data):
    osm_data.put(make_street({
        "parking:condition:right": "free",
        "parking:condition:right:conditional": "ticket @ (Mo-Fr 08:00-18:00)",
    }, way_id=102))
    controller.fetch(BBOX)
    assert controller.render.lanes["right102"].category == ConditionCategory.TICKET
    controller.set_datetime(SUNDAY_NOON)
    assert controller.render.lanes["right102"].category == ConditionCategory.FREE


def test_edit_tags(controller):
    controller.fetch(BBOX)
    count, lanes = controller.edit_tags(100, {"highway": "residential", "parking:condition:both": "disc"})
    assert count == 1
    assert {lane.category for lane in lanes.values()} == {ConditionCategory.DISC}
    assert controller.data.ways[100].tags["parking:condition:both"] == "disc"


def test_edit_unknown_way(controller):
    with pytest.raises(UnknownEntity):
        controller.edit_tags(12345, {"highway": "residential"})


def test_select_way(controller):
    controller.fetch(BBOX)
    assert set(controller.select_way(100)) == {Side.LEFT, Side.RIGHT}


def test_cut_renders_both_halves(controller):
    controller.fetch(BBOX)
    assert controller.begin_cut(100) == [2, 3, 4]
    original, new_way = controller.cut(100, 3)

    assert controller.render.lanes["left100"].geometry.coordinates[-1][0] == pytest.approx(13.402)
    assert {"left-1", "right-1"} <= set(controller.render.lanes)
    assert controller.session.changes_count == 2
    assert not controller.splitter.is_pending(100)


def test_invalid_cut_leaves_everything_alone(controller):
    controller.fetch(BBOX)
    lanes_before = dict(controller.render.lanes)
    with pytest.raises(InvalidSplitPoint):
        controller.cut(100, 1)
    assert controller.render.lanes == lanes_before
    assert controller.session.changes_count == 0


def test_save_replaces_temporary_ids(controller):
    controller.fetch(BBOX)
    controller.cut(100, 3)

    result = controller.save("Split street")

    assert result.id_map[("way", -1)] == 9001
    assert controller.session.changes_count == 0
    assert -1 not in controller.data.ways
    assert controller.data.ways[9001].nodes == (3, 4, 5)
    assert controller.data.ways[100].version == 4
    assert not any(key.endswith("-1") for key in controller.render.lanes)
    assert controller.render.lanes["left9001"].way_id == 9001


def test_cut_of_versionless_way_changes_nothing(controller):
    controller.fetch(BBOX)
    controller.data.put(replace(controller.data.ways[100], version=None))
    controller.begin_cut(100)

    with pytest.raises(ValueError):
        controller.cut(100, 3)

    assert controller.data.ways[100].nodes == (1, 2, 3, 4, 5)
    assert -1 not in controller.data.ways
    assert controller.session.changes_count == 0
    assert not controller.splitter.is_pending(100)
    assert "left-1" not in controller.render.lanes
    assert controller.session.allocate_id() == -1


def test_edit_tags_of_versionless_way_changes_nothing(controller):
    controller.fetch(BBOX)
    versionless = replace(controller.data.ways[100], version=None)
    controller.data.put(versionless)

    with pytest.raises(ValueError):
        controller.edit_tags(100, {"highway": "residential", "parking:condition:both": "disc"})

    assert controller.data.ways[100] == versionless
    assert controller.session.changes_count == 0


def test_save_moves_pending_cut_to_server_id(controller):
    controller.fetch(BBOX)
    controller.cut(100, 3)
    assert controller.begin_cut(-1) == [4]

    controller.save("Split street")

    assert controller.splitter.is_pending(9001)
    assert not controller.splitter.is_pending(-1)


def test_save_without_changes(controller):
    controller.fetch(BBOX)
    assert controller.save() is None
    assert controller.upload_client.uploaded == []


def test_discard_changes(controller):
    controller.fetch(BBOX)
    controller.cut(100, 3)
    controller.discard_changes()

    assert controller.session.changes_count == 0
    assert -1 not in controller.data.ways
    assert controller.data.ways[100].nodes == (1, 2, 3, 4, 5)
    assert "left-1" not in controller.render.lanes
    assert "left100" in controller.render.lanes


def test_leaving_editor_mode_hides_untagged_streets(osm_data):
    osm_data.put(OsmWay(id=104, nodes=(1, 2), tags={"highway": "service"}, version=1))
    controller = ParkingController(
        zoom=17, instant=MONDAY_MORNING, editor_mode=True,
        download_client=FakeDownloadClient(osm_data),
    )
    controller.fetch(BBOX)
    assert "empty104" in controller.render.lanes

    controller.set_editor_mode(False)
    assert "empty104" not in controller.render.lanes
