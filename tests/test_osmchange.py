import xml.etree.ElementTree as ET

import pytest

from planes.editing.osmchange import build_changeset_xml, build_osmchange, parse_diff_result
from planes.editing.session import ChangeSet
from planes.editing.upload import UploadClient
from planes.exceptions import UploadError
from planes.osm.models import OsmNode, OsmWay

from conftest import make_street


@pytest.fixture
def change_set():
    return ChangeSet(
        creates=[
            OsmWay(id=-1, nodes=(3, 4, 5), tags={"highway": "residential"}, version=1),
            OsmNode(id=-2, lat=52.5, lon=13.4, tags={"amenity": "parking_entrance"}),
        ],
        modifies=[make_street({"parking:condition": "free"}, nodes=(1, 2, 3))],
    )


def test_osmchange_document(change_set):
    root = ET.fromstring(build_osmchange(change_set, 77, "PLanes 0.8.8"))
    assert root.tag == "osmChange"
    assert root.get("generator") == "PLanes 0.8.8"

    create = root.find("create")
    assert [child.tag for child in create] == ["node", "way"]
    way = create.find("way")
    assert way.get("id") == "-1"
    assert way.get("version") is None
    assert way.get("changeset") == "77"
    assert [nd.get("ref") for nd in way.findall("nd")] == ["3", "4", "5"]

    modified = root.find("modify/way")
    assert modified.get("version") == "3"
    assert {tag.get("k"): tag.get("v") for tag in modified.findall("tag")} == {
        "highway": "residential",
        "parking:condition": "free",
    }


def test_changeset_document():
    root = ET.fromstring(build_changeset_xml({"created_by": "PLanes 0.8.8", "comment": "Parking lanes"}))
    tags = {tag.get("k"): tag.get("v") for tag in root.find("changeset")}
    assert tags == {"created_by": "PLanes 0.8.8", "comment": "Parking lanes"}


def test_parse_diff_result():
    assigned = parse_diff_result(
        '<diffResult version="0.6">'
        '<way old_id="-1" new_id="9001" new_version="1"/>'
        '<way old_id="100" new_id="100" new_version="4"/>'
        '<node old_id="55" />'
        '</diffResult>'
    )
    assert assigned == {("way", -1): (9001, 1), ("way", 100): (100, 4)}


@pytest.mark.parametrize("body", ["<osm/>", "not xml"])
def test_bad_diff_result(body):
    with pytest.raises(UploadError):
        parse_diff_result(body)


class FakeOsmApi:
    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []

    def create_changeset(self, xml):
        self.calls.append(("create", xml))
        return 77

    def upload_diff(self, changeset_id, xml):
        self.calls.append(("upload", changeset_id))
        if self.fail:
            raise UploadError("Conflict", status_code=409)
        return '<diffResult><way old_id="-1" new_id="9001" new_version="1"/></diffResult>'

    def close_changeset(self, changeset_id):
        self.calls.append(("close", changeset_id))


def test_upload(change_set):
    api = FakeOsmApi()
    result = UploadClient(api).upload(change_set, "PLanes", "0.8.8")
    assert result.changeset_id == 77
    assert result.id_map == {("way", -1): 9001}
    assert [call[0] for call in api.calls] == ["create", "upload", "close"]
    assert b"PLanes 0.8.8" in api.calls[0][1]


def test_failed_upload_still_closes_changeset(change_set):
    api = FakeOsmApi(fail=True)
    with pytest.raises(UploadError):
        UploadClient(api).upload(change_set, "PLanes", "0.8.8")
    assert api.calls[-1] == ("close", 77)


def test_empty_change_set_is_not_uploaded():
    api = FakeOsmApi()
    with pytest.raises(UploadError):
        UploadClient(api).upload(ChangeSet(), "PLanes", "0.8.8")
    assert api.calls == []
