import pytest

from planes.exceptions import InvalidGeometry
from planes.osm.models import OsmNode, OsmRelation, OsmWay, RelationMember
from planes.parking.areas import AreaAssembler
from planes.parking.conditions import ConditionCategory

from conftest import MONDAY_MORNING


@pytest.fixture
def assembler():
    return AreaAssembler()


@pytest.fixture
def lot_coords():
    return {
        11: [13.410, 52.500],
        12: [13.412, 52.500],
        13: [13.412, 52.502],
        14: [13.410, 52.502],
        21: [13.4105, 52.5005],
        22: [13.4110, 52.5005],
        23: [13.4110, 52.5010],
        24: [13.4105, 52.5010],
    }


def test_parking_area_way(assembler, lot_coords):
    way = OsmWay(id=200, nodes=(11, 12, 13, 14, 11), tags={"amenity": "parking", "fee": "yes"})
    areas = assembler.assemble_area(way, lot_coords, MONDAY_MORNING)
    area = areas["way200"]
    assert area.category == ConditionCategory.TICKET
    assert area.style.color == "dodgerblue"
    assert area.geometry.type == "Polygon"
    assert area.geometry.coordinates[0][0] == [13.410, 52.500]


def test_open_way_is_invalid(assembler, lot_coords):
    way = OsmWay(id=201, nodes=(11, 12, 13), tags={"amenity": "parking"})
    with pytest.raises(InvalidGeometry):
        assembler.assemble_area(way, lot_coords, MONDAY_MORNING)


def test_non_parking_way_is_ignored(assembler, lot_coords):
    way = OsmWay(id=202, nodes=(11, 12, 13, 14, 11), tags={"building": "yes"})
    assert assembler.assemble_area(way, lot_coords, MONDAY_MORNING) == {}


def test_untagged_area_is_unknown(assembler, lot_coords):
    way = OsmWay(id=203, nodes=(11, 12, 13, 14, 11), tags={"amenity": "parking"})
    area = assembler.assemble_area(way, lot_coords, MONDAY_MORNING)["way203"]
    assert area.category == ConditionCategory.UNKNOWN


def test_multipolygon_with_hole(assembler, lot_coords):
    ways = {
        301: OsmWay(id=301, nodes=(11, 12, 13)),
        302: OsmWay(id=302, nodes=(13, 14, 11)),
        303: OsmWay(id=303, nodes=(21, 22, 23, 24, 21)),
    }
    relation = OsmRelation(
        id=300,
        members=(
            RelationMember("way", 301, "outer"),
            RelationMember("way", 302, "outer"),
            RelationMember("way", 303, "inner"),
        ),
        tags={"type": "multipolygon", "amenity": "parking", "access": "customers"},
    )
    area = assembler.assemble_relation(relation, lot_coords, ways, MONDAY_MORNING)["relation300"]
    assert area.osm_type == "relation"
    assert area.category == ConditionCategory.CUSTOMERS
    assert area.geometry.type == "Polygon"
    assert len(area.geometry.coordinates) == 2


def test_multipolygon_without_outer_ring(assembler, lot_coords):
    relation = OsmRelation(
        id=310,
        members=(RelationMember("way", 999, "outer"),),
        tags={"type": "multipolygon", "amenity": "parking"},
    )
    with pytest.raises(InvalidGeometry):
        assembler.assemble_relation(relation, lot_coords, {}, MONDAY_MORNING)


def test_parking_points(assembler):
    node = OsmNode(id=500, lat=52.5, lon=13.4, tags={"amenity": "parking_entrance", "fee": "no"})
    point = assembler.assemble_point(node, 17, MONDAY_MORNING)["node500"]
    assert point.amenity == "parking_entrance"
    assert point.category == ConditionCategory.FREE
    assert point.geometry.coordinates == [13.4, 52.5]
    assert point.radius_px == pytest.approx(5.0)


def test_point_radius_grows_with_zoom(assembler):
    assert assembler.point_radius(15) == pytest.approx(2.0)
    assert assembler.point_radius(19) > assembler.point_radius(17)


def test_other_nodes_are_ignored(assembler):
    node = OsmNode(id=501, lat=52.5, lon=13.4, tags={"amenity": "bench"})
    assert assembler.assemble_point(node, 17, MONDAY_MORNING) == {}
