"""
Shared fixtures

A residential street running east along latitude 52.5 with five nodes, a
closed parking area, and a parking entrance.
"""

import sys
from datetime import datetime
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest

from planes.osm.models import OsmNode, OsmWay, ParsedOsmData


# 2025-06-02 is a Monday
MONDAY_MORNING = datetime(2025, 6, 2, 9, 30)
MONDAY_NIGHT = datetime(2025, 6, 2, 23, 0)
SUNDAY_NOON = datetime(2025, 6, 1, 12, 0)

STREET_ID = 100
STREET_NODES = (1, 2, 3, 4, 5)


def street_coords():
    return {n: [13.400 + 0.001 * (n - 1), 52.5] for n in STREET_NODES}


def make_street(tags=None, way_id=STREET_ID, nodes=STREET_NODES, version=3):
    base = {"highway": "residential"}
    base.update(tags or {})
    return OsmWay(id=way_id, nodes=tuple(nodes), tags=base, version=version,
                  user="mapper", uid=42, timestamp="2024-01-01T00:00:00Z", changeset=7)


@pytest.fixture
def node_coords():
    return street_coords()


@pytest.fixture
def street():
    return make_street({
        "parking:condition:left": "free",
        "parking:condition:right": "no_parking",
    })


@pytest.fixture
def osm_data(street):
    data = ParsedOsmData()
    data.node_coords.update(street_coords())
    data.put(street)

    # Parking lot: square of nodes 11-14
    data.node_coords.update({
        11: [13.410, 52.500],
        12: [13.411, 52.500],
        13: [13.411, 52.501],
        14: [13.410, 52.501],
    })
    data.put(OsmWay(id=200, nodes=(11, 12, 13, 14, 11), tags={"amenity": "parking", "fee": "yes"}, version=1))

    data.put(OsmNode(id=500, lat=52.5005, lon=13.4105, tags={"amenity": "parking_entrance"}, version=1))
    return data
