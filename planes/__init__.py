"""
Parking lanes engine

Derives time-dependent parking conditions for streets, areas and points from
OpenStreetMap data, and tracks edits for upload:
- osm: Entity models, response parsing, download clients
- parking: Tag parsing, condition resolution, lane geometry, render records
- editing: Edit session, way cutting, changeset upload
- controller: Orchestrates the above for one map view
"""

from .controller import ParkingController

__all__ = [
    "ParkingController",
]
