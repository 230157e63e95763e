"""
OpenStreetMap data module

Components:
- Models: Entity snapshots (OsmNode, OsmWay, OsmRelation) and the id-addressed store
- Parser: Overpass / OSM API JSON parsing
- API client: Overpass and OSM API communication
- Cache: Caching of raw downloads
- Download: Viewport downloads and the generation counter
"""

from .models import OsmNode, OsmWay, OsmRelation, RelationMember, ParsedOsmData
from .parser import OsmResponseParser
from .download import DownloadClient, DownloadTracker

__all__ = [
    "OsmNode",
    "OsmWay",
    "OsmRelation",
    "RelationMember",
    "ParsedOsmData",
    "OsmResponseParser",
    "DownloadClient",
    "DownloadTracker",
]
