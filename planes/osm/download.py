"""
Bounding-box downloads

Builds the query for a viewport, fetches it through the Overpass API (view
mode) or the OSM API (editor mode, which needs current versions), and tags
every request with a generation so a superseded download is never applied
over a newer one.
"""

from typing import Any, Dict, Optional

from loguru import logger

from .api_client import BBox, OsmApiClient, OverpassAPIClient
from .cache import OSMCache
from .models import ParsedOsmData
from .parser import OsmResponseParser
from ..config import get_config


class DownloadTracker:
    """
    Generation counter for viewport downloads

    begin() hands out increasing generations. A result is accepted only if
    no newer generation has already been applied.
    """

    def __init__(self):
        self._issued = 0
        self._applied = 0

    @property
    def latest(self) -> int:
        return self._issued

    def begin(self) -> int:
        self._issued += 1
        return self._issued

    def accept(self, generation: int) -> bool:
        """Mark a generation applied; False if it is stale"""
        if generation <= self._applied or generation > self._issued:
            return False
        self._applied = generation
        return True


def build_overpass_query(bbox: BBox, timeout: int) -> str:
    """Overpass QL for streets, parking areas and parking points in a bbox"""
    south, west, north, east = bbox
    box = f"{south},{west},{north},{east}"
    return f"""
    [out:json][timeout:{timeout}];
    (
        way["highway"]({box});
        way["amenity"="parking"]({box});
        relation["amenity"="parking"]({box});
        node["amenity"~"^(parking|parking_entrance)$"]({box});
    )->.parking;
    (
        .parking;
        way(r.parking);
    );
    out meta;
    >;
    out meta qt;
    """


class DownloadClient:
    """Downloads and parses the data for one viewport"""

    def __init__(
        self,
        overpass: Optional[OverpassAPIClient] = None,
        osm_api: Optional[OsmApiClient] = None,
        cache_dir: Optional[str] = None
    ):
        self.config = get_config()
        self.overpass = overpass or OverpassAPIClient()
        self.osm_api = osm_api or OsmApiClient()
        self.cache = OSMCache(
            cache_dir if cache_dir is not None else self.config.cache_dir,
            self.config.cache_max_age_s,
        )
        self.parser = OsmResponseParser()

    def download_bbox(self, bbox: BBox, editor_mode: bool) -> ParsedOsmData:
        """
        Fetch a bounding box

        Raises:
            RuntimeError: if the download fails after all retries
        """
        source = "osmapi" if editor_mode else "overpass"
        cache_path = None if editor_mode else self.cache.get_cache_path(bbox, source)
        raw: Optional[Dict[str, Any]] = None
        if cache_path:
            raw = self.cache.load(cache_path)

        if raw is None:
            logger.info(f"Downloading {bbox} from {source}")
            if editor_mode:
                raw = self.osm_api.get_map(bbox)
            else:
                raw = self.overpass.query(build_overpass_query(bbox, self.config.api.overpass_timeout))
            if cache_path:
                self.cache.save(cache_path, raw)

        data = self.parser.parse_elements(raw)
        logger.info(
            f"Downloaded {len(data.ways)} ways, {len(data.relations)} relations, "
            f"{len(data.nodes)} tagged nodes"
        )
        return data
