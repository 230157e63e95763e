"""
Parking controller

Owns the entity store, the render state and the edit session, and wires
downloads, edits, cuts and uploads through them. This is the one place that
mutates session state; callers running background work must funnel it
through a single controller.
"""

from dataclasses import replace
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from loguru import logger

from .config import PipelineConfig, get_config
from .editing.session import EditSession, UploadResult
from .editing.splitter import WaySplitter
from .editing.upload import UploadClient
from .exceptions import StaleDownload, UnknownEntity
from .osm.api_client import BBox
from .osm.download import DownloadClient, DownloadTracker
from .osm.models import OsmWay, ParsedOsmData
from .parking.conditions import Side
from .parking.models import Backlight, LaneSide
from .parking.render_state import RenderState


class ParkingController:
    """
    Main orchestrator

    Usage:
        controller = ParkingController(zoom=17)
        controller.fetch((52.50, 13.40, 52.51, 13.42))
        controller.set_datetime(datetime(2025, 6, 2, 9, 30))
        lanes = controller.render.lanes
    """

    def __init__(
        self,
        zoom: float = 17,
        instant: Optional[datetime] = None,
        editor_mode: bool = False,
        config: Optional[PipelineConfig] = None,
        download_client: Optional[DownloadClient] = None,
        upload_client: Optional[UploadClient] = None
    ):
        self.config = config or get_config()
        self.data = ParsedOsmData()
        self.render = RenderState(zoom, instant or datetime.now(), editor_mode)
        self.session = EditSession()
        self.splitter = WaySplitter(self.session, self.data)
        self.downloads = DownloadTracker()
        self._download_client = download_client
        self._upload_client = upload_client

    @property
    def download_client(self) -> DownloadClient:
        if self._download_client is None:
            self._download_client = DownloadClient()
        return self._download_client

    @property
    def upload_client(self) -> UploadClient:
        if self._upload_client is None:
            self._upload_client = UploadClient()
        return self._upload_client

    # ------------------------------------------------------------
    # Downloads
    # ------------------------------------------------------------

    def fetch(self, bbox: BBox) -> List[str]:
        """
        Download a viewport and render what is new in it

        Returns:
            Keys of the added records; empty below the minimum view zoom
        """
        if self.render.zoom < self.config.lanes.view_min_zoom:
            logger.info(f"Zoom {self.render.zoom} is below {self.config.lanes.view_min_zoom}; not downloading")
            return []
        generation = self.downloads.begin()
        data = self.download_client.download_bbox(bbox, self.render.editor_mode)
        return self.apply_download(generation, data)

    def apply_download(self, generation: int, new: ParsedOsmData) -> List[str]:
        """
        Merge a finished download

        Raises:
            StaleDownload: a newer download has already been applied
        """
        if not self.downloads.accept(generation):
            logger.info(f"Discarding download {generation}; a newer one was applied")
            raise StaleDownload(f"Download generation {generation} is stale")
        self.data.merge(new)
        self.session.register_baseline(
            list(new.nodes.values()) + list(new.ways.values()) + list(new.relations.values())
        )
        return self.render.merge(self.data, new)

    # ------------------------------------------------------------
    # View
    # ------------------------------------------------------------

    def set_datetime(self, instant: datetime) -> None:
        self.render.set_datetime(instant, self.data)

    def set_zoom(self, zoom: float) -> None:
        self.render.set_zoom(zoom, self.data)

    def set_editor_mode(self, editor_mode: bool) -> None:
        self.render.set_editor_mode(editor_mode, self.data)

    def select_way(self, way_id: int) -> Dict[Side, Backlight]:
        return self.render.backlights(self._way(way_id), self.data)

    # ------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------

    def edit_tags(self, way_id: int, tags: Dict[str, str]) -> Tuple[int, Dict[str, LaneSide]]:
        """
        Replace a way's tags

        Returns:
            (number of changed entities, the way's new lanes)
        """
        way = replace(self._way(way_id), tags=dict(tags))
        self.session.check_recordable(way)
        self.data.put(way)
        changes_count = self.session.record_change(way)
        lanes = self.render.replace_way(way, self.data)
        return changes_count, lanes

    def begin_cut(self, way_id: int) -> List[int]:
        """Mark a way for cutting and return the nodes it can be cut at"""
        return self.splitter.begin_cut(self._way(way_id))

    def cancel_cut(self, way_id: int) -> bool:
        return self.splitter.cancel_cut(way_id)

    def cut(self, way_id: int, node_id: int) -> Tuple[OsmWay, OsmWay]:
        """Cut a way at a node and re-render both halves"""
        original, new_way = self.splitter.cut(self._way(way_id), node_id)
        self.render.replace_way(original, self.data)
        self.render.replace_way(new_way, self.data)
        return original, new_way

    def discard_changes(self) -> None:
        """Drop local edits: remove created entities, restore downloaded ones"""
        for key in self.session.discard():
            if key[1] < 0:
                self.data.remove(key)
                self.render.drop_entities([key])
            else:
                original = self.session.baseline.get(key)
                if original is not None:
                    self.data.put(original)
        self.render.refresh(self.data)

    def save(self, comment: str = "Parking lanes") -> Optional[UploadResult]:
        """
        Upload local changes and move created entities to their server ids

        Returns:
            UploadResult, or None when there is nothing to upload
        """
        change_set = self.session.build_change_set()
        if change_set.is_empty:
            logger.info("No changes to upload")
            return None

        api = self.config.api
        result = self.upload_client.upload(change_set, api.editor_name, api.editor_version, comment)
        created = {key: new_id for key, new_id in result.id_map.items() if key[1] < 0}

        committed = self.session.commit_upload(result)
        self.data.rekey(created)
        for entity in committed:
            self.data.put(entity)
        self.render.rekey(created)
        self.splitter.rekey(created)
        logger.info(f"Saved {len(committed)} entities, {len(created)} new")
        return result

    def _way(self, way_id: int) -> OsmWay:
        way = self.data.ways.get(way_id)
        if way is None:
            raise UnknownEntity(f"Way {way_id} is not loaded")
        return way
