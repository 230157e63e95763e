"""
Changeset upload

Opens a changeset, uploads the session's change-set as osmChange, closes the
changeset and reports the ids and versions the server assigned.
"""

from typing import Optional

from loguru import logger

from .osmchange import build_changeset_xml, build_osmchange, entity_summary, parse_diff_result
from .session import ChangeSet, UploadResult
from ..osm.api_client import OsmApiClient
from ..exceptions import UploadError


class UploadClient:
    """Uploads change-sets through the OSM API"""

    def __init__(self, api: Optional[OsmApiClient] = None):
        self.api = api or OsmApiClient()

    def upload(
        self,
        change_set: ChangeSet,
        editor_name: str,
        version: str,
        comment: str = "Parking lanes"
    ) -> UploadResult:
        """
        Upload a change-set

        Returns:
            UploadResult mapping (type, temporary id) to (server id, version)

        Raises:
            UploadError: the API rejected the changeset or the upload
        """
        if change_set.is_empty:
            raise UploadError("Nothing to upload")

        created_by = f"{editor_name} {version}"
        changeset_id = self.api.create_changeset(build_changeset_xml({
            "created_by": created_by,
            "comment": comment,
        }))
        logger.info(f"Opened changeset {changeset_id} for {len(change_set)} entities")
        logger.debug(f"Uploading {entity_summary(change_set)}")

        try:
            diff = self.api.upload_diff(changeset_id, build_osmchange(change_set, changeset_id, created_by))
        finally:
            self.api.close_changeset(changeset_id)

        result = UploadResult(changeset_id=changeset_id, assigned=parse_diff_result(diff))
        logger.info(f"Changeset {changeset_id} uploaded, {len(result.assigned)} entities acknowledged")
        return result
