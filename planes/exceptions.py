"""
Error types

Per-entity failures (MalformedTag, InvalidGeometry) are isolated by the batch
functions that process many entities. Session-level failures propagate to the
caller.
"""

from typing import Optional


class PlanesError(Exception):
    """Base class for all errors raised by this package"""


class MalformedTag(PlanesError):
    """A tag value could not be understood; the rule degrades to unknown"""

    def __init__(self, key: str, value: str, reason: str = ""):
        self.key = key
        self.value = value
        self.reason = reason
        message = f"Malformed tag {key}={value!r}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class InvalidGeometry(PlanesError):
    """An entity's geometry cannot be rendered"""

    def __init__(self, message: str, entity_id: Optional[int] = None):
        self.entity_id = entity_id
        super().__init__(message if entity_id is None else f"{message} (id={entity_id})")


class InvalidSplitPoint(PlanesError):
    """The node chosen for a cut is not an interior node of the way"""


class SplitInProgress(PlanesError):
    """Another cut of the same way has not been finished or cancelled"""


class DuplicateAllocation(PlanesError):
    """The id allocator handed out an id twice. Always a programming error."""


class UnknownEntity(PlanesError):
    """An operation referred to an entity that is not held"""


class StaleDownload(PlanesError):
    """A download result belongs to a superseded generation"""


class UploadError(PlanesError):
    """The OSM API rejected or failed an upload"""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(message)
