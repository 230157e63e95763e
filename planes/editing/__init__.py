"""
Editing module

- Session: Local changes, id allocation, change-sets, id remapping
- Splitter: Cutting a way in two
- Upload: osmChange serialisation and changeset upload
"""

from .session import ChangeSet, EditSession, UploadResult
from .splitter import WaySplitter
from .upload import UploadClient

__all__ = [
    "ChangeSet",
    "EditSession",
    "UploadResult",
    "WaySplitter",
    "UploadClient",
]
