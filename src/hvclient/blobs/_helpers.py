"""Helper functions for blob operations."""

from __future__ import annotations

import mimetypes
from pathlib import Path
from typing import TYPE_CHECKING

from hvclient.blobs._handle import DEFAULT_CONTENT_TYPE

if TYPE_CHECKING:
    from hvclient.blobs._handle import Blob
    from hvclient.blobs._store import BlobStore


def new_blob_from_file(store: BlobStore, path: str | Path, *, name: str | None = None) -> Blob:
    """Upload a file into a new blob, guessing content_type from the extension.

    The blob is named after the file unless ``name`` is given. The file is
    streamed in chunks rather than read into memory.
    """
    path = Path(path)
    content_type, _ = mimetypes.guess_type(str(path))
    blob = store.new_blob(path.name if name is None else name, content_type or DEFAULT_CONTENT_TYPE)
    with path.open("rb") as handle:
        blob.write(handle)
    return blob
