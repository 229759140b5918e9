"""Tests for blob helper functions."""

from pathlib import Path

from hvclient.blobs import BlobStore, InMemoryBlobTransferClient, new_blob_from_file
from hvclient.types import RecordReference


def _store() -> BlobStore:
    return BlobStore(record=RecordReference("record-1"), transfer=InMemoryBlobTransferClient(chunk_size=4))


def test_new_blob_from_file_guesses_content_type(tmp_path: Path) -> None:
    path = tmp_path / "scan.png"
    path.write_bytes(b"\x89PNG\r\n\x1a\n")
    blob = new_blob_from_file(_store(), path)
    assert blob.name == "scan.png"
    assert blob.content_type == "image/png"
    assert blob.read_all_bytes() == b"\x89PNG\r\n\x1a\n"


def test_new_blob_from_file_with_explicit_name(tmp_path: Path) -> None:
    path = tmp_path / "data.unknownext"
    path.write_bytes(b"raw")
    store = _store()
    blob = new_blob_from_file(store, path, name="")
    assert store.default_blob is blob
    assert blob.content_type == "application/octet-stream"
