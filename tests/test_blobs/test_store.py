"""Tests for BlobStore."""

import io

import pytest

from hvclient.blobs import BlobStore, InMemoryBlobTransferClient
from hvclient.errors import BlobStreamError, BlobStreamUnsupportedError
from hvclient.types import ConnectPackageParameters, RecordReference


def _store(transfer: InMemoryBlobTransferClient | None = None) -> BlobStore:
    return BlobStore(record=RecordReference("record-1"), transfer=transfer or InMemoryBlobTransferClient(chunk_size=4))


def test_new_blob_is_bound_and_indexed() -> None:
    store = _store()
    blob = store.new_blob("scan", "image/png")
    assert "scan" in store
    assert store["scan"] is blob
    assert len(store) == 1
    assert list(store) == ["scan"]
    assert store.default_blob is None


def test_default_blob_has_empty_name() -> None:
    store = _store()
    store.write_inline("", "text/plain", "default")
    assert store.default_blob is not None
    assert store.default_blob.read_as_string() == "default"


def test_write_streams_into_new_blob() -> None:
    store = _store()
    info = store.write("doc", "application/pdf", io.BytesIO(b"%PDF-1.7 body"))
    assert store["doc"].hash_info == info
    assert store["doc"].read_all_bytes() == b"%PDF-1.7 body"


def test_delete_tracks_removed_names() -> None:
    store = _store()
    store.new_blob("a")
    del store["a"]
    assert "a" not in store
    assert store.removed_blobs == ("a",)
    store.new_blob("a")
    assert store.removed_blobs == ()


def test_get_returns_default() -> None:
    assert _store().get("missing") is None


def test_to_xml_freezes_blobs() -> None:
    store = _store()
    blob = store.write_inline("note", "text/plain", "hi")
    root = store.to_xml()
    assert root.tag == "blob-payload"
    assert len(root) == 1
    assert blob.frozen
    with pytest.raises(BlobStreamUnsupportedError):
        blob.write_inline("changed")


def test_to_xml_rejects_unfinished_upload_without_freezing() -> None:
    store = _store()
    done = store.write_inline("done", "text/plain", "ok")
    pending = store.new_blob("pending")
    stream = pending.get_writer_stream()
    stream.write(b"abcdef")
    stream.abort()
    with pytest.raises(BlobStreamError, match="pending"):
        store.to_xml()
    assert not done.frozen


def test_parse_xml_rebuilds_store() -> None:
    transfer = InMemoryBlobTransferClient(chunk_size=4)
    source = _store(transfer)
    source.write("doc", "application/pdf", io.BytesIO(b"document"))
    source.write_inline("note", "text/plain", "note")

    target = _store(transfer)
    target.new_blob("stale")
    target.parse_xml(source.to_xml())
    assert list(target) == ["doc", "note"]
    assert target.removed_blobs == ()
    assert target["doc"].read_all_bytes() == b"document"
    assert target["note"].read_as_string() == "note"


def test_store_cannot_belong_to_record_and_package() -> None:
    with pytest.raises(ValueError, match="either"):
        BlobStore(record=RecordReference("r"), package=ConnectPackageParameters())
