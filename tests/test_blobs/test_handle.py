"""Tests for the Blob handle."""

import io
from pathlib import Path

import pytest

from hvclient.blobs import Blob, BlobHashAlgorithm, BlobHasher, InMemoryBlobTransferClient
from hvclient.config import ClientConfig
from hvclient.errors import BlobIntegrityError, BlobStreamError, BlobStreamUnsupportedError
from hvclient.types import ConnectPackageParameters, RecordReference

RECORD = RecordReference("record-1")


def _bound_blob(transfer: InMemoryBlobTransferClient, name: str = "scan") -> Blob:
    return Blob(name, "image/png", record=RECORD, transfer=transfer)


def test_write_inline_hashes_with_configured_block_size() -> None:
    blob = Blob("note", "text/plain", config=ClientConfig(inline_blob_hash_block_size=4))
    info = blob.write_inline("hello world")
    assert blob.inline_data == b"hello world"
    assert blob.content_length == 11
    assert blob.is_dirty
    assert info.block_size == 4
    assert info.digest == BlobHasher(BlobHashAlgorithm.SHA256_BLOCK, 4).calculate_inline_blob_hash(b"hello world")
    assert blob.read_as_string() == "hello world"


def test_write_streams_source_and_reads_back() -> None:
    transfer = InMemoryBlobTransferClient(chunk_size=5, hash_block_size=5)
    blob = _bound_blob(transfer)
    data = b"0123456789abcdefghij!"
    info = blob.write(io.BytesIO(data), buffer_size=3)
    assert blob.hash_info == info
    assert blob.content_length == len(data)
    assert blob.read_all_bytes() == data


def test_write_empty_source_uploads_empty_blob() -> None:
    transfer = InMemoryBlobTransferClient(chunk_size=5)
    blob = _bound_blob(transfer)
    blob.write(io.BytesIO(b""))
    assert blob.content_length == 0
    assert blob.read_all_bytes() == b""


def test_writer_stream_refused_when_content_exists() -> None:
    transfer = InMemoryBlobTransferClient()
    blob = _bound_blob(transfer)
    blob.write_inline(b"x")
    with pytest.raises(BlobStreamUnsupportedError, match="already has content"):
        blob.get_writer_stream()


def test_writer_stream_requires_binding() -> None:
    with pytest.raises(BlobStreamUnsupportedError, match="not bound"):
        Blob("loose").get_writer_stream()


def test_blob_cannot_belong_to_record_and_package() -> None:
    with pytest.raises(ValueError, match="either"):
        Blob("x", record=RECORD, package=ConnectPackageParameters())


def test_reader_stream_requires_content() -> None:
    with pytest.raises(BlobStreamUnsupportedError, match="no content"):
        Blob("empty").get_reader_stream()


def test_read_all_bytes_detects_tampering() -> None:
    transfer = InMemoryBlobTransferClient(chunk_size=4)
    blob = _bound_blob(transfer)
    blob.write(io.BytesIO(b"original"))
    blob.url = transfer.preload(b"tampered")
    with pytest.raises(BlobIntegrityError):
        blob.read_all_bytes()
    assert blob.read_all_bytes(verify=False) == b"tampered"


def test_save_to_file(tmp_path: Path) -> None:
    blob = Blob("note")
    blob.write_inline(b"file body")
    target = blob.save_to_file(tmp_path / "note.txt")
    assert target.read_bytes() == b"file body"
    with pytest.raises(FileExistsError):
        blob.save_to_file(target)
    blob.save_to_file(target, overwrite=True)


def test_save_to_stream_returns_byte_count() -> None:
    blob = Blob("note")
    blob.write_inline(b"abcdef")
    sink = io.BytesIO()
    assert blob.save_to_stream(sink, buffer_size=4) == 6
    assert sink.getvalue() == b"abcdef"


def test_frozen_blob_rejects_writes() -> None:
    blob = Blob("note")
    blob.freeze()
    with pytest.raises(BlobStreamUnsupportedError, match="serialized"):
        blob.write_inline(b"late")


def test_xml_round_trip_for_uploaded_blob() -> None:
    transfer = InMemoryBlobTransferClient(chunk_size=4)
    blob = _bound_blob(transfer)
    blob.write(io.BytesIO(b"payload"))
    parsed = Blob.from_xml(blob.to_xml(), record=RECORD, transfer=transfer)
    assert parsed.name == "scan"
    assert parsed.content_type == "image/png"
    assert parsed.url == blob.url
    assert parsed.content_length == 7
    assert parsed.hash_info == blob.hash_info
    assert parsed.read_all_bytes() == b"payload"


def test_xml_round_trip_for_inline_blob() -> None:
    blob = Blob("", "text/plain", content_encoding="utf-8")
    blob.write_inline("inline text")
    parsed = Blob.from_xml(blob.to_xml())
    assert parsed.inline_data == b"inline text"
    assert parsed.content_encoding == "utf-8"
    assert parsed.hash_info == blob.hash_info


def test_unfinished_upload_cannot_be_serialized() -> None:
    transfer = InMemoryBlobTransferClient(chunk_size=4)
    blob = _bound_blob(transfer)
    stream = blob.get_writer_stream()
    stream.write(b"abcdef")
    stream.abort()
    with pytest.raises(BlobStreamError, match="not completed"):
        blob.to_xml()
