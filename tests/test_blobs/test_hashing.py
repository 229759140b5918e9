"""Tests for BlobHasher and BlobHashInfo."""

import hashlib

import pytest

from hvclient.blobs import BlobHashAlgorithm, BlobHasher, BlobHashInfo
from hvclient.errors import BlobHashAlgorithmError


def _expected(data: bytes, block_size: int) -> bytes:
    blocks = [hashlib.sha256(data[i : i + block_size]).digest() for i in range(0, len(data), block_size)]
    return hashlib.sha256(b"".join(blocks)).digest()


def test_block_hashes_split_on_block_size() -> None:
    hasher = BlobHasher(BlobHashAlgorithm.SHA256_BLOCK, 4)
    hashes = hasher.calculate_block_hashes(b"abcdefghij")
    assert hashes == [
        hashlib.sha256(b"abcd").digest(),
        hashlib.sha256(b"efgh").digest(),
        hashlib.sha256(b"ij").digest(),
    ]


def test_block_hashes_respect_offset_and_count() -> None:
    hasher = BlobHasher(block_size=2)
    assert hasher.calculate_block_hashes(b"xxabcdyy", 2, 4) == [
        hashlib.sha256(b"ab").digest(),
        hashlib.sha256(b"cd").digest(),
    ]


def test_block_hashes_reject_out_of_range_window() -> None:
    hasher = BlobHasher(block_size=2)
    with pytest.raises(ValueError, match="range"):
        hasher.calculate_block_hashes(b"abc", 2, 5)


def test_blob_hash_is_hash_of_block_hashes() -> None:
    hasher = BlobHasher(block_size=3)
    data = b"0123456789"
    assert hasher.calculate_inline_blob_hash(data) == _expected(data, 3)


def test_empty_blob_hash_is_hash_of_nothing() -> None:
    hasher = BlobHasher(block_size=3)
    assert hasher.calculate_blob_hash([]) == hashlib.sha256(b"").digest()
    assert hasher.calculate_inline_blob_hash(b"") == hashlib.sha256(b"").digest()


def test_unknown_algorithm_cannot_hash() -> None:
    with pytest.raises(BlobHashAlgorithmError, match="Unknown"):
        BlobHasher(BlobHashAlgorithm.UNKNOWN, 4)


def test_block_size_must_be_positive() -> None:
    with pytest.raises(ValueError, match="block_size"):
        BlobHasher(block_size=0)


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("SHA256Block", BlobHashAlgorithm.SHA256_BLOCK),
        ("sha256block", BlobHashAlgorithm.SHA256_BLOCK),
        ("MD5", BlobHashAlgorithm.UNKNOWN),
        (None, BlobHashAlgorithm.UNKNOWN),
    ],
)
def test_algorithm_parse_is_lenient(name: str | None, expected: BlobHashAlgorithm) -> None:
    assert BlobHashAlgorithm.parse(name) is expected


def test_hash_info_xml_round_trip() -> None:
    info = BlobHashInfo(BlobHashAlgorithm.SHA256_BLOCK, 1024, b"\x01\x02\x03")
    parsed = BlobHashInfo.from_xml(info.to_xml())
    assert parsed == info
    assert parsed.hex == "010203"
