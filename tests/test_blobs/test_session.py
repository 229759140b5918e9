"""Tests for ChunkUploadSession parsing and validation."""

from xml.etree.ElementTree import fromstring

import pytest

from hvclient.blobs import BlobHashAlgorithm, ChunkUploadSession
from hvclient.config import DEFAULT_INLINE_BLOB_HASH_BLOCK_SIZE
from hvclient.errors import MalformedResponseError

BEGIN_PUT_BLOB_INFO = """
<wc:info xmlns:wc="urn:com.microsoft.wc.methods.response.BeginPutBlob">
  <blob-ref-url>https://blobs.example.test/put/abc</blob-ref-url>
  <blob-chunk-size>4194304</blob-chunk-size>
  <max-blob-size>1073741824</max-blob-size>
  <blob-hash-algorithm>SHA256Block</blob-hash-algorithm>
  <blob-hash-parameters><block-size>2097152</block-size></blob-hash-parameters>
</wc:info>
"""

BEGIN_PUT_PACKAGE_INFO = """
<info>
  <blob-ref-url>https://blobs.example.test/put/pkg</blob-ref-url>
  <blob-pre-encryption-chunk-size>4096</blob-pre-encryption-chunk-size>
  <blob-post-encryption-chunk-size>4112</blob-post-encryption-chunk-size>
  <max-blob-size>65536</max-blob-size>
  <blob-hash-algorithm>SomethingNew</blob-hash-algorithm>
</info>
"""


def test_parse_begin_put_blob() -> None:
    session = ChunkUploadSession.from_info(fromstring(BEGIN_PUT_BLOB_INFO))
    assert session.url == "https://blobs.example.test/put/abc"
    assert session.chunk_size == 4194304
    assert session.max_blob_size == 1073741824
    assert session.hash_algorithm is BlobHashAlgorithm.SHA256_BLOCK
    assert session.hash_block_size == 2097152
    assert not session.encrypted
    assert session.wire_offset(8388608) == 8388608


def test_parse_connect_package_session() -> None:
    session = ChunkUploadSession.from_info(fromstring(BEGIN_PUT_PACKAGE_INFO), encrypted=True)
    assert session.chunk_size == 4096
    assert session.post_encryption_chunk_size == 4112
    assert session.encrypted
    assert session.hash_algorithm is BlobHashAlgorithm.UNKNOWN
    assert session.effective_hash_block_size == DEFAULT_INLINE_BLOB_HASH_BLOCK_SIZE
    assert session.wire_offset(8192) == 2 * 4112


def test_missing_chunk_size_is_malformed() -> None:
    with pytest.raises(MalformedResponseError, match="blob-chunk-size"):
        ChunkUploadSession.from_info(fromstring(BEGIN_PUT_PACKAGE_INFO))


def test_chunk_size_must_be_positive() -> None:
    with pytest.raises(ValueError, match="chunk_size"):
        ChunkUploadSession(url="u", chunk_size=0, max_blob_size=10)


def test_post_encryption_size_cannot_shrink() -> None:
    with pytest.raises(ValueError, match="post_encryption_chunk_size"):
        ChunkUploadSession(url="u", chunk_size=16, max_blob_size=100, post_encryption_chunk_size=8)
