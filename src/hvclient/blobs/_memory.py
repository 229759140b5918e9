"""InMemoryBlobTransferClient: dict-based blob transfers for development and testing."""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from hvclient.blobs._hashing import BlobHashAlgorithm
from hvclient.blobs._session import ChunkUploadSession
from hvclient.errors import TransportError

DEFAULT_CHUNK_SIZE = 1 << 22
DEFAULT_MAX_BLOB_SIZE = 1 << 30


@dataclass(frozen=True, slots=True)
class UploadedChunk:
    """One chunk received by the in-memory backend."""

    url: str
    start: int
    size: int
    complete: bool

    @property
    def content_range(self) -> str | None:
        """Content-Range the HTTP client would have sent for this chunk."""
        if self.size == 0:
            return None
        return f"bytes {self.start}-{self.start + self.size - 1}/*"


class InMemoryBlobTransferClient:
    """In-memory blob transfer backend for development and testing.

    Uploads must arrive in wire order and stop after the completion chunk.
    Plain uploads must be contiguous; encrypted chunks may leave gaps up to
    the negotiated post-encryption chunk size and are stored back to back. Ranged reads past the end return ``b""`` the way a
    416 response does.
    """

    def __init__(
        self,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        max_blob_size: int = DEFAULT_MAX_BLOB_SIZE,
        hash_algorithm: BlobHashAlgorithm | str = BlobHashAlgorithm.SHA256_BLOCK,
        hash_block_size: int = 0,
        post_encryption_chunk_size: int | None = None,
        base_url: str = "memory://blobs/",
    ) -> None:
        """Initialize with the session parameters every negotiation returns."""
        self.chunk_size = chunk_size
        self.max_blob_size = max_blob_size
        self.hash_algorithm = (
            hash_algorithm if isinstance(hash_algorithm, BlobHashAlgorithm) else BlobHashAlgorithm.parse(hash_algorithm)
        )
        self.hash_block_size = hash_block_size
        self.post_encryption_chunk_size = post_encryption_chunk_size
        self.base_url = base_url
        self.negotiations = 0
        self.negotiated_records: list[str | None] = []
        self._blobs: dict[str, bytearray] = {}
        self._complete: set[str] = set()
        self._encrypted: set[str] = set()
        self._uploads: list[UploadedChunk] = []

    @property
    def uploads(self) -> tuple[UploadedChunk, ...]:
        """Every chunk received, in arrival order."""
        return tuple(self._uploads)

    def _new_session(self, *, encrypted: bool, record_id: str | None) -> ChunkUploadSession:
        self.negotiations += 1
        self.negotiated_records.append(record_id)
        url = f"{self.base_url}{uuid.uuid4().hex}"
        self._blobs[url] = bytearray()
        post_size = None
        if encrypted:
            post_size = self.post_encryption_chunk_size or self.chunk_size + 16
            self._encrypted.add(url)
        return ChunkUploadSession(
            url=url,
            chunk_size=self.chunk_size,
            max_blob_size=self.max_blob_size,
            hash_algorithm=self.hash_algorithm,
            hash_block_size=self.hash_block_size,
            post_encryption_chunk_size=post_size,
        )

    def begin_put_blob(self, record_id: str) -> ChunkUploadSession:
        """Allocate a new upload URL for a record blob."""
        return self._new_session(encrypted=False, record_id=record_id)

    def begin_put_connect_package_blob(self) -> ChunkUploadSession:
        """Allocate a new upload URL with post-encryption chunk geometry."""
        return self._new_session(encrypted=True, record_id=None)

    def upload_chunk(
        self,
        url: str,
        data: bytes,
        *,
        start: int,
        complete: bool,
        timeout: float | None = None,  # noqa: ARG002
    ) -> None:
        """Append a chunk after checking it continues the blob."""
        blob = self._blobs.get(url)
        if blob is None:
            msg = f"Unknown upload URL: {url}"
            raise TransportError(msg, status_code=404, url=url)
        if url in self._complete:
            msg = f"Upload already completed: {url}"
            raise TransportError(msg, status_code=409, url=url)
        expected_contiguous = url not in self._encrypted
        if data and (start != len(blob) if expected_contiguous else start < len(blob)):
            msg = f"Chunk starts at {start}, expected {len(blob)}"
            raise TransportError(msg, status_code=416, url=url)
        blob.extend(data)
        self._uploads.append(UploadedChunk(url=url, start=start, size=len(data), complete=complete))
        if complete:
            self._complete.add(url)

    def download_range(self, url: str, start: int, end: int, *, timeout: float | None = None) -> bytes:  # noqa: ARG002
        """Return stored bytes ``start..end`` inclusive."""
        blob = self._blobs.get(url)
        if blob is None:
            msg = f"Unknown blob URL: {url}"
            raise TransportError(msg, status_code=404, url=url)
        if start >= len(blob):
            return b""
        return bytes(blob[start : end + 1])

    def preload(self, data: bytes) -> str:
        """Store a completed blob and return its URL."""
        url = f"{self.base_url}{uuid.uuid4().hex}"
        self._blobs[url] = bytearray(data)
        self._complete.add(url)
        return url

    def blob_bytes(self, url: str) -> bytes:
        """Return everything uploaded to ``url`` so far."""
        return bytes(self._blobs[url])

    def is_complete(self, url: str) -> bool:
        """Whether the completion chunk for ``url`` has arrived."""
        return url in self._complete
