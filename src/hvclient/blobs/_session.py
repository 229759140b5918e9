"""ChunkUploadSession: the parameters negotiated before a chunked blob upload."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from hvclient.blobs._hashing import BlobHashAlgorithm
from hvclient.config import DEFAULT_INLINE_BLOB_HASH_BLOCK_SIZE
from hvclient.serde import child_text, find_child, optional_child_int, require_child_int, require_child_text

if TYPE_CHECKING:
    from xml.etree.ElementTree import Element


@dataclass(frozen=True, slots=True)
class ChunkUploadSession:
    """Upload URL, chunk geometry and hash parameters for one blob.

    ``post_encryption_chunk_size`` is set only for connect-package uploads,
    where each plaintext chunk of ``chunk_size`` bytes is transmitted as an
    encrypted chunk of at most that many bytes.
    """

    url: str
    chunk_size: int
    max_blob_size: int
    hash_algorithm: BlobHashAlgorithm = BlobHashAlgorithm.SHA256_BLOCK
    hash_block_size: int = 0
    post_encryption_chunk_size: int | None = None

    def __post_init__(self) -> None:
        """Validate chunk geometry."""
        if not self.url:
            msg = "ChunkUploadSession.url must be a non-empty string."
            raise ValueError(msg)
        if self.chunk_size <= 0:
            msg = "ChunkUploadSession.chunk_size must be > 0."
            raise ValueError(msg)
        if self.post_encryption_chunk_size is not None and self.post_encryption_chunk_size < self.chunk_size:
            msg = "ChunkUploadSession.post_encryption_chunk_size must be >= chunk_size."
            raise ValueError(msg)

    @property
    def encrypted(self) -> bool:
        """Whether chunks are transmitted at post-encryption offsets."""
        return self.post_encryption_chunk_size is not None

    @property
    def effective_hash_block_size(self) -> int:
        """Negotiated block size, or the default when the service left it unset."""
        return self.hash_block_size or DEFAULT_INLINE_BLOB_HASH_BLOCK_SIZE

    def wire_offset(self, position: int) -> int:
        """Return the transmitted byte offset of the chunk starting at plaintext ``position``."""
        if self.post_encryption_chunk_size is None:
            return position
        return (position // self.chunk_size) * self.post_encryption_chunk_size

    @classmethod
    def from_info(cls, info: Element, *, encrypted: bool = False) -> ChunkUploadSession:
        """Parse the ``info`` element of a BeginPutBlob or BeginPutConnectPackageBlob response."""
        if encrypted:
            chunk_size = require_child_int(info, "blob-pre-encryption-chunk-size")
            post_size: int | None = require_child_int(info, "blob-post-encryption-chunk-size")
        else:
            chunk_size = require_child_int(info, "blob-chunk-size")
            post_size = None

        block_size = 0
        params = find_child(info, "blob-hash-parameters")
        if params is not None:
            block_size = optional_child_int(params, "block-size") or 0

        return cls(
            url=require_child_text(info, "blob-ref-url"),
            chunk_size=chunk_size,
            max_blob_size=require_child_int(info, "max-blob-size"),
            hash_algorithm=BlobHashAlgorithm.parse(child_text(info, "blob-hash-algorithm")),
            hash_block_size=block_size,
            post_encryption_chunk_size=post_size,
        )
