"""Block-based blob hashing: per-block SHA-256 and a hash over the block hashes."""

from __future__ import annotations

import base64
import hashlib
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING
from xml.etree.ElementTree import Element, SubElement

from hvclient.config import DEFAULT_INLINE_BLOB_HASH_BLOCK_SIZE
from hvclient.errors import BlobHashAlgorithmError, MalformedResponseError
from hvclient.serde import child_text, find_child, require_child_text

if TYPE_CHECKING:
    from collections.abc import Iterable


class BlobHashAlgorithm(Enum):
    """Hash algorithms a service may negotiate for blob uploads."""

    UNKNOWN = "Unknown"
    SHA256_BLOCK = "SHA256Block"

    @classmethod
    def parse(cls, value: str | None) -> BlobHashAlgorithm:
        """Parse an algorithm name; unrecognized names map to UNKNOWN."""
        if value is None:
            return cls.UNKNOWN
        for member in cls:
            if member.value.lower() == value.strip().lower():
                return member
        return cls.UNKNOWN


@dataclass(frozen=True, slots=True)
class BlobHashInfo:
    """Digest of a completed blob plus the parameters needed to verify it."""

    algorithm: BlobHashAlgorithm
    block_size: int
    digest: bytes

    @property
    def hex(self) -> str:
        """Digest as lowercase hex."""
        return self.digest.hex()

    def to_xml(self) -> Element:
        """Serialize as a ``<hash-info>`` element."""
        root = Element("hash-info")
        SubElement(root, "algorithm").text = self.algorithm.value
        params = SubElement(root, "params")
        SubElement(params, "block-size").text = str(self.block_size)
        SubElement(root, "hash").text = base64.b64encode(self.digest).decode("ascii")
        return root

    @classmethod
    def from_xml(cls, element: Element) -> BlobHashInfo:
        """Parse a ``<hash-info>`` element."""
        algorithm = BlobHashAlgorithm.parse(child_text(element, "algorithm"))
        block_size = DEFAULT_INLINE_BLOB_HASH_BLOCK_SIZE
        params = find_child(element, "params")
        if params is not None:
            text = child_text(params, "block-size")
            if text is not None:
                try:
                    block_size = int(text)
                except ValueError as exc:
                    msg = f"hash-info block-size must be an integer, got {text!r}."
                    raise MalformedResponseError(msg) from exc
        digest = base64.b64decode(require_child_text(element, "hash"))
        return cls(algorithm=algorithm, block_size=block_size, digest=digest)


class BlobHasher:
    """Computes SHA256Block digests.

    Data is split into ``block_size`` segments, each segment is hashed with
    SHA-256, and the blob digest is SHA-256 over the concatenated block hashes
    in order. Feeding the same bytes in any chunking that respects block
    boundaries yields the same digest.
    """

    def __init__(
        self,
        algorithm: BlobHashAlgorithm = BlobHashAlgorithm.SHA256_BLOCK,
        block_size: int = DEFAULT_INLINE_BLOB_HASH_BLOCK_SIZE,
    ) -> None:
        """Initialize for a supported algorithm and a positive block size."""
        if algorithm is not BlobHashAlgorithm.SHA256_BLOCK:
            raise BlobHashAlgorithmError(algorithm.value)
        if block_size <= 0:
            msg = "BlobHasher.block_size must be > 0."
            raise ValueError(msg)
        self.algorithm = algorithm
        self.block_size = block_size

    def calculate_block_hashes(
        self,
        data: bytes | bytearray | memoryview,
        offset: int = 0,
        count: int | None = None,
    ) -> list[bytes]:
        """Hash ``data[offset:offset + count]`` block by block."""
        view = memoryview(data)
        if count is None:
            count = len(view) - offset
        if offset < 0 or count < 0 or offset + count > len(view):
            msg = "offset and count must describe a range inside data."
            raise ValueError(msg)

        hashes: list[bytes] = []
        end = offset + count
        for start in range(offset, end, self.block_size):
            block = view[start : min(start + self.block_size, end)]
            hashes.append(hashlib.sha256(block).digest())
        return hashes

    def calculate_blob_hash(self, block_hashes: Iterable[bytes]) -> bytes:
        """Hash the ordered concatenation of block hashes."""
        digest = hashlib.sha256()
        for block_hash in block_hashes:
            digest.update(block_hash)
        return digest.digest()

    def calculate_inline_blob_hash(self, data: bytes | bytearray | memoryview) -> bytes:
        """Compute the blob digest of data held entirely in memory."""
        return self.calculate_blob_hash(self.calculate_block_hashes(data))

    def hash_info(self, digest: bytes) -> BlobHashInfo:
        """Wrap a digest with this hasher's parameters."""
        return BlobHashInfo(algorithm=self.algorithm, block_size=self.block_size, digest=digest)
