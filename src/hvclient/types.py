"""Small value types naming where a blob or request is targeted."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from hvclient.blobs._cipher import ChunkCipher


@dataclass(frozen=True, slots=True)
class RecordReference:
    """A health record, optionally accessed on behalf of a specific person."""

    record_id: str
    person_id: str | None = None

    def __post_init__(self) -> None:
        """Reject empty record IDs."""
        if not self.record_id:
            msg = "RecordReference.record_id must be a non-empty string."
            raise ValueError(msg)


@dataclass(frozen=True, slots=True)
class ConnectPackageParameters:
    """Settings for blobs attached to a connect package.

    When ``cipher`` is set every uploaded chunk is encrypted with it; the
    recipient receives the key out of band with the package identity code.
    """

    cipher: ChunkCipher | None = None
