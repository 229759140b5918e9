"""Blob: a named binary payload attached to a record item or connect package."""

from __future__ import annotations

import base64
import io
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO
from xml.etree.ElementTree import Element, SubElement

from hvclient.blobs._hashing import BlobHashAlgorithm, BlobHasher, BlobHashInfo
from hvclient.blobs._stream import BlobStream
from hvclient.config import ClientConfig
from hvclient.errors import BlobIntegrityError, BlobStreamError, BlobStreamUnsupportedError
from hvclient.serde import child_text, find_child, optional_child_int

if TYPE_CHECKING:
    from hvclient.blobs._client import BlobTransferClient
    from hvclient.types import ConnectPackageParameters, RecordReference

DEFAULT_CONTENT_TYPE = "application/octet-stream"
DEFAULT_STREAM_BUFFER_SIZE = 1 << 20


class Blob:
    """Metadata and content access for one blob.

    A blob gets its content exactly once: either inline through
    ``write_inline`` or by streaming through ``get_writer_stream``/``write``.
    ``hash_info`` is present only after that content is complete. Once the
    owning store has been serialized the blob is frozen.
    """

    def __init__(
        self,
        name: str = "",
        content_type: str = DEFAULT_CONTENT_TYPE,
        *,
        content_encoding: str | None = None,
        hash_info: BlobHashInfo | None = None,
        content_length: int | None = None,
        url: str | None = None,
        inline_data: bytes | None = None,
        record: RecordReference | None = None,
        package: ConnectPackageParameters | None = None,
        transfer: BlobTransferClient | None = None,
        config: ClientConfig | None = None,
    ) -> None:
        """Initialize blob metadata and the context used to transfer its content."""
        if record is not None and package is not None:
            msg = "A blob belongs to either a record or a connect package, not both."
            raise ValueError(msg)
        self.name = name
        self.content_type = content_type
        self.content_encoding = content_encoding
        self.hash_info = hash_info
        self.content_length = content_length
        self.url = url
        self.inline_data = inline_data
        self.is_dirty = False
        self._record = record
        self._package = package
        self._transfer = transfer
        self._config = config if config is not None else ClientConfig()
        self._frozen = False

    def __repr__(self) -> str:
        """Show the identifying metadata."""
        return (
            f"Blob(name={self.name!r}, content_type={self.content_type!r}, "
            f"content_length={self.content_length!r}, url={self.url!r})"
        )

    @property
    def frozen(self) -> bool:
        """Whether the owning store has been serialized for submission."""
        return self._frozen

    def freeze(self) -> None:
        """Reject further writes."""
        self._frozen = True

    def _check_mutable(self) -> None:
        if self._frozen:
            msg = f"Blob {self.name!r} cannot change after its item was serialized."
            raise BlobStreamUnsupportedError(msg)

    # Writing

    def get_writer_stream(self) -> BlobStream:
        """Open a write stream for this blob's content."""
        self._check_mutable()
        if self.inline_data is not None or self.url is not None:
            msg = f"Blob {self.name!r} already has content; create a new blob instead."
            raise BlobStreamUnsupportedError(msg)
        timeout = self._config.request_timeout
        if self._transfer is not None and self._package is not None:
            stream = BlobStream.for_connect_package(self._transfer, self, self._package, timeout=timeout)
        elif self._transfer is not None and self._record is not None:
            stream = BlobStream.for_record(self._transfer, self, self._record, timeout=timeout)
        else:
            msg = f"Blob {self.name!r} is not bound to a record or connect package."
            raise BlobStreamUnsupportedError(msg)
        self.is_dirty = True
        return stream

    def write(self, source: BinaryIO, *, buffer_size: int = DEFAULT_STREAM_BUFFER_SIZE) -> BlobHashInfo:
        """Stream everything readable from ``source`` into this blob."""
        if buffer_size <= 0:
            msg = "buffer_size must be > 0."
            raise ValueError(msg)
        with self.get_writer_stream() as stream:
            wrote = False
            while True:
                data = source.read(buffer_size)
                if not data:
                    break
                stream.write(data)
                wrote = True
            if not wrote:
                stream.write(b"")
            return stream.complete()

    def write_inline(self, data: str | bytes, *, encoding: str = "utf-8") -> BlobHashInfo:
        """Store content inline, hashed with the configured inline block size."""
        self._check_mutable()
        payload = data.encode(encoding) if isinstance(data, str) else bytes(data)
        hasher = BlobHasher(BlobHashAlgorithm.SHA256_BLOCK, self._config.inline_blob_hash_block_size)
        info = hasher.hash_info(hasher.calculate_inline_blob_hash(payload))
        self.inline_data = payload
        self.content_length = len(payload)
        self.url = None
        self.hash_info = info
        self.is_dirty = True
        return info

    def _attach_upload_url(self, url: str) -> None:
        self.url = url

    def _complete_upload(self, hash_info: BlobHashInfo, *, url: str, length: int) -> None:
        self.url = url
        self.hash_info = hash_info
        self.content_length = length
        self.inline_data = None
        self.is_dirty = True

    # Reading

    def get_reader_stream(self) -> BlobStream:
        """Open a read stream over this blob's content."""
        timeout = self._config.request_timeout
        if self.url is not None:
            if self._transfer is None:
                msg = f"Blob {self.name!r} has no transfer client to read its URL."
                raise BlobStreamUnsupportedError(msg)
            return BlobStream.for_url(self._transfer, self, self.url, self.content_length, timeout=timeout)
        if self.inline_data is not None:
            return BlobStream.for_inline(self, self.inline_data, timeout=timeout)
        msg = f"Blob {self.name!r} has no content."
        raise BlobStreamUnsupportedError(msg)

    def save_to_stream(self, target: BinaryIO, *, buffer_size: int = DEFAULT_STREAM_BUFFER_SIZE) -> int:
        """Copy the content into ``target`` and return the byte count."""
        if buffer_size <= 0:
            msg = "buffer_size must be > 0."
            raise ValueError(msg)
        total = 0
        with self.get_reader_stream() as stream:
            while True:
                data = stream.read(buffer_size)
                if not data:
                    return total
                target.write(data)
                total += len(data)

    def save_to_file(self, path: str | Path, *, overwrite: bool = False) -> Path:
        """Write the content to ``path``; refuses to replace an existing file unless asked."""
        path = Path(path)
        with path.open("wb" if overwrite else "xb") as handle:
            self.save_to_stream(handle)
        return path

    def read_all_bytes(self, *, verify: bool = True) -> bytes:
        """Return the whole content, checking it against ``hash_info`` when possible."""
        buffer = io.BytesIO()
        self.save_to_stream(buffer)
        data = buffer.getvalue()
        if verify and self.hash_info is not None and self.hash_info.algorithm is BlobHashAlgorithm.SHA256_BLOCK:
            hasher = BlobHasher(self.hash_info.algorithm, self.hash_info.block_size)
            actual = hasher.calculate_inline_blob_hash(data)
            if actual != self.hash_info.digest:
                raise BlobIntegrityError(self.name, self.hash_info.hex, actual.hex())
        return data

    def read_as_string(self, *, encoding: str = "utf-8") -> str:
        """Return the content decoded as text."""
        return self.read_all_bytes().decode(encoding)

    # XML

    def to_xml(self) -> Element:
        """Serialize as a ``<blob>`` element of a blob payload."""
        if self.url is not None and self.hash_info is None:
            msg = f"Upload of blob {self.name!r} was not completed."
            raise BlobStreamError(msg)

        root = Element("blob")
        info = SubElement(root, "blob-info")
        SubElement(info, "name").text = self.name
        SubElement(info, "content-type").text = self.content_type
        if self.hash_info is not None:
            info.append(self.hash_info.to_xml())
        if self.content_length is not None:
            SubElement(root, "content-length").text = str(self.content_length)
        if self.url is not None:
            SubElement(root, "blob-ref-url").text = self.url
        elif self.inline_data is not None:
            inline = SubElement(root, "base64data")
            inline.text = base64.b64encode(self.inline_data).decode("ascii")
            if self.content_encoding is not None:
                inline.set("content-encoding", self.content_encoding)
        return root

    @classmethod
    def from_xml(
        cls,
        element: Element,
        *,
        record: RecordReference | None = None,
        package: ConnectPackageParameters | None = None,
        transfer: BlobTransferClient | None = None,
        config: ClientConfig | None = None,
    ) -> Blob:
        """Parse a ``<blob>`` element."""
        info = find_child(element, "blob-info")
        name = ""
        content_type = DEFAULT_CONTENT_TYPE
        hash_info = None
        if info is not None:
            name = child_text(info, "name") or ""
            content_type = child_text(info, "content-type") or DEFAULT_CONTENT_TYPE
            hash_element = find_child(info, "hash-info")
            if hash_element is not None:
                hash_info = BlobHashInfo.from_xml(hash_element)

        inline_data = None
        content_encoding = None
        inline = find_child(element, "base64data")
        if inline is not None:
            inline_data = base64.b64decode(inline.text or "")
            content_encoding = inline.get("content-encoding")

        return cls(
            name,
            content_type,
            content_encoding=content_encoding,
            hash_info=hash_info,
            content_length=optional_child_int(element, "content-length"),
            url=child_text(element, "blob-ref-url"),
            inline_data=inline_data,
            record=record,
            package=package,
            transfer=transfer,
            config=config,
        )
