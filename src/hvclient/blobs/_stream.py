"""BlobStream: chunked blob upload with block hashing, and inline or ranged-HTTP reads."""

from __future__ import annotations

import io
import logging
from collections import deque
from typing import TYPE_CHECKING, Protocol

from hvclient.blobs._hashing import BlobHasher, BlobHashInfo
from hvclient.errors import (
    BlobSeekError,
    BlobSizeLimitError,
    BlobStreamClosedError,
    BlobStreamError,
    BlobStreamUnsupportedError,
    EmptyBlobStreamError,
)
from hvclient.types import ConnectPackageParameters

if TYPE_CHECKING:
    from types import TracebackType

    from hvclient.blobs._client import BlobTransferClient
    from hvclient.blobs._session import ChunkUploadSession
    from hvclient.types import RecordReference

logger = logging.getLogger(__name__)

DEFAULT_READ_SIZE = 1 << 20


class UploadTarget(Protocol):
    """The blob handle a write stream reports its progress to."""

    name: str

    def _attach_upload_url(self, url: str) -> None: ...

    def _complete_upload(self, hash_info: BlobHashInfo, *, url: str, length: int) -> None: ...


def _byte_window(data: object, offset: int, count: int | None) -> memoryview:
    """Validate ``offset``/``count`` against a bytes-like object and return the window."""
    if not isinstance(data, (bytes, bytearray, memoryview)):
        msg = f"Expected a bytes-like object, got {type(data).__name__}."
        raise TypeError(msg)
    view = memoryview(data).cast("B")
    if count is None:
        count = len(view) - offset
    if offset < 0:
        msg = "offset must be >= 0."
        raise ValueError(msg)
    if count < 0:
        msg = "count must be >= 0."
        raise ValueError(msg)
    if offset + count > len(view):
        msg = "offset + count exceeds the buffer length."
        raise ValueError(msg)
    return view[offset : offset + count]


class BlobStream:
    """A single-use stream over one blob.

    Write streams buffer caller bytes and upload them in chunks of exactly
    the negotiated chunk size, in byte order, hashing each chunk's plaintext
    before it leaves. The upload is negotiated on the first write. Call
    ``complete()`` (or leave a ``with`` block normally) to send the final
    chunk and attach the resulting hash info to the blob; leaving the block
    through an exception aborts without producing hash info.

    Read streams serve bytes from inline data or from ranged GETs against
    the blob URL; a range past the end of the blob reads as end of stream.

    Instances are not safe for concurrent use.
    """

    def __init__(
        self,
        blob: UploadTarget,
        *,
        transfer: BlobTransferClient | None = None,
        record: RecordReference | None = None,
        package: ConnectPackageParameters | None = None,
        inline_data: bytes | None = None,
        url: str | None = None,
        length: int | None = None,
        timeout: float | None = None,
    ) -> None:
        """Initialize one stream mode; prefer the ``for_*`` constructors."""
        if length is not None and length < 0:
            msg = "length must be >= 0."
            raise ValueError(msg)
        self._blob = blob
        self._transfer = transfer
        self._record = record
        self._package = package
        self._inline = inline_data
        self._url = url
        self._length = len(inline_data) if inline_data is not None else length
        self._writable = record is not None or package is not None

        self._position = 0
        self._closed = False
        self._failed = False
        self._tried_to_write = False

        self._session: ChunkUploadSession | None = None
        self._hasher: BlobHasher | None = None
        self._pending: deque[memoryview] = deque()
        self._pending_size = 0
        self._block_hashes: list[bytes] = []

        self.read_timeout = timeout
        self.write_timeout = timeout
        self.hash_info: BlobHashInfo | None = None

    @classmethod
    def for_record(
        cls,
        transfer: BlobTransferClient,
        blob: UploadTarget,
        record: RecordReference,
        *,
        timeout: float | None = None,
    ) -> BlobStream:
        """Open a write stream for a blob attached to a health record."""
        return cls(blob, transfer=transfer, record=record, timeout=timeout)

    @classmethod
    def for_connect_package(
        cls,
        transfer: BlobTransferClient,
        blob: UploadTarget,
        package: ConnectPackageParameters | None = None,
        *,
        timeout: float | None = None,
    ) -> BlobStream:
        """Open a write stream for a connect-package blob, encrypting chunks when a cipher is set."""
        return cls(blob, transfer=transfer, package=package or ConnectPackageParameters(), timeout=timeout)

    @classmethod
    def for_inline(cls, blob: UploadTarget, data: bytes, *, timeout: float | None = None) -> BlobStream:
        """Open a read stream over data already held in memory."""
        return cls(blob, inline_data=bytes(data), timeout=timeout)

    @classmethod
    def for_url(
        cls,
        transfer: BlobTransferClient,
        blob: UploadTarget,
        url: str,
        length: int | None = None,
        *,
        timeout: float | None = None,
    ) -> BlobStream:
        """Open a read stream over a stored blob, fetched with ranged GETs."""
        if not url:
            msg = "url must be a non-empty string."
            raise ValueError(msg)
        return cls(blob, transfer=transfer, url=url, length=length, timeout=timeout)

    # Capabilities

    @property
    def closed(self) -> bool:
        """Whether the stream has been completed, closed or aborted."""
        return self._closed

    def readable(self) -> bool:
        """Read streams are the inline and URL variants."""
        return not self._writable

    def writable(self) -> bool:
        """Write streams are the record and connect-package variants."""
        return self._writable

    def seekable(self) -> bool:
        """Only read streams can seek."""
        return not self._writable

    @property
    def length(self) -> int:
        """Total blob length for read streams, or bytes accepted so far for write streams."""
        if self._writable:
            return self._position + self._pending_size
        if self._length is None:
            msg = "Blob length is unknown."
            raise BlobStreamUnsupportedError(msg)
        return self._length

    def tell(self) -> int:
        """Current position."""
        self._check_open()
        if self._writable:
            return self._position + self._pending_size
        return self._position

    # Writing

    def write(self, data: bytes | bytearray | memoryview, offset: int = 0, count: int | None = None) -> int:
        """Buffer ``data[offset:offset + count]`` and upload every full chunk."""
        self._check_writable()
        view = _byte_window(data, offset, count)
        if self._failed:
            msg = "Blob stream failed during a previous chunk upload."
            raise BlobStreamError(msg)
        self._tried_to_write = True

        session = self._ensure_session()
        total = self._position + self._pending_size + len(view)
        if total > session.max_blob_size:
            raise BlobSizeLimitError(session.max_blob_size, total)

        if view:
            self._pending.append(memoryview(view.tobytes()))
            self._pending_size += len(view)
        self._send_chunks(final=False)
        return len(view)

    def write_byte(self, value: int) -> None:
        """Write a single byte value."""
        if not isinstance(value, int) or isinstance(value, bool):
            msg = "write_byte expects an int."
            raise TypeError(msg)
        if not 0 <= value <= 255:
            msg = "byte value must be in range 0..255."
            raise ValueError(msg)
        self.write(bytes((value,)))

    def flush(self) -> None:
        """Chunks are sent as soon as they fill; nothing else to flush."""
        self._check_open()

    def complete(self) -> BlobHashInfo:
        """Send the final chunk, attach hash info to the blob and close the stream."""
        self._check_writable()
        if self._failed:
            msg = "Cannot complete a blob stream after a failed chunk upload."
            raise BlobStreamError(msg)
        if not self._tried_to_write:
            msg = "Blob stream was finalized without any write."
            raise EmptyBlobStreamError(msg)

        session = self._ensure_session()
        hasher = self._require_hasher()
        self._send_chunks(final=True)

        info = hasher.hash_info(hasher.calculate_blob_hash(self._block_hashes))
        self._blob._complete_upload(info, url=session.url, length=self._position)
        self.hash_info = info
        self._closed = True
        logger.debug("Completed blob %r: %d bytes, %d blocks", self._blob.name, self._position, len(self._block_hashes))
        return info

    def _ensure_session(self) -> ChunkUploadSession:
        if self._session is not None:
            return self._session
        transfer = self._require_transfer()

        if self._package is not None:
            session = transfer.begin_put_connect_package_blob()
        elif self._record is not None:
            session = transfer.begin_put_blob(self._record.record_id)
        else:
            msg = "Blob stream is not writable."
            raise BlobStreamUnsupportedError(msg)

        cipher = self._package.cipher if self._package is not None else None
        if cipher is not None:
            encrypted_size = cipher.encrypted_size(session.chunk_size)
            post_size = session.post_encryption_chunk_size
            if post_size is None or encrypted_size > post_size:
                self._failed = True
                msg = (
                    f"Encrypted chunks of {encrypted_size} bytes do not fit the negotiated "
                    f"post-encryption chunk size {post_size}."
                )
                raise BlobStreamError(msg)

        hasher = BlobHasher(session.hash_algorithm, session.effective_hash_block_size)
        if session.chunk_size % hasher.block_size:
            logger.warning(
                "Chunk size %d is not a multiple of hash block size %d",
                session.chunk_size,
                hasher.block_size,
            )
        self._session = session
        self._hasher = hasher
        self._blob._attach_upload_url(session.url)
        logger.debug("Negotiated upload for blob %r: chunk size %d", self._blob.name, session.chunk_size)
        return session

    def _require_hasher(self) -> BlobHasher:
        if self._hasher is None:
            msg = "Blob upload has not been negotiated."
            raise BlobStreamError(msg)
        return self._hasher

    def _require_transfer(self) -> BlobTransferClient:
        if self._transfer is None:
            msg = "Blob stream has no transfer client."
            raise BlobStreamUnsupportedError(msg)
        return self._transfer

    def _send_chunks(self, *, final: bool) -> None:
        session = self._ensure_session()
        while self._pending_size >= session.chunk_size:
            self._write_chunk(session.chunk_size, complete=False)
        if final:
            self._write_chunk(self._pending_size, complete=True)

    def _take(self, size: int) -> bytes:
        out = bytearray()
        while len(out) < size:
            head = self._pending[0]
            need = size - len(out)
            if len(head) <= need:
                out += head
                self._pending.popleft()
            else:
                out += head[:need]
                self._pending[0] = head[need:]
        self._pending_size -= size
        return bytes(out)

    def _write_chunk(self, size: int, *, complete: bool) -> None:
        session = self._ensure_session()
        transfer = self._require_transfer()
        chunk = self._take(size)
        if chunk:
            self._block_hashes.extend(self._require_hasher().calculate_block_hashes(chunk))

        payload = chunk
        start = self._position
        cipher = self._package.cipher if self._package is not None else None
        if cipher is not None and chunk:
            payload = cipher.encrypt(chunk)
            start = session.wire_offset(self._position)
            post_size = session.post_encryption_chunk_size
            if post_size is not None and len(payload) > post_size:
                self._failed = True
                msg = f"Encrypted chunk of {len(payload)} bytes exceeds the post-encryption chunk size {post_size}."
                raise BlobStreamError(msg)

        try:
            transfer.upload_chunk(
                session.url,
                payload,
                start=start,
                complete=complete,
                timeout=self.write_timeout,
            )
        except Exception:
            self._failed = True
            logger.warning("Chunk upload failed for blob %r at offset %d", self._blob.name, self._position)
            raise
        self._position += len(chunk)

    # Reading

    def readinto(self, buffer: bytearray | memoryview, offset: int = 0, count: int | None = None) -> int:
        """Read up to ``count`` bytes into ``buffer[offset:]``; return 0 at end of stream."""
        self._check_readable()
        target = _byte_window(buffer, offset, count)
        if target.readonly:
            msg = "readinto requires a writable buffer."
            raise TypeError(msg)

        wanted = len(target)
        if wanted == 0:
            return 0
        if self._length is not None:
            wanted = min(wanted, self._length - self._position)
            if wanted <= 0:
                return 0

        if self._inline is not None:
            data = self._inline[self._position : self._position + wanted]
        elif self._url is not None:
            data = self._require_transfer().download_range(
                self._url,
                self._position,
                self._position + wanted - 1,
                timeout=self.read_timeout,
            )[:wanted]
        else:
            msg = "Blob stream has no content source."
            raise BlobStreamUnsupportedError(msg)

        read = len(data)
        target[:read] = data
        self._position += read
        return read

    def read(self, size: int | None = -1) -> bytes:
        """Read up to ``size`` bytes, or until end of stream when ``size`` is negative."""
        if size is not None and size >= 0:
            buffer = bytearray(size)
            read = self.readinto(buffer)
            return bytes(buffer[:read])

        parts: list[bytes] = []
        while True:
            part = self.read(DEFAULT_READ_SIZE)
            if not part:
                return b"".join(parts)
            parts.append(part)

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        """Move the read position; seeking from the end requires a known length."""
        self._check_open()
        if not self.seekable():
            msg = "Blob write streams are not seekable."
            raise BlobStreamUnsupportedError(msg)

        if whence == io.SEEK_SET:
            position = offset
        elif whence == io.SEEK_CUR:
            position = self._position + offset
        elif whence == io.SEEK_END:
            if self._length is None:
                msg = "Cannot seek from the end of a blob with unknown length."
                raise BlobStreamUnsupportedError(msg)
            position = self._length + offset
        else:
            msg = f"Invalid whence value: {whence}."
            raise ValueError(msg)

        if position < 0 or (self._length is not None and position > self._length):
            raise BlobSeekError(position, self._length)
        self._position = position
        return position

    # Lifecycle

    def close(self) -> None:
        """Complete a pending upload, or release a read stream."""
        if self._closed:
            return
        if self._writable and not self._failed:
            self.complete()
            return
        self._release()

    def abort(self) -> None:
        """Release the stream without finalizing an upload."""
        if self._closed:
            return
        if self._writable and self._tried_to_write:
            logger.warning("Aborting upload of blob %r after %d bytes", self._blob.name, self.length)
        self._release()

    def _release(self) -> None:
        self._pending.clear()
        self._pending_size = 0
        self._closed = True

    def _check_open(self) -> None:
        if self._closed:
            raise BlobStreamClosedError

    def _check_writable(self) -> None:
        self._check_open()
        if not self._writable:
            msg = "Blob stream is not writable."
            raise BlobStreamUnsupportedError(msg)

    def _check_readable(self) -> None:
        self._check_open()
        if self._writable:
            msg = "Blob stream is not readable."
            raise BlobStreamUnsupportedError(msg)

    def __enter__(self) -> BlobStream:
        """Enter a context that finalizes on success and aborts on error."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        """Close on normal exit; abort when an exception escapes."""
        if exc_type is None:
            self.close()
        else:
            self.abort()
