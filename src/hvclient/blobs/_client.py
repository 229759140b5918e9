"""BlobTransferClient protocol and its HTTP implementation."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from hvclient.blobs._session import ChunkUploadSession
from hvclient.errors import MalformedResponseError
from hvclient.transport import raise_for_status

if TYPE_CHECKING:
    from xml.etree.ElementTree import Element

    from hvclient.connection import AuthenticatedConnection
    from hvclient.transport import HttpTransport

logger = logging.getLogger(__name__)

BLOB_COMPLETE_HEADER = "x-hv-blob-complete"
HTTP_RANGE_NOT_SATISFIABLE = 416


def content_range(start: int, size: int) -> str:
    """Format the Content-Range header value for an upload chunk."""
    return f"bytes {start}-{start + size - 1}/*"


@runtime_checkable
class BlobTransferClient(Protocol):
    """Negotiates uploads and moves chunk bytes to and from blob storage."""

    def begin_put_blob(self, record_id: str) -> ChunkUploadSession:
        """Negotiate an upload for a blob attached to a record."""
        ...

    def begin_put_connect_package_blob(self) -> ChunkUploadSession:
        """Negotiate an upload for a blob attached to a connect package."""
        ...

    def upload_chunk(
        self,
        url: str,
        data: bytes,
        *,
        start: int,
        complete: bool,
        timeout: float | None = None,
    ) -> None:
        """Send one chunk starting at wire offset ``start``."""
        ...

    def download_range(self, url: str, start: int, end: int, *, timeout: float | None = None) -> bytes:
        """Fetch bytes ``start..end`` inclusive; return ``b""`` past the end of the blob."""
        ...


class HttpBlobTransferClient:
    """Blob transfers against the live service.

    Negotiation goes through the authenticated XML methods; chunk bytes go
    straight to the returned blob URL.
    """

    def __init__(self, connection: AuthenticatedConnection, *, transport: HttpTransport | None = None) -> None:
        """Initialize with an authenticated connection and optional dedicated transport."""
        self._connection = connection
        self._transport = transport if transport is not None else connection.transport

    def begin_put_blob(self, record_id: str) -> ChunkUploadSession:
        """Call BeginPutBlob for the record."""
        response = self._connection.execute("BeginPutBlob", 1, record_id=record_id)
        return ChunkUploadSession.from_info(_require_info(response.info, "BeginPutBlob"))

    def begin_put_connect_package_blob(self) -> ChunkUploadSession:
        """Call BeginPutConnectPackageBlob."""
        response = self._connection.execute("BeginPutConnectPackageBlob", 1)
        return ChunkUploadSession.from_info(_require_info(response.info, "BeginPutConnectPackageBlob"), encrypted=True)

    def upload_chunk(
        self,
        url: str,
        data: bytes,
        *,
        start: int,
        complete: bool,
        timeout: float | None = None,
    ) -> None:
        """POST one chunk with its Content-Range and completion marker."""
        headers: dict[str, str] = {"Content-Type": "application/octet-stream"}
        if data:
            headers["Content-Range"] = content_range(start, len(data))
        if complete:
            headers[BLOB_COMPLETE_HEADER] = "1"
        logger.debug("Uploading %d bytes at offset %d to %s (complete=%s)", len(data), start, url, complete)
        response = self._transport.send("POST", url, headers=headers, content=data, timeout=timeout)
        raise_for_status(response)

    def download_range(self, url: str, start: int, end: int, *, timeout: float | None = None) -> bytes:
        """GET a byte range; 416 means the range starts past the end of the blob."""
        headers = {"Range": f"bytes={start}-{end}"}
        response = self._transport.send("GET", url, headers=headers, timeout=timeout)
        if response.status_code == HTTP_RANGE_NOT_SATISFIABLE:
            return b""
        raise_for_status(response)
        if response.status_code == 200 and "Content-Range" not in response.headers:
            return response.content[start : end + 1]
        return response.content


def _require_info(info: Element | None, method: str) -> Element:
    if info is None:
        msg = f"{method} response has no info section."
        raise MalformedResponseError(msg)
    return info
