"""Typed errors for hvclient."""

import io


class HvClientError(Exception):
    """Base exception for all hvclient errors."""


class TransportError(HvClientError):
    """Raised when an HTTP exchange fails or returns a non-success status."""

    def __init__(self, message: str, *, status_code: int | None = None, url: str | None = None) -> None:
        """Initialize with the failure message and optional HTTP status and URL."""
        self.status_code = status_code
        self.url = url
        super().__init__(message)


class ServiceError(HvClientError):
    """Raised when the service answers with a non-zero status code."""

    def __init__(self, code: int, message: str = "") -> None:
        """Initialize with the service status code and its error message."""
        self.code = code
        self.message = message
        detail = f": {message}" if message else ""
        super().__init__(f"Service returned status code {code}{detail}")


class SessionExpiredError(ServiceError):
    """Raised when the service rejects the authenticated session token."""


class MalformedResponseError(HvClientError):
    """Raised when a service response cannot be parsed."""


class AuthenticationError(HvClientError):
    """Raised when token minting completes without a usable token."""

    def __init__(self, application_id: str, status: str) -> None:
        """Initialize with the application ID and the reported token status."""
        self.application_id = application_id
        self.status = status
        super().__init__(f"Authentication failed for application {application_id}: {status}")


class NotAuthenticatedError(HvClientError):
    """Raised when an application has no cached session to act on."""

    def __init__(self, application_id: str) -> None:
        """Initialize with the application ID that has no session."""
        self.application_id = application_id
        super().__init__(f"No authenticated session for application {application_id}")


class BlobHashAlgorithmError(HvClientError):
    """Raised when a blob must be hashed with an unsupported algorithm."""

    def __init__(self, algorithm: str) -> None:
        """Initialize with the unsupported algorithm name."""
        self.algorithm = algorithm
        super().__init__(f"Unsupported blob hash algorithm: {algorithm}")


class BlobIntegrityError(HvClientError):
    """Raised when blob data does not match its recorded hash."""

    def __init__(self, blob_name: str, expected: str, actual: str) -> None:
        """Initialize with the blob name and mismatched digests."""
        self.blob_name = blob_name
        self.expected = expected
        self.actual = actual
        super().__init__(f"Blob integrity check failed for {blob_name!r}: expected {expected}, got {actual}")


class BlobStreamError(HvClientError):
    """Base exception for invalid operations on a blob stream."""


class BlobStreamClosedError(BlobStreamError, ValueError):
    """Raised when a closed blob stream is used."""

    def __init__(self) -> None:
        """Initialize with the standard closed-stream message."""
        super().__init__("I/O operation on closed blob stream.")


class BlobStreamUnsupportedError(BlobStreamError, io.UnsupportedOperation):
    """Raised when a stream is asked for a capability it does not have."""


class EmptyBlobStreamError(BlobStreamError):
    """Raised when a write stream is finalized without any write attempt."""


class BlobSeekError(BlobStreamError, OSError):
    """Raised when a seek would move outside the stream."""

    def __init__(self, position: int, length: int | None = None) -> None:
        """Initialize with the rejected position and the stream length, when known."""
        self.position = position
        self.length = length
        bound = f" (length {length})" if length is not None else ""
        super().__init__(f"Cannot seek to position {position}{bound}")


class BlobSizeLimitError(BlobStreamError):
    """Raised when a write would exceed the negotiated maximum blob size."""

    def __init__(self, max_blob_size: int, attempted: int) -> None:
        """Initialize with the negotiated limit and the attempted total size."""
        self.max_blob_size = max_blob_size
        self.attempted = attempted
        super().__init__(f"Blob size {attempted} exceeds the maximum of {max_blob_size} bytes")
