"""hvclient: chunked blob transfers and cached application sessions for a health-record service."""

import importlib.metadata as importlib_metadata

from hvclient.auth import (
    AuthenticationToken,
    AuthenticationTokenStatus,
    CredentialSessionManager,
    HmacKeySet,
    ServiceTokenMinter,
    SessionSnapshot,
    SessionState,
    WebApplicationCredential,
)
from hvclient.blobs import (
    AesCbcChunkCipher,
    Blob,
    BlobHashAlgorithm,
    BlobHasher,
    BlobHashInfo,
    BlobStore,
    BlobStream,
    ChunkUploadSession,
    HttpBlobTransferClient,
    InMemoryBlobTransferClient,
    new_blob_from_file,
)
from hvclient.client import HealthVaultClient
from hvclient.config import ClientConfig, RetryPolicy
from hvclient.connection import AuthenticatedConnection, ServiceConnection, ServiceResponse
from hvclient.errors import (
    AuthenticationError,
    BlobHashAlgorithmError,
    BlobIntegrityError,
    BlobSeekError,
    BlobSizeLimitError,
    BlobStreamClosedError,
    BlobStreamError,
    BlobStreamUnsupportedError,
    EmptyBlobStreamError,
    HvClientError,
    MalformedResponseError,
    NotAuthenticatedError,
    ServiceError,
    SessionExpiredError,
    TransportError,
)
from hvclient.rest import RestClient
from hvclient.transport import HttpTransport
from hvclient.types import ConnectPackageParameters, RecordReference


def _detect_version() -> str:
    """Return installed package version or a local fallback when metadata is unavailable."""
    try:
        return importlib_metadata.version("hvclient")
    except importlib_metadata.PackageNotFoundError:
        return "0.0.0+unknown"


__version__ = _detect_version()

__all__ = [
    "AesCbcChunkCipher",
    "AuthenticatedConnection",
    "AuthenticationError",
    "AuthenticationToken",
    "AuthenticationTokenStatus",
    "Blob",
    "BlobHashAlgorithm",
    "BlobHashAlgorithmError",
    "BlobHashInfo",
    "BlobHasher",
    "BlobIntegrityError",
    "BlobSeekError",
    "BlobSizeLimitError",
    "BlobStore",
    "BlobStream",
    "BlobStreamClosedError",
    "BlobStreamError",
    "BlobStreamUnsupportedError",
    "ChunkUploadSession",
    "ClientConfig",
    "ConnectPackageParameters",
    "CredentialSessionManager",
    "EmptyBlobStreamError",
    "HealthVaultClient",
    "HmacKeySet",
    "HttpBlobTransferClient",
    "HttpTransport",
    "HvClientError",
    "InMemoryBlobTransferClient",
    "MalformedResponseError",
    "NotAuthenticatedError",
    "RecordReference",
    "RestClient",
    "RetryPolicy",
    "ServiceConnection",
    "ServiceError",
    "ServiceResponse",
    "ServiceTokenMinter",
    "SessionExpiredError",
    "SessionSnapshot",
    "SessionState",
    "TransportError",
    "WebApplicationCredential",
    "new_blob_from_file",
]
