"""HealthVaultClient: wires configuration, transport, sessions, connections and blob transfers together."""

from __future__ import annotations

from typing import TYPE_CHECKING

from hvclient.auth._manager import CredentialSessionManager, ServiceTokenMinter
from hvclient.blobs._client import HttpBlobTransferClient
from hvclient.blobs._store import BlobStore
from hvclient.connection import AuthenticatedConnection, ServiceConnection
from hvclient.rest import RestClient
from hvclient.transport import HttpTransport
from hvclient.types import ConnectPackageParameters, RecordReference

if TYPE_CHECKING:
    from types import TracebackType

    from hvclient.auth._credential import WebApplicationCredential
    from hvclient.blobs._cipher import ChunkCipher
    from hvclient.config import ClientConfig


class HealthVaultClient:
    """Entry point for one application credential.

    Pass the same ``sessions`` manager to several clients to share one token
    cache across them; otherwise each client keeps its own.
    """

    def __init__(
        self,
        config: ClientConfig,
        credential: WebApplicationCredential,
        *,
        transport: HttpTransport | None = None,
        sessions: CredentialSessionManager | None = None,
    ) -> None:
        """Build the connection stack for ``credential``."""
        self.config = config
        self.credential = credential
        self._owns_transport = transport is None
        self.transport = (
            transport
            if transport is not None
            else HttpTransport(retry=config.retry, timeout=config.request_timeout)
        )
        self.anonymous_connection = ServiceConnection(config, transport=self.transport)
        self.sessions = (
            sessions
            if sessions is not None
            else CredentialSessionManager(ServiceTokenMinter(self.anonymous_connection), config=config)
        )
        self.connection = AuthenticatedConnection(config, credential, self.sessions, transport=self.transport)
        self.blob_transfer = HttpBlobTransferClient(self.connection)
        self._rest: RestClient | None = None

    @property
    def rest(self) -> RestClient:
        """Signed REST client; requires ``config.rest_url``."""
        if self._rest is None:
            self._rest = RestClient(self.config, self.credential, self.sessions, transport=self.transport)
        return self._rest

    def record_blobs(self, record_id: str, *, person_id: str | None = None) -> BlobStore:
        """Return an empty blob store bound to a health record."""
        return BlobStore(
            record=RecordReference(record_id, person_id),
            transfer=self.blob_transfer,
            config=self.config,
        )

    def connect_package_blobs(self, cipher: ChunkCipher | None = None) -> BlobStore:
        """Return an empty blob store for a connect package, encrypting with ``cipher`` when given."""
        return BlobStore(
            package=ConnectPackageParameters(cipher=cipher),
            transfer=self.blob_transfer,
            config=self.config,
        )

    def close(self) -> None:
        """Close the HTTP transport when this client created it."""
        if self._owns_transport:
            self.transport.close()

    def __enter__(self) -> HealthVaultClient:
        """Enter a context that closes the client on exit."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        """Close the client."""
        self.close()
