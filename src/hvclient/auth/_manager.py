"""CredentialSessionManager: per-application session tokens with refresh and retry."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, TypeVar, runtime_checkable

from hvclient.auth._keyset import HmacKeySet, KeysetPairCache, SessionState
from hvclient.auth._token import AuthenticationToken
from hvclient.config import ClientConfig
from hvclient.errors import AuthenticationError, MalformedResponseError, NotAuthenticatedError, SessionExpiredError

if TYPE_CHECKING:
    from collections.abc import Callable

    from hvclient.auth._credential import WebApplicationCredential
    from hvclient.connection import ServiceConnection

logger = logging.getLogger(__name__)

T = TypeVar("T")


def normalize_application_id(application_id: object) -> str:
    """Canonical cache key for an application ID (string or UUID)."""
    key = str(application_id).strip().lower()
    if not key:
        msg = "application_id must be non-empty."
        raise ValueError(msg)
    return key


@dataclass(frozen=True, slots=True)
class SessionSnapshot:
    """An authenticated session as seen by one caller.

    ``keyset`` is a private copy. ``refresh_counter`` identifies the token
    issuance this snapshot came from; pass it back to
    ``expire_authentication_result`` when the service rejects the token.
    """

    application_id: str
    token: str
    keyset: HmacKeySet
    refresh_counter: int
    sub_credential: str | None = None


@runtime_checkable
class TokenMinter(Protocol):
    """Obtains a new session token from the service."""

    def mint(self, credential: WebApplicationCredential, keyset: HmacKeySet) -> AuthenticationToken:
        """Request a token bound to ``keyset``."""
        ...


class ServiceTokenMinter:
    """Mints tokens with the CreateAuthenticatedSessionToken method."""

    method = "CreateAuthenticatedSessionToken"
    version = 2

    def __init__(self, connection: ServiceConnection) -> None:
        """Initialize with an anonymous (application-ID) connection."""
        self._connection = connection

    def mint(self, credential: WebApplicationCredential, keyset: HmacKeySet) -> AuthenticationToken:
        """Send the signed credential and parse the token or its absence reason."""
        response = self._connection.execute(
            self.method,
            self.version,
            credential.info_xml(keyset),
            application_id=credential.application_id,
        )
        if response.info is None:
            msg = f"{self.method} response has no info section."
            raise MalformedResponseError(msg)
        return AuthenticationToken.from_info(response.info, application_id=credential.application_id)


class CredentialSessionManager:
    """Cache of one authenticated session per application.

    Racing callers for the same application mint at most one token: the
    refresh runs under that application's entry lock and re-checks the state
    after acquiring it. Different applications never wait on each other.
    Expiry is keyed by the refresh counter a caller observed, so a report
    about an old token cannot invalidate a newer one.
    """

    def __init__(
        self,
        minter: TokenMinter,
        *,
        config: ClientConfig | None = None,
        cache: KeysetPairCache | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize with a token minter and optional shared cache."""
        self._minter = minter
        self._config = config if config is not None else ClientConfig()
        self._cache = cache if cache is not None else KeysetPairCache()
        self._clock = clock

    @property
    def cache(self) -> KeysetPairCache:
        """The underlying entry cache (shareable between managers)."""
        return self._cache

    def get_or_refresh(self, application_id: object, credential: WebApplicationCredential) -> SessionSnapshot:
        """Return a valid session for the application, minting a token if needed."""
        key = normalize_application_id(application_id)
        pair = self._cache.get_or_create(key)
        max_age = self._config.session_token_max_age

        with pair.lock:
            if not pair.is_authenticated(now=self._clock(), max_age=max_age):
                if pair.state is SessionState.EXPIRED:
                    pair.rotate_keyset()
                keyset = pair.keyset.clone()
                logger.info("Minting session token for application %s", key)
                token = self._minter.mint(credential, keyset)
                if not token.is_authenticated or token.token is None:
                    raise AuthenticationError(key, token.status.value)
                if token.shared_secret:
                    keyset = HmacKeySet(key_material=token.shared_secret, algorithm=keyset.algorithm)
                pair.update(token, keyset, now=self._clock())
                logger.debug("Application %s authenticated (refresh %d)", key, pair.refresh_counter)

            current = pair.token
            if current is None or current.token is None:
                raise NotAuthenticatedError(key)
            return SessionSnapshot(
                application_id=key,
                token=current.token,
                keyset=pair.keyset.clone(),
                refresh_counter=pair.refresh_counter,
                sub_credential=credential.sub_credential,
            )

    def expire_authentication_result(self, application_id: object, refresh_counter: int) -> bool:
        """Mark the session expired if ``refresh_counter`` is still current; return whether it was."""
        key = normalize_application_id(application_id)
        pair = self._cache.get(key)
        if pair is None:
            raise NotAuthenticatedError(key)
        with pair.lock:
            if pair.refresh_counter != refresh_counter:
                logger.debug(
                    "Ignoring stale expiry for application %s (counter %d, current %d)",
                    key,
                    refresh_counter,
                    pair.refresh_counter,
                )
                return False
            pair.expired = True
            logger.info("Session for application %s expired at refresh %d", key, refresh_counter)
            return True

    def is_authentication_expired(self, application_id: object, refresh_counter: int | None = None) -> bool:
        """Whether the cached session is expired, optionally for a specific issuance."""
        key = normalize_application_id(application_id)
        pair = self._cache.get(key)
        if pair is None:
            raise NotAuthenticatedError(key)
        with pair.lock:
            if refresh_counter is not None and pair.refresh_counter != refresh_counter:
                return True
            return pair.state is SessionState.EXPIRED

    def state(self, application_id: object) -> SessionState:
        """Lifecycle state of the application's session."""
        pair = self._cache.get(normalize_application_id(application_id))
        if pair is None:
            return SessionState.UNINITIALIZED
        with pair.lock:
            return pair.state

    def execute_with_session(
        self,
        application_id: object,
        credential: WebApplicationCredential,
        operation: Callable[[SessionSnapshot], T],
    ) -> T:
        """Run ``operation`` with a session; re-authenticate and retry once if it expired."""
        session = self.get_or_refresh(application_id, credential)
        try:
            return operation(session)
        except SessionExpiredError:
            if not self._config.retry_on_expired_session:
                raise
            logger.info("Session rejected for application %s; re-authenticating once", session.application_id)
            self.expire_authentication_result(session.application_id, session.refresh_counter)

        session = self.get_or_refresh(application_id, credential)
        return operation(session)
