"""HMAC keysets and the per-application session cache entries that hold them."""

from __future__ import annotations

import hashlib
import hmac
import secrets
import threading
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from hvclient.auth._token import AuthenticationToken

HMAC_SHA256 = "HMACSHA256"
DEFAULT_KEY_BYTES = 32


@dataclass(slots=True)
class HmacKeySet:
    """Symmetric key material used to sign authenticated requests."""

    key_material: bytes
    algorithm: str = HMAC_SHA256

    def __post_init__(self) -> None:
        """Reject unsupported algorithms and empty keys."""
        if self.algorithm != HMAC_SHA256:
            msg = f"Unsupported HMAC algorithm: {self.algorithm}."
            raise ValueError(msg)
        if not self.key_material:
            msg = "HmacKeySet.key_material must not be empty."
            raise ValueError(msg)

    def __repr__(self) -> str:
        """Hide key material."""
        return f"HmacKeySet(algorithm={self.algorithm!r})"

    @classmethod
    def generate(cls, algorithm: str = HMAC_SHA256, size: int = DEFAULT_KEY_BYTES) -> HmacKeySet:
        """Create a keyset with fresh random key material."""
        return cls(key_material=secrets.token_bytes(size), algorithm=algorithm)

    def clone(self) -> HmacKeySet:
        """Return an independent copy."""
        return HmacKeySet(key_material=bytes(self.key_material), algorithm=self.algorithm)

    def sign(self, data: bytes) -> bytes:
        """Return the HMAC-SHA256 of ``data``."""
        return hmac.new(self.key_material, data, hashlib.sha256).digest()


class SessionState(Enum):
    """Lifecycle of one application's cached session."""

    UNINITIALIZED = "uninitialized"
    AUTHENTICATED = "authenticated"
    EXPIRED = "expired"


class SessionKeysetPair:
    """The cached token and keyset of one application.

    Every read or mutation happens while holding ``lock``; the cache never
    hands this object to callers. ``refresh_counter`` increases with each
    successful token issuance and lets a caller expire only the token it
    actually used.
    """

    def __init__(self, application_id: str, keyset: HmacKeySet) -> None:
        """Initialize an unauthenticated entry."""
        self.application_id = application_id
        self.keyset = keyset
        self.token: AuthenticationToken | None = None
        self.refresh_counter = 0
        self.expired = False
        self.issued_at: float | None = None
        self.lock = threading.Lock()

    @property
    def state(self) -> SessionState:
        """Derived lifecycle state; call with ``lock`` held."""
        if self.token is None:
            return SessionState.UNINITIALIZED
        if self.expired:
            return SessionState.EXPIRED
        return SessionState.AUTHENTICATED

    def is_authenticated(self, *, now: float, max_age: float | None) -> bool:
        """Whether the cached token may be used as-is; call with ``lock`` held."""
        if self.state is not SessionState.AUTHENTICATED:
            return False
        if max_age is None or self.issued_at is None:
            return True
        return now - self.issued_at < max_age

    def rotate_keyset(self) -> None:
        """Replace the key material so an expired session is never re-signed with it."""
        self.keyset = HmacKeySet.generate(self.keyset.algorithm, len(self.keyset.key_material))

    def update(self, token: AuthenticationToken, keyset: HmacKeySet, *, now: float) -> None:
        """Install a freshly minted token and the keyset it was minted with."""
        self.keyset = keyset
        self.token = token
        self.expired = False
        self.issued_at = now
        self.refresh_counter += 1


class KeysetPairCache:
    """Application ID to SessionKeysetPair.

    The cache-wide lock only guards inserting new entries. All session work
    happens under each entry's own lock, so one application's refresh never
    blocks another's.
    """

    def __init__(self) -> None:
        """Initialize an empty cache."""
        self._pairs: dict[str, SessionKeysetPair] = {}
        self._lock = threading.Lock()

    def get(self, application_id: str) -> SessionKeysetPair | None:
        """Return the entry for ``application_id`` without creating it."""
        return self._pairs.get(application_id)

    def get_or_create(self, application_id: str) -> SessionKeysetPair:
        """Return the entry for ``application_id``, creating it with a fresh keyset."""
        pair = self._pairs.get(application_id)
        if pair is not None:
            return pair
        with self._lock:
            pair = self._pairs.get(application_id)
            if pair is None:
                pair = SessionKeysetPair(application_id, HmacKeySet.generate())
                self._pairs[application_id] = pair
            return pair

    def __contains__(self, application_id: object) -> bool:
        """Check whether an entry exists."""
        return application_id in self._pairs

    def __len__(self) -> int:
        """Number of cached applications."""
        return len(self._pairs)
