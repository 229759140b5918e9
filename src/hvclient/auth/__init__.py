"""Application credentials and the per-application session cache."""

from hvclient.auth._credential import WebApplicationCredential
from hvclient.auth._keyset import HmacKeySet, KeysetPairCache, SessionKeysetPair, SessionState
from hvclient.auth._manager import (
    CredentialSessionManager,
    ServiceTokenMinter,
    SessionSnapshot,
    TokenMinter,
    normalize_application_id,
)
from hvclient.auth._token import AuthenticationToken, AuthenticationTokenStatus, RecordAuthorizationAction

__all__ = [
    "AuthenticationToken",
    "AuthenticationTokenStatus",
    "CredentialSessionManager",
    "HmacKeySet",
    "KeysetPairCache",
    "RecordAuthorizationAction",
    "ServiceTokenMinter",
    "SessionKeysetPair",
    "SessionSnapshot",
    "SessionState",
    "TokenMinter",
    "WebApplicationCredential",
    "normalize_application_id",
]
