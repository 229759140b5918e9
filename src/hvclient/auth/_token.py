"""Authentication tokens returned by CreateAuthenticatedSessionToken."""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, TypeVar

from hvclient.errors import MalformedResponseError
from hvclient.serde import child_text, find_child

if TYPE_CHECKING:
    from xml.etree.ElementTree import Element

_E = TypeVar("_E", bound=Enum)


class AuthenticationTokenStatus(Enum):
    """Outcome of a token request."""

    UNKNOWN = "Unknown"
    SUCCESS = "Success"
    CREDENTIAL_NOT_FOUND = "CredentialNotFound"
    INVALID_APPLICATION = "InvalidApplication"
    APPLICATION_NOT_AUTHORIZED = "ApplicationNotAuthorized"

    @classmethod
    def parse(cls, value: str | None) -> AuthenticationTokenStatus:
        """Parse a status name; unrecognized names map to UNKNOWN."""
        return _parse_enum(cls, value, cls.UNKNOWN)


class RecordAuthorizationAction(Enum):
    """What the application must do before it can access records."""

    UNKNOWN = "Unknown"
    NO_ACTION_REQUIRED = "NoActionRequired"
    AUTHORIZATION_REQUIRED = "AuthorizationRequired"
    AUTHORIZATION_NOT_ALLOWED = "AuthorizationNotAllowed"

    @classmethod
    def parse(cls, value: str | None) -> RecordAuthorizationAction:
        """Parse an action name; unrecognized names map to UNKNOWN."""
        return _parse_enum(cls, value, cls.UNKNOWN)


def _parse_enum(enum_type: type[_E], value: str | None, fallback: _E) -> _E:
    """Case-insensitive lookup by value with a fallback member."""
    if value is None:
        return fallback
    normalized = value.strip().lower()
    for member in enum_type:
        if member.value.lower() == normalized:
            return member
    return fallback


@dataclass(frozen=True, slots=True)
class AuthenticationToken:
    """A minted session token, or the reason none was issued."""

    application_id: str
    status: AuthenticationTokenStatus
    token: str | None = None
    record_authorization_action: RecordAuthorizationAction = RecordAuthorizationAction.UNKNOWN
    shared_secret: bytes | None = None

    @property
    def is_authenticated(self) -> bool:
        """Only a successful status with a token value counts."""
        return self.status is AuthenticationTokenStatus.SUCCESS and bool(self.token)

    @classmethod
    def from_info(cls, info: Element, *, application_id: str) -> AuthenticationToken:
        """Parse the ``info`` element of a CreateAuthenticatedSessionToken response."""
        shared_secret = _shared_secret(info)
        token_element = find_child(info, "token")
        if token_element is not None:
            return cls(
                application_id=token_element.get("app-id") or application_id,
                status=AuthenticationTokenStatus.SUCCESS,
                token=(token_element.text or "").strip() or None,
                record_authorization_action=RecordAuthorizationAction.parse(
                    token_element.get("app-record-auth-action"),
                ),
                shared_secret=shared_secret,
            )

        absence = find_child(info, "token-absence-reason")
        if absence is not None:
            return cls(
                application_id=absence.get("app-id") or application_id,
                status=AuthenticationTokenStatus.parse(absence.text),
                shared_secret=shared_secret,
            )

        msg = "Token response contains neither <token> nor <token-absence-reason>."
        raise MalformedResponseError(msg)


def _shared_secret(info: Element) -> bytes | None:
    text = child_text(info, "shared-secret")
    if text is None:
        return None
    try:
        return base64.b64decode(text, validate=True)
    except binascii.Error as exc:
        msg = "shared-secret is not valid base64."
        raise MalformedResponseError(msg) from exc
