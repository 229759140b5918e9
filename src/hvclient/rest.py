"""Signed REST requests: MSH-V1 authorization and HMAC over a canonical request string."""

from __future__ import annotations

import base64
import hashlib
import logging
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import TYPE_CHECKING

from hvclient.errors import SessionExpiredError
from hvclient.transport import HttpTransport, raise_for_status

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    import httpx

    from hvclient.auth._credential import WebApplicationCredential
    from hvclient.auth._keyset import HmacKeySet
    from hvclient.auth._manager import CredentialSessionManager, SessionSnapshot
    from hvclient.config import ClientConfig

logger = logging.getLogger(__name__)

AUTHORIZATION_SCHEME = "MSH-V1"
CONTENT_SHA256_HEADER = "x-ms-content-sha256"
HMAC_HEADER = "x-ms-hmac"
JSON_CONTENT_TYPE = "application/json"
CONTENT_VERBS = frozenset({"POST", "PUT", "PATCH"})


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def content_sha256(body: bytes) -> str:
    """Base64 SHA-256 of a request body."""
    return base64.b64encode(hashlib.sha256(body).digest()).decode("ascii")


def build_authorization_header(
    session: SessionSnapshot,
    *,
    record_id: str | None = None,
    offline_person_id: str | None = None,
) -> str:
    """Format ``MSH-V1 app-token=...,user-token=...,record-id=...``."""
    tokens = [f"app-token={session.token}"]
    if session.sub_credential:
        tokens.append(f"user-token={session.sub_credential}")
    if offline_person_id:
        tokens.append(f"offline-person-id={offline_person_id}")
    if record_id:
        tokens.append(f"record-id={record_id}")
    return f"{AUTHORIZATION_SCHEME} {','.join(tokens)}"


def canonical_request_string(
    verb: str,
    path: str,
    *,
    authorization: str,
    content_hash: str,
    content_type: str,
    date: str,
) -> str:
    """Join the signed request fields, one per line."""
    return "\n".join((verb.upper(), path, authorization, content_hash, content_type, date))


def sign_request(keyset: HmacKeySet, canonical: str) -> str:
    """Return the HMAC header value for a canonical request string."""
    digest = keyset.sign(canonical.encode("utf-8"))
    return f"{keyset.algorithm} {base64.b64encode(digest).decode('ascii')}"


class RestClient:
    """Sends signed REST requests inside the credential's authenticated session."""

    def __init__(
        self,
        config: ClientConfig,
        credential: WebApplicationCredential,
        sessions: CredentialSessionManager,
        *,
        transport: HttpTransport | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        """Initialize with client settings; ``config.rest_url`` must be set."""
        if not config.rest_url:
            msg = "ClientConfig.rest_url is required for REST calls."
            raise ValueError(msg)
        self._base_url = config.rest_url.rstrip("/")
        self._credential = credential
        self._sessions = sessions
        self._transport = (
            transport
            if transport is not None
            else HttpTransport(retry=config.retry, timeout=config.request_timeout)
        )
        self._clock = clock

    def build_headers(
        self,
        session: SessionSnapshot,
        verb: str,
        path: str,
        body: bytes | None,
        *,
        record_id: str | None = None,
    ) -> dict[str, str]:
        """Compute every authentication header for one request."""
        verb = verb.upper()
        authorization = build_authorization_header(session, record_id=record_id)
        date = format_datetime(self._clock(), usegmt=True)
        headers = {"Authorization": authorization, "Date": date}

        content_hash = ""
        content_type = ""
        if verb in CONTENT_VERBS:
            content_hash = content_sha256(body or b"")
            content_type = JSON_CONTENT_TYPE
            headers[CONTENT_SHA256_HEADER] = content_hash
            headers["Content-Type"] = content_type

        canonical = canonical_request_string(
            verb,
            path,
            authorization=authorization,
            content_hash=content_hash,
            content_type=content_type,
            date=date,
        )
        headers[HMAC_HEADER] = sign_request(session.keyset, canonical)
        return headers

    def execute(
        self,
        verb: str,
        path: str,
        *,
        body: str | bytes | None = None,
        record_id: str | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        """Send a signed request; a 401 re-authenticates and retries once."""
        if not path.startswith("/"):
            path = "/" + path
        payload = body.encode("utf-8") if isinstance(body, str) else body

        def _send(session: SessionSnapshot) -> httpx.Response:
            request_headers = dict(headers or {})
            request_headers.update(self.build_headers(session, verb, path, payload, record_id=record_id))
            response = self._transport.send(verb.upper(), self._base_url + path, headers=request_headers, content=payload)
            if response.status_code == 401:
                raise SessionExpiredError(401, "HTTP 401 Unauthorized")
            raise_for_status(response)
            return response

        logger.debug("REST %s %s", verb.upper(), path)
        return self._sessions.execute_with_session(self._credential.application_id, self._credential, _send)
