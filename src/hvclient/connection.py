"""XML request envelope, response parsing and the anonymous/authenticated service connections."""

from __future__ import annotations

import base64
import hashlib
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING
from xml.etree.ElementTree import Element, ParseError, SubElement, fromstring, tostring

from hvclient.errors import MalformedResponseError, ServiceError, SessionExpiredError
from hvclient.serde import child_text, find_child, format_timestamp, require_child_int
from hvclient.transport import HttpTransport, raise_for_status

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from hvclient.auth._credential import WebApplicationCredential
    from hvclient.auth._keyset import HmacKeySet
    from hvclient.auth._manager import CredentialSessionManager, SessionSnapshot
    from hvclient.config import ClientConfig

logger = logging.getLogger(__name__)

REQUEST_NAMESPACE = "urn:com.microsoft.wc.request"
CLIENT_VERSION = "hvclient-python"
STATUS_OK = 0
STATUS_CREDENTIAL_TOKEN_EXPIRED = 7
STATUS_AUTHENTICATED_SESSION_TOKEN_EXPIRED = 65
SESSION_EXPIRED_CODES = frozenset({STATUS_CREDENTIAL_TOKEN_EXPIRED, STATUS_AUTHENTICATED_SESSION_TOKEN_EXPIRED})
HTTP_UNAUTHORIZED = 401


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class ServiceResponse:
    """A successful method response: the status code and the ``info`` element, if any."""

    method: str
    code: int
    info: Element | None


def parse_service_response(body: bytes, *, method: str) -> ServiceResponse:
    """Parse a response envelope, raising for non-zero status codes."""
    try:
        root = fromstring(body)
    except ParseError as exc:
        msg = f"{method} response is not well-formed XML."
        raise MalformedResponseError(msg) from exc

    status = find_child(root, "status")
    if status is None:
        msg = f"{method} response has no <status>."
        raise MalformedResponseError(msg)
    code = require_child_int(status, "code")
    if code != STATUS_OK:
        error = find_child(status, "error")
        message = (child_text(error, "message") or "") if error is not None else ""
        if code in SESSION_EXPIRED_CODES:
            raise SessionExpiredError(code, message)
        raise ServiceError(code, message)
    return ServiceResponse(method=method, code=code, info=find_child(root, "info"))


class ServiceConnection:
    """Calls platform methods identified by the application ID alone.

    Used for methods that need no session, most importantly minting the
    session token itself.
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        transport: HttpTransport | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        """Initialize with client settings and an optional shared transport."""
        self._config = config
        self._transport = (
            transport
            if transport is not None
            else HttpTransport(retry=config.retry, timeout=config.request_timeout)
        )
        self._clock = clock

    @property
    def config(self) -> ClientConfig:
        """Client settings."""
        return self._config

    @property
    def transport(self) -> HttpTransport:
        """HTTP transport used for every call."""
        return self._transport

    def execute(
        self,
        method: str,
        version: int,
        info_xml: str = "",
        *,
        record_id: str | None = None,
        application_id: str | None = None,
    ) -> ServiceResponse:
        """Call ``method`` with an ``app-id`` header."""
        application_id = application_id or self._config.application_id
        if not application_id:
            msg = "An application_id is required for unauthenticated calls."
            raise ValueError(msg)
        info = self._info_section(info_xml)
        header = self._build_header(method, version, info, record_id=record_id, application_id=application_id)
        return self._post(self._envelope(header, info), method)

    @staticmethod
    def _info_section(info_xml: str) -> bytes:
        return f"<info>{info_xml}</info>".encode()

    def _build_header(
        self,
        method: str,
        version: int,
        info: bytes,
        *,
        record_id: str | None,
        application_id: str | None = None,
        session: SessionSnapshot | None = None,
        session_elements: Sequence[Element] = (),
    ) -> bytes:
        header = Element("header")
        SubElement(header, "method").text = method
        SubElement(header, "method-version").text = str(version)
        if record_id:
            SubElement(header, "record-id").text = record_id
        if session is not None:
            auth_session = SubElement(header, "auth-session")
            SubElement(auth_session, "auth-token").text = session.token
            for element in session_elements:
                auth_session.append(element)
        else:
            SubElement(header, "app-id").text = application_id
        SubElement(header, "msg-time").text = format_timestamp(self._clock())
        SubElement(header, "msg-ttl").text = str(self._config.request_time_to_live)
        SubElement(header, "version").text = CLIENT_VERSION
        info_hash = SubElement(header, "info-hash")
        hash_data = SubElement(info_hash, "hash-data", {"algName": "SHA256"})
        hash_data.text = base64.b64encode(hashlib.sha256(info).digest()).decode("ascii")
        return tostring(header, encoding="utf-8", xml_declaration=False)

    def _envelope(self, header: bytes, info: bytes, *, keyset: HmacKeySet | None = None) -> bytes:
        parts = [f'<wc-request:request xmlns:wc-request="{REQUEST_NAMESPACE}">'.encode()]
        if keyset is not None:
            signature = base64.b64encode(keyset.sign(header)).decode("ascii")
            parts.append(
                f'<auth><hmac-data algName="{keyset.algorithm}">{signature}</hmac-data></auth>'.encode(),
            )
        parts.extend((header, info, b"</wc-request:request>"))
        return b"".join(parts)

    def _post(self, body: bytes, method: str) -> ServiceResponse:
        logger.debug("Calling %s (%d bytes)", method, len(body))
        response = self._transport.send(
            "POST",
            self._config.service_url,
            headers={"Content-Type": "text/xml; charset=utf-8"},
            content=body,
        )
        if response.status_code == HTTP_UNAUTHORIZED:
            raise SessionExpiredError(HTTP_UNAUTHORIZED, "HTTP 401 Unauthorized")
        raise_for_status(response)
        return parse_service_response(response.content, method=method)


class AuthenticatedConnection(ServiceConnection):
    """Calls platform methods with a session token and an HMAC-signed header.

    A rejected session is expired, re-authenticated and the call retried
    exactly once.
    """

    def __init__(
        self,
        config: ClientConfig,
        credential: WebApplicationCredential,
        sessions: CredentialSessionManager,
        *,
        transport: HttpTransport | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        """Initialize with the application credential and the session manager that caches its token."""
        super().__init__(config, transport=transport, clock=clock)
        self._credential = credential
        self._sessions = sessions

    @property
    def credential(self) -> WebApplicationCredential:
        """Application credential the session is minted for."""
        return self._credential

    @property
    def sessions(self) -> CredentialSessionManager:
        """Session manager holding this application's token."""
        return self._sessions

    def execute(
        self,
        method: str,
        version: int,
        info_xml: str = "",
        *,
        record_id: str | None = None,
        application_id: str | None = None,
    ) -> ServiceResponse:
        """Call ``method`` inside the credential's authenticated session."""
        if application_id is not None and application_id.lower() != self._credential.application_id.lower():
            msg = "AuthenticatedConnection only calls on behalf of its credential's application."
            raise ValueError(msg)
        info = self._info_section(info_xml)

        def _send(session: SessionSnapshot) -> ServiceResponse:
            header = self._build_header(
                method,
                version,
                info,
                record_id=record_id,
                session=session,
                session_elements=self._credential.header_elements(),
            )
            return self._post(self._envelope(header, info, keyset=session.keyset), method)

        return self._sessions.execute_with_session(self._credential.application_id, self._credential, _send)
