"""WebApplicationCredential: proves an application's identity when minting a session token."""

from __future__ import annotations

import base64
import hashlib
from datetime import datetime, timezone
from typing import TYPE_CHECKING
from xml.etree.ElementTree import Element, SubElement, tostring

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from hvclient.serde import format_timestamp

if TYPE_CHECKING:
    from collections.abc import Callable

    from hvclient.auth._keyset import HmacKeySet


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class WebApplicationCredential:
    """An application certificate's private key plus the identity it signs for.

    The credential signs an ``appserver2`` content block that carries the
    keyset the session will use, so the service can bind the minted token to
    that key material. ``sub_credential`` is a user authentication token sent
    alongside requests made on that user's behalf.
    """

    def __init__(
        self,
        application_id: str,
        private_key: rsa.RSAPrivateKey,
        *,
        thumbprint: str,
        sub_credential: str | None = None,
        digest_method: str = "SHA256",
        signature_method: str = "RSA-SHA256",
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        """Initialize with an application ID, its RSA key and the certificate thumbprint."""
        if not application_id:
            msg = "application_id must be a non-empty string."
            raise ValueError(msg)
        if not thumbprint:
            msg = "thumbprint must be a non-empty string."
            raise ValueError(msg)
        self.application_id = application_id
        self._private_key = private_key
        self.thumbprint = thumbprint.upper()
        self.sub_credential = sub_credential
        self.digest_method = digest_method
        self.signature_method = signature_method
        self._clock = clock

    def __repr__(self) -> str:
        """Show the identity without key material."""
        return f"WebApplicationCredential(application_id={self.application_id!r}, thumbprint={self.thumbprint!r})"

    @classmethod
    def from_pem(
        cls,
        application_id: str,
        private_key_pem: bytes,
        *,
        password: bytes | None = None,
        certificate_pem: bytes | None = None,
        sub_credential: str | None = None,
    ) -> WebApplicationCredential:
        """Load an RSA private key (and optionally its certificate) from PEM.

        The thumbprint is the SHA-1 fingerprint of the certificate. Without a
        certificate it falls back to the SHA-1 of the DER public key.
        """
        key = serialization.load_pem_private_key(private_key_pem, password=password)
        if not isinstance(key, rsa.RSAPrivateKey):
            msg = "Application credentials require an RSA private key."
            raise TypeError(msg)

        if certificate_pem is not None:
            certificate = x509.load_pem_x509_certificate(certificate_pem)
            thumbprint = certificate.fingerprint(hashes.SHA1()).hex()  # noqa: S303
        else:
            public_der = key.public_key().public_bytes(
                serialization.Encoding.DER,
                serialization.PublicFormat.SubjectPublicKeyInfo,
            )
            thumbprint = hashlib.sha1(public_der).hexdigest()  # noqa: S324
        return cls(application_id, key, thumbprint=thumbprint, sub_credential=sub_credential)

    def sign(self, data: bytes) -> bytes:
        """RSA PKCS#1 v1.5 signature over SHA-256 of ``data``."""
        return self._private_key.sign(data, padding.PKCS1v15(), hashes.SHA256())

    def content_xml(self, keyset: HmacKeySet) -> bytes:
        """Serialize the signed ``<content>`` block for ``keyset``."""
        content = Element("content")
        SubElement(content, "app-id").text = self.application_id
        SubElement(content, "hmac").text = keyset.algorithm
        SubElement(content, "signing-time").text = format_timestamp(self._clock())
        secret = SubElement(content, "shared-secret")
        alg = SubElement(secret, "hmac-alg", {"algName": keyset.algorithm})
        alg.text = base64.b64encode(keyset.key_material).decode("ascii")
        return tostring(content, encoding="utf-8", xml_declaration=False)

    def info_xml(self, keyset: HmacKeySet) -> str:
        """Build the ``<auth-info>`` payload of CreateAuthenticatedSessionToken."""
        content = self.content_xml(keyset)
        signature = base64.b64encode(self.sign(content)).decode("ascii")
        sig = Element(
            "sig",
            {
                "digestMethod": self.digest_method,
                "sigMethod": self.signature_method,
                "thumbprint": self.thumbprint,
            },
        )
        sig.text = signature
        app_id = Element("app-id")
        app_id.text = self.application_id
        return (
            "<auth-info>"
            f"{tostring(app_id, encoding='unicode')}"
            "<credential><appserver2>"
            f"{tostring(sig, encoding='unicode')}"
            f"{content.decode('utf-8')}"
            "</appserver2></credential>"
            "</auth-info>"
        )

    def header_elements(self) -> list[Element]:
        """Extra request-header elements contributed by this credential."""
        if not self.sub_credential:
            return []
        element = Element("user-auth-token")
        element.text = self.sub_credential
        return [element]
