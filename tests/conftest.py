"""Shared fixtures for hvclient tests."""

from __future__ import annotations

import threading

import pytest
from cryptography.hazmat.primitives.asymmetric import rsa

from hvclient.auth import (
    AuthenticationToken,
    AuthenticationTokenStatus,
    HmacKeySet,
    RecordAuthorizationAction,
    WebApplicationCredential,
)

APP_ID = "6b4b7e2a-3c1d-4d9e-8f00-0123456789ab"


class CountingMinter:
    """TokenMinter double that issues sequential tokens and counts calls."""

    def __init__(self, *, status: AuthenticationTokenStatus = AuthenticationTokenStatus.SUCCESS) -> None:
        self.status = status
        self.calls = 0
        self.keysets: list[HmacKeySet] = []
        self.fail_with: Exception | None = None
        self._lock = threading.Lock()

    def mint(self, credential: WebApplicationCredential, keyset: HmacKeySet) -> AuthenticationToken:
        with self._lock:
            self.calls += 1
            number = self.calls
            self.keysets.append(keyset.clone())
        if self.fail_with is not None:
            raise self.fail_with
        if self.status is not AuthenticationTokenStatus.SUCCESS:
            return AuthenticationToken(application_id=credential.application_id, status=self.status)
        return AuthenticationToken(
            application_id=credential.application_id,
            status=AuthenticationTokenStatus.SUCCESS,
            token=f"token-{number}",
            record_authorization_action=RecordAuthorizationAction.NO_ACTION_REQUIRED,
        )


@pytest.fixture(scope="session")
def rsa_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def credential(rsa_key: rsa.RSAPrivateKey) -> WebApplicationCredential:
    return WebApplicationCredential(APP_ID, rsa_key, thumbprint="ab12cd34")


@pytest.fixture
def minter() -> CountingMinter:
    return CountingMinter()


@pytest.fixture
def minter_factory() -> type[CountingMinter]:
    return CountingMinter
