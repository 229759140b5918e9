"""Tests for token response parsing."""

import base64
from xml.etree.ElementTree import fromstring

import pytest

from hvclient.auth import AuthenticationToken, AuthenticationTokenStatus, RecordAuthorizationAction
from hvclient.errors import MalformedResponseError


def test_parse_success_token() -> None:
    info = fromstring(
        "<info><token app-id='app-1' app-record-auth-action='NoActionRequired'>ASAAAB==</token></info>",
    )
    token = AuthenticationToken.from_info(info, application_id="fallback")
    assert token.application_id == "app-1"
    assert token.status is AuthenticationTokenStatus.SUCCESS
    assert token.token == "ASAAAB=="
    assert token.record_authorization_action is RecordAuthorizationAction.NO_ACTION_REQUIRED
    assert token.is_authenticated


def test_parse_absence_reason() -> None:
    info = fromstring("<info><token-absence-reason app-id='app-1'>CredentialNotFound</token-absence-reason></info>")
    token = AuthenticationToken.from_info(info, application_id="app-1")
    assert token.status is AuthenticationTokenStatus.CREDENTIAL_NOT_FOUND
    assert token.token is None
    assert not token.is_authenticated


def test_unknown_names_fall_back_to_unknown() -> None:
    info = fromstring("<info><token-absence-reason>BrandNewReason</token-absence-reason></info>")
    token = AuthenticationToken.from_info(info, application_id="app-1")
    assert token.status is AuthenticationTokenStatus.UNKNOWN
    assert token.application_id == "app-1"
    assert RecordAuthorizationAction.parse("SomethingElse") is RecordAuthorizationAction.UNKNOWN


def test_empty_token_is_not_authenticated() -> None:
    token = AuthenticationToken.from_info(fromstring("<info><token app-id='a'/></info>"), application_id="a")
    assert token.status is AuthenticationTokenStatus.SUCCESS
    assert not token.is_authenticated


def test_parse_shared_secret() -> None:
    secret = base64.b64encode(b"server-key").decode()
    info = fromstring(f"<info><token app-id='a'>t</token><shared-secret>{secret}</shared-secret></info>")
    assert AuthenticationToken.from_info(info, application_id="a").shared_secret == b"server-key"


def test_invalid_shared_secret_is_malformed() -> None:
    info = fromstring("<info><token app-id='a'>t</token><shared-secret>***</shared-secret></info>")
    with pytest.raises(MalformedResponseError, match="base64"):
        AuthenticationToken.from_info(info, application_id="a")


def test_missing_token_and_reason_is_malformed() -> None:
    with pytest.raises(MalformedResponseError):
        AuthenticationToken.from_info(fromstring("<info/>"), application_id="a")
