"""Tests for ClientConfig and RetryPolicy."""

import pytest

from hvclient.config import DEFAULT_INLINE_BLOB_HASH_BLOCK_SIZE, ClientConfig, RetryPolicy


def test_defaults() -> None:
    config = ClientConfig()
    assert config.request_timeout == 30.0
    assert config.request_time_to_live == 1800
    assert config.retry == RetryPolicy(count=2, sleep_seconds=1.0, retry_on_timeout=False)
    assert config.inline_blob_hash_block_size == DEFAULT_INLINE_BLOB_HASH_BLOCK_SIZE == 2 * 1024 * 1024
    assert config.session_token_max_age is None
    assert config.retry_on_expired_session is True


@pytest.mark.parametrize(
    "kwargs",
    [
        {"request_timeout": 0},
        {"request_time_to_live": -1},
        {"inline_blob_hash_block_size": 0},
        {"session_token_max_age": 0},
        {"service_url": ""},
    ],
)
def test_invalid_values_rejected(kwargs: dict[str, object]) -> None:
    with pytest.raises(ValueError, match="ClientConfig"):
        ClientConfig(**kwargs)  # type: ignore[arg-type]


def test_retry_policy_rejects_negative_values() -> None:
    with pytest.raises(ValueError, match="count"):
        RetryPolicy(count=-1)
    with pytest.raises(ValueError, match="sleep_seconds"):
        RetryPolicy(sleep_seconds=-0.5)


def test_dict_round_trip() -> None:
    config = ClientConfig(
        service_url="https://svc.example.test/wildcat.ashx",
        rest_url="https://rest.example.test",
        application_id="app-1",
        request_timeout=12.5,
        retry=RetryPolicy(count=4, sleep_seconds=0.25, retry_on_timeout=True),
        inline_blob_hash_block_size=4096,
        session_token_max_age=600.0,
        retry_on_expired_session=False,
    )
    assert ClientConfig.from_dict(config.to_dict()) == config


def test_from_dict_keeps_defaults_for_missing_keys() -> None:
    assert ClientConfig.from_dict({}) == ClientConfig()


def test_from_dict_rejects_wrong_types() -> None:
    with pytest.raises(TypeError, match="request_timeout"):
        ClientConfig.from_dict({"request_timeout": "fast"})
    with pytest.raises(TypeError, match="retry"):
        ClientConfig.from_dict({"retry": 3})


def test_from_env_reads_prefixed_variables() -> None:
    environ = {
        "HVCLIENT_SERVICE_URL": "https://svc.example.test/wildcat.ashx",
        "HVCLIENT_APPLICATION_ID": "app-2",
        "HVCLIENT_REQUEST_TIMEOUT": "45",
        "HVCLIENT_RETRY_COUNT": "5",
        "HVCLIENT_RETRY_SLEEP_SECONDS": "0.5",
        "HVCLIENT_RETRY_ON_TIMEOUT": "yes",
        "HVCLIENT_INLINE_BLOB_HASH_BLOCK_SIZE": "1024",
        "HVCLIENT_RETRY_ON_EXPIRED_SESSION": "false",
        "UNRELATED": "ignored",
    }
    config = ClientConfig.from_env(environ)
    assert config.service_url == "https://svc.example.test/wildcat.ashx"
    assert config.application_id == "app-2"
    assert config.request_timeout == 45.0
    assert config.retry == RetryPolicy(count=5, sleep_seconds=0.5, retry_on_timeout=True)
    assert config.inline_blob_hash_block_size == 1024
    assert config.retry_on_expired_session is False


def test_from_env_uses_os_environ(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HVCLIENT_REQUEST_TIME_TO_LIVE", "60")
    assert ClientConfig.from_env().request_time_to_live == 60


def test_from_env_rejects_non_numeric_values() -> None:
    with pytest.raises(ValueError, match="HVCLIENT_RETRY_COUNT"):
        ClientConfig.from_env({"HVCLIENT_RETRY_COUNT": "many"})


def test_to_dict_lists_every_setting() -> None:
    assert set(ClientConfig().to_dict()) == {
        "service_url",
        "rest_url",
        "application_id",
        "request_timeout",
        "request_time_to_live",
        "retry",
        "inline_blob_hash_block_size",
        "session_token_max_age",
        "retry_on_expired_session",
    }
