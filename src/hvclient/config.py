"""Client configuration: service endpoints, timeouts, retry policy and hashing defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from hvclient.serde import optional_bool, optional_float, optional_int, optional_string, parse_bool

if TYPE_CHECKING:
    from collections.abc import Mapping

DEFAULT_SERVICE_URL = "https://platform.healthvault-ppe.com/platform/wildcat.ashx"
DEFAULT_INLINE_BLOB_HASH_BLOCK_SIZE = 1 << 21
ENV_PREFIX = "HVCLIENT_"


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Bounded retry for transient HTTP failures.

    ``count`` is the number of extra attempts after the first one fails with a
    5xx status, with ``sleep_seconds`` between attempts. Timeouts are retried
    only when ``retry_on_timeout`` is set.
    """

    count: int = 2
    sleep_seconds: float = 1.0
    retry_on_timeout: bool = False

    def __post_init__(self) -> None:
        """Reject negative retry counts and delays."""
        if self.count < 0:
            msg = "RetryPolicy.count must be >= 0."
            raise ValueError(msg)
        if self.sleep_seconds < 0:
            msg = "RetryPolicy.sleep_seconds must be >= 0."
            raise ValueError(msg)


@dataclass(frozen=True, slots=True)
class ClientConfig:
    """Settings shared by the connection, session manager and blob streams."""

    service_url: str = DEFAULT_SERVICE_URL
    rest_url: str | None = None
    application_id: str | None = None
    request_timeout: float = 30.0
    request_time_to_live: int = 1800
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    inline_blob_hash_block_size: int = DEFAULT_INLINE_BLOB_HASH_BLOCK_SIZE
    session_token_max_age: float | None = None
    retry_on_expired_session: bool = True

    def __post_init__(self) -> None:
        """Validate numeric settings."""
        if not self.service_url:
            msg = "ClientConfig.service_url must be a non-empty string."
            raise ValueError(msg)
        if self.request_timeout <= 0:
            msg = "ClientConfig.request_timeout must be > 0."
            raise ValueError(msg)
        if self.request_time_to_live <= 0:
            msg = "ClientConfig.request_time_to_live must be > 0."
            raise ValueError(msg)
        if self.inline_blob_hash_block_size <= 0:
            msg = "ClientConfig.inline_blob_hash_block_size must be > 0."
            raise ValueError(msg)
        if self.session_token_max_age is not None and self.session_token_max_age <= 0:
            msg = "ClientConfig.session_token_max_age must be > 0 or None."
            raise ValueError(msg)

    def to_dict(self) -> dict[str, object]:
        """Serialize ClientConfig to a plain dictionary."""
        return {
            "service_url": self.service_url,
            "rest_url": self.rest_url,
            "application_id": self.application_id,
            "request_timeout": self.request_timeout,
            "request_time_to_live": self.request_time_to_live,
            "retry": {
                "count": self.retry.count,
                "sleep_seconds": self.retry.sleep_seconds,
                "retry_on_timeout": self.retry.retry_on_timeout,
            },
            "inline_blob_hash_block_size": self.inline_blob_hash_block_size,
            "session_token_max_age": self.session_token_max_age,
            "retry_on_expired_session": self.retry_on_expired_session,
        }

    @classmethod
    def from_dict(cls, value: Mapping[str, object]) -> ClientConfig:
        """Deserialize ClientConfig from a plain dictionary; missing keys keep their defaults."""
        defaults = cls()
        retry = _retry_from_dict_value(value.get("retry"))

        request_timeout = optional_float(value.get("request_timeout"), field_name="ClientConfig.request_timeout")
        request_time_to_live = optional_int(
            value.get("request_time_to_live"),
            field_name="ClientConfig.request_time_to_live",
        )
        block_size = optional_int(
            value.get("inline_blob_hash_block_size"),
            field_name="ClientConfig.inline_blob_hash_block_size",
        )
        retry_on_expired_session = optional_bool(
            value.get("retry_on_expired_session"),
            field_name="ClientConfig.retry_on_expired_session",
        )

        return cls(
            service_url=optional_string(value.get("service_url"), field_name="ClientConfig.service_url")
            or defaults.service_url,
            rest_url=optional_string(value.get("rest_url"), field_name="ClientConfig.rest_url"),
            application_id=optional_string(value.get("application_id"), field_name="ClientConfig.application_id"),
            request_timeout=request_timeout if request_timeout is not None else defaults.request_timeout,
            request_time_to_live=request_time_to_live
            if request_time_to_live is not None
            else defaults.request_time_to_live,
            retry=retry,
            inline_blob_hash_block_size=block_size if block_size is not None else defaults.inline_blob_hash_block_size,
            session_token_max_age=optional_float(
                value.get("session_token_max_age"),
                field_name="ClientConfig.session_token_max_age",
            ),
            retry_on_expired_session=retry_on_expired_session
            if retry_on_expired_session is not None
            else defaults.retry_on_expired_session,
        )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, *, prefix: str = ENV_PREFIX) -> ClientConfig:
        """Build a ClientConfig from ``HVCLIENT_*`` environment variables.

        Unset variables keep their defaults. Numeric and boolean values are
        parsed from their string form and validated like ``from_dict``.
        """
        env = os.environ if environ is None else environ

        def _get(name: str) -> str | None:
            raw = env.get(prefix + name)
            if raw is None or not raw.strip():
                return None
            return raw.strip()

        payload: dict[str, object] = {}
        for key in ("service_url", "rest_url", "application_id"):
            text = _get(key.upper())
            if text is not None:
                payload[key] = text
        for key in ("request_timeout", "session_token_max_age"):
            text = _get(key.upper())
            if text is not None:
                payload[key] = _parse_number(text, float, field_name=prefix + key.upper())
        for key in ("request_time_to_live", "inline_blob_hash_block_size"):
            text = _get(key.upper())
            if text is not None:
                payload[key] = _parse_number(text, int, field_name=prefix + key.upper())
        expired_retry = _get("RETRY_ON_EXPIRED_SESSION")
        if expired_retry is not None:
            payload["retry_on_expired_session"] = parse_bool(
                expired_retry,
                field_name=prefix + "RETRY_ON_EXPIRED_SESSION",
            )

        retry: dict[str, object] = {}
        retry_count = _get("RETRY_COUNT")
        if retry_count is not None:
            retry["count"] = _parse_number(retry_count, int, field_name=prefix + "RETRY_COUNT")
        retry_sleep = _get("RETRY_SLEEP_SECONDS")
        if retry_sleep is not None:
            retry["sleep_seconds"] = _parse_number(retry_sleep, float, field_name=prefix + "RETRY_SLEEP_SECONDS")
        retry_timeout = _get("RETRY_ON_TIMEOUT")
        if retry_timeout is not None:
            retry["retry_on_timeout"] = parse_bool(retry_timeout, field_name=prefix + "RETRY_ON_TIMEOUT")
        if retry:
            payload["retry"] = retry

        return cls.from_dict(payload)


def _retry_from_dict_value(value: object) -> RetryPolicy:
    """Deserialize an optional retry policy payload."""
    if value is None:
        return RetryPolicy()
    if not isinstance(value, dict):
        msg = "ClientConfig.retry must be a mapping or None."
        raise TypeError(msg)

    defaults = RetryPolicy()
    count = optional_int(value.get("count"), field_name="RetryPolicy.count")
    sleep_seconds = optional_float(value.get("sleep_seconds"), field_name="RetryPolicy.sleep_seconds")
    retry_on_timeout = optional_bool(value.get("retry_on_timeout"), field_name="RetryPolicy.retry_on_timeout")
    return RetryPolicy(
        count=count if count is not None else defaults.count,
        sleep_seconds=sleep_seconds if sleep_seconds is not None else defaults.sleep_seconds,
        retry_on_timeout=retry_on_timeout if retry_on_timeout is not None else defaults.retry_on_timeout,
    )


def _parse_number(text: str, kind: type[int] | type[float], *, field_name: str) -> int | float:
    """Parse an environment value as int or float."""
    try:
        return kind(text)
    except ValueError as exc:
        msg = f"{field_name} must be a number, got {text!r}."
        raise ValueError(msg) from exc
