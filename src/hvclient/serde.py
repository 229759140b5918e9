"""Shared validation helpers for dict round-trips and service XML payloads."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

from hvclient.errors import MalformedResponseError

if TYPE_CHECKING:
    from xml.etree.ElementTree import Element


def optional_string(value: object, *, field_name: str) -> str | None:
    """Validate an optional string field."""
    if value is None:
        return None
    if not isinstance(value, str):
        msg = f"{field_name} must be a string or None."
        raise TypeError(msg)
    return value


def optional_int(value: object, *, field_name: str) -> int | None:
    """Validate an optional integer field (rejects booleans)."""
    if value is None:
        return None
    if not isinstance(value, int) or isinstance(value, bool):
        msg = f"{field_name} must be an int or None."
        raise TypeError(msg)
    return value


def optional_float(value: object, *, field_name: str) -> float | None:
    """Validate an optional float field (rejects booleans)."""
    if value is None:
        return None
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        msg = f"{field_name} must be a float or None."
        raise TypeError(msg)
    return float(value)


def optional_bool(value: object, *, field_name: str) -> bool | None:
    """Validate an optional boolean field."""
    if value is None:
        return None
    if not isinstance(value, bool):
        msg = f"{field_name} must be a bool or None."
        raise TypeError(msg)
    return value


def parse_bool(value: str, *, field_name: str) -> bool:
    """Parse a textual boolean such as ``"true"``, ``"0"`` or ``"yes"``."""
    normalized = value.strip().lower()
    if normalized in ("1", "true", "yes", "on"):
        return True
    if normalized in ("0", "false", "no", "off"):
        return False
    msg = f"{field_name} must be a boolean string, got {value!r}."
    raise ValueError(msg)


def local_name(tag: str) -> str:
    """Strip an ``{namespace}`` prefix from an ElementTree tag."""
    if tag.startswith("{"):
        return tag.split("}", 1)[1]
    return tag


def find_child(element: Element, name: str) -> Element | None:
    """Return the first direct child whose local name matches, ignoring namespaces."""
    for child in element:
        if local_name(child.tag) == name:
            return child
    return None


def child_text(element: Element, name: str) -> str | None:
    """Return the stripped text of a direct child, or None when it is absent or empty."""
    child = find_child(element, name)
    if child is None or child.text is None:
        return None
    text = child.text.strip()
    return text or None


def require_child_text(element: Element, name: str) -> str:
    """Return the text of a required direct child."""
    text = child_text(element, name)
    if text is None:
        msg = f"Response element <{local_name(element.tag)}> is missing <{name}>."
        raise MalformedResponseError(msg)
    return text


def require_child_int(element: Element, name: str) -> int:
    """Return the integer value of a required direct child."""
    text = require_child_text(element, name)
    try:
        return int(text)
    except ValueError as exc:
        msg = f"Response element <{name}> must be an integer, got {text!r}."
        raise MalformedResponseError(msg) from exc


def optional_child_int(element: Element, name: str) -> int | None:
    """Return the integer value of an optional direct child."""
    if child_text(element, name) is None:
        return None
    return require_child_int(element, name)


def format_timestamp(value: datetime) -> str:
    """Format a timestamp as UTC ISO 8601 with millisecond precision."""
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"
