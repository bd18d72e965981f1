"""URL building for GitHub REST API requests.

Renders relative path templates with escaped segments and encodes typed
option models into query strings.
"""

import re
import string
from collections.abc import Sequence
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from urllib.parse import parse_qsl, quote, urlencode

from pydantic import BaseModel, ConfigDict

from octorest.exceptions import InvalidPathSegment

CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def escape_segment(value: Any) -> str:
    """Percent-escape a value for use as a single path segment.

    Args:
        value: Value to escape. Converted with ``str()``.

    Returns:
        Escaped segment. ``/`` is escaped as well.

    Raises:
        InvalidPathSegment: If the value is empty, a dot segment, or holds
            control characters.
    """
    text = str(value)
    if not text:
        raise InvalidPathSegment(value, "empty segment")
    if text in (".", ".."):
        raise InvalidPathSegment(value, "dot segment")
    if CONTROL_CHARS.search(text):
        raise InvalidPathSegment(value, "control character")
    return quote(text, safe="")


def build_path(template: str, *args: Any) -> str:
    """Render a path template with escaped positional arguments.

    Args:
        template: Relative path with ``{}`` placeholders,
            e.g. ``"repos/{}/{}/issues"``.
        *args: One value per placeholder.

    Returns:
        Relative path with each argument escaped as a single segment.

    Raises:
        InvalidPathSegment: On a bad argument or a placeholder count mismatch.
    """
    fields = [name for _, name, _, _ in string.Formatter().parse(template) if name is not None]
    if any(name for name in fields):
        raise InvalidPathSegment(template, "only positional '{}' placeholders are supported")
    if len(fields) != len(args):
        raise InvalidPathSegment(
            template, f"expected {len(fields)} path arguments, got {len(args)}"
        )
    return template.format(*(escape_segment(arg) for arg in args))


def _is_zero(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, bool | int | float):
        return not value
    if isinstance(value, str | bytes | Sequence | set | frozenset | dict):
        return len(value) == 0
    return False


def _format_value(value: Any) -> str:
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")
    return str(value)


class QueryOptions(BaseModel):
    """Base class for typed query option structs.

    Field names (or aliases, when set) are the wire keys. Fields holding a
    zero value are left out of the query string unless declared with
    ``Field(json_schema_extra={"required": True})``.
    """

    model_config = ConfigDict(populate_by_name=True)

    def to_query(self) -> list[tuple[str, str]]:
        """Encode non-zero fields as ordered ``(key, value)`` pairs.

        Returns:
            Query pairs in field declaration order. List values repeat the key.
        """
        pairs: list[tuple[str, str]] = []
        for name, info in type(self).model_fields.items():
            value = getattr(self, name)
            extra = info.json_schema_extra if isinstance(info.json_schema_extra, dict) else {}
            if _is_zero(value) and not extra.get("required"):
                continue
            key = info.alias or name
            if isinstance(value, list | tuple | set | frozenset):
                pairs.extend((key, _format_value(item)) for item in value)
            elif value is None:
                pairs.append((key, ""))
            else:
                pairs.append((key, _format_value(value)))
        return pairs


def add_options(path: str, options: QueryOptions | None) -> str:
    """Append encoded options to a path.

    Keys already present in ``path``'s query string are replaced by the
    option values; other existing keys are kept.

    Args:
        path: Relative path, optionally with a query string.
        options: Options to encode, or None.

    Returns:
        Path with the merged query string. Unchanged if nothing to add.
    """
    if options is None:
        return path

    pairs = options.to_query()
    if not pairs:
        return path

    base, _, existing = path.partition("?")
    overridden = {key for key, _ in pairs}
    kept = [(k, v) for k, v in parse_qsl(existing, keep_blank_values=True) if k not in overridden]
    return f"{base}?{urlencode(kept + pairs)}"
