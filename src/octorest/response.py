"""Response metadata and error decoding for GitHub REST API calls.

Every call returns an immutable ``Response`` carrying the HTTP status,
rate limit counters and pagination cursors of that one response. Non-2xx
responses are turned into ``ErrorResponse`` exceptions.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Optional
from urllib.parse import parse_qs, urlsplit

import httpx
from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError

from octorest.exceptions import GitHubError

logger = logging.getLogger(__name__)

# Error bodies larger than this are truncated before decoding.
MAX_ERROR_BODY = 1 << 20

_LINK_PART = re.compile(r"^\s*<([^>]*)>\s*;(.*)$")
_LINK_REL = re.compile(r'rel="([^"]+)"')
_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")

# Query parameters whose values never leave the client in messages or logs.
_SECRET_PARAMS = ("client_secret",)


class Rate(BaseModel):
    """GitHub API rate limit counters."""

    model_config = ConfigDict(frozen=True)

    limit: int
    remaining: int
    reset: datetime
    used: int = 0
    resource: str = "core"

    @classmethod
    def from_headers(cls, headers: httpx.Headers) -> Optional["Rate"]:
        """Extract rate limit info from response headers.

        Args:
            headers: HTTP response headers.

        Returns:
            Rate if headers present and well formed, None otherwise.
        """
        if "x-ratelimit-limit" not in headers:
            return None

        try:
            reset_timestamp = int(headers.get("x-ratelimit-reset", "0"))
            return cls(
                limit=int(headers.get("x-ratelimit-limit", "0")),
                remaining=int(headers.get("x-ratelimit-remaining", "0")),
                reset=datetime.fromtimestamp(reset_timestamp, tz=UTC),
                used=int(headers.get("x-ratelimit-used", "0")),
                resource=headers.get("x-ratelimit-resource", "core"),
            )
        except (ValueError, OverflowError, OSError):
            logger.debug("Ignoring malformed rate limit headers: %s", dict(headers))
            return None

    def seconds_until_reset(self, now: datetime | None = None) -> float:
        """Seconds left until the limit resets, never negative.

        Args:
            now: Current time. Defaults to the system clock.
        """
        now = now or datetime.now(UTC)
        return max(0.0, (self.reset - now).total_seconds())


class FieldError(BaseModel):
    """A single validation failure reported in an error body."""

    resource: str = ""
    field: str = ""
    code: str = ""
    message: str = ""

    def __str__(self) -> str:
        if self.message and not self.code:
            return self.message
        return f"{self.code} error caused by {self.field} field on {self.resource} resource"


_FIELD_ERRORS = TypeAdapter(list[FieldError])


def _request_of(response: httpx.Response) -> httpx.Request | None:
    try:
        return response.request
    except RuntimeError:
        return None


def redact_url(url: httpx.URL | str) -> str:
    """Render a URL with credential query values replaced by ``REDACTED``.

    Args:
        url: URL as sent, possibly carrying OAuth app credentials.

    Returns:
        The URL as a string, safe to put in messages and logs.
    """
    url = httpx.URL(url)
    for name in _SECRET_PARAMS:
        if name in url.params:
            url = url.copy_set_param(name, "REDACTED")
    return str(url)


class ErrorResponse(GitHubError):
    """A non-2xx response from the GitHub API.

    Attributes:
        response: The HTTP response that caused the error.
        request: The request that was sent, if known.
        status_code: HTTP status code.
        message: Message from the error body; empty if there was none.
        errors: Field-level validation errors, verbatim.
        documentation_url: Link to the API docs for the failing call.
        rate: Rate limit counters from the response headers.
    """

    def __init__(
        self,
        response: httpx.Response,
        message: str = "",
        errors: list[FieldError] | None = None,
        documentation_url: str | None = None,
    ) -> None:
        self.response = response
        self.request = _request_of(response)
        self.status_code = response.status_code
        self.message = message
        self.errors = errors or []
        self.documentation_url = documentation_url
        self.rate = Rate.from_headers(response.headers)
        super().__init__(self._format())

    def _format(self) -> str:
        method = self.request.method if self.request else "?"
        url = redact_url(self.request.url) if self.request else "?"
        text = f"{method} {url}: {self.status_code} {self.message or self.response.reason_phrase}"
        if self.errors:
            text += " [" + "; ".join(str(e) for e in self.errors) + "]"
        return text


class RateLimitExceeded(ErrorResponse):
    """Raised when the primary or secondary rate limit rejects a request."""

    @property
    def reset_at(self) -> datetime | None:
        return self.rate.reset if self.rate else None

    @property
    def retry_after(self) -> int | None:
        value = self.response.headers.get("retry-after")
        return int(value) if value and value.isascii() and value.isdigit() else None


class NotModified(ErrorResponse):
    """Raised for a 304 reply to a conditional request."""


def parse_link_header(link_header: str | None) -> dict[str, str]:
    """Parse a Link header into a mapping of rel type to URL.

    Args:
        link_header: Link header value from response.

    Returns:
        Dict mapping rel type to URL (e.g., {"next": "url", "last": "url"}).
        Entries that are not ``<url>; rel="..."`` are skipped.
    """
    if not link_header:
        return {}

    links: dict[str, str] = {}
    # Link header format: <url>; rel="next", <url>; rel="last"
    for part in link_header.split(","):
        match = _LINK_PART.match(part)
        if not match:
            continue
        url, params = match.groups()
        rel = _LINK_REL.search(params)
        if rel:
            for name in rel.group(1).split():
                links[name] = url
    return links


def _link_query(url: str) -> dict[str, list[str]] | None:
    if _BAD_ESCAPE.search(url):
        return None
    try:
        return parse_qs(urlsplit(url).query)
    except ValueError:
        return None


def _page_of(query: dict[str, list[str]] | None) -> int | None:
    if not query or "page" not in query:
        return None
    value = query["page"][0]
    return int(value) if value.isascii() and value.isdigit() else None


def _cursor_of(query: dict[str, list[str]] | None, key: str) -> str | None:
    if not query or key not in query:
        return None
    return query[key][0] or None


@dataclass(frozen=True)
class Response:
    """Metadata of one GitHub API response.

    Created per call and never shared between calls, so concurrent use of
    a client needs no locking around it. Equality and hashing cover the
    decoded fields; ``headers`` and ``links`` are left out of the hash.
    """

    status_code: int
    headers: httpx.Headers = field(hash=False)
    url: str = ""
    method: str = ""
    rate: Rate | None = None
    first_page: int | None = None
    prev_page: int | None = None
    next_page: int | None = None
    last_page: int | None = None
    before: str | None = None
    after: str | None = None
    links: dict[str, str] = field(default_factory=dict, hash=False)

    @classmethod
    def from_httpx(cls, response: httpx.Response) -> "Response":
        """Build metadata from an httpx response.

        Args:
            response: Raw HTTP response.

        Returns:
            Response with rate limit and pagination fields populated.
        """
        links = parse_link_header(response.headers.get("link"))
        queries = {rel: _link_query(url) for rel, url in links.items()}
        request = _request_of(response)

        return cls(
            status_code=response.status_code,
            headers=response.headers,
            url=redact_url(request.url) if request else "",
            method=request.method if request else "",
            rate=Rate.from_headers(response.headers),
            first_page=_page_of(queries.get("first")),
            prev_page=_page_of(queries.get("prev")),
            next_page=_page_of(queries.get("next")),
            last_page=_page_of(queries.get("last")),
            before=_cursor_of(queries.get("prev"), "before"),
            after=_cursor_of(queries.get("next"), "after"),
            links=links,
        )

    @property
    def is_success(self) -> bool:
        """Check if response was successful (2xx status code)."""
        return 200 <= self.status_code < 300

    @property
    def is_rate_limited(self) -> bool:
        """Check if response indicates rate limiting (429 or 403 with rate limit)."""
        return self.status_code == 429 or (
            self.status_code == 403 and self.rate is not None and self.rate.remaining == 0
        )

    @property
    def next_token(self) -> int | str | None:
        """Cursor for the next page: a page number, an ``after`` cursor, or None."""
        if self.next_page is not None:
            return self.next_page
        return self.after

    @property
    def etag(self) -> str | None:
        return self.headers.get("etag")

    @property
    def last_modified(self) -> str | None:
        return self.headers.get("last-modified")


def _decode_error_body(body: bytes | None) -> tuple[str, list[FieldError], str | None]:
    if not body:
        return "", [], None

    try:
        data = json.loads(body)
    except ValueError:
        logger.debug("Error body is not JSON (%d bytes)", len(body))
        return "", [], None

    if not isinstance(data, dict):
        return "", [], None

    message = data.get("message")
    raw_errors = data.get("errors") or []
    if isinstance(raw_errors, list):
        raw_errors = [{"message": e} if isinstance(e, str) else e for e in raw_errors]
    try:
        errors = _FIELD_ERRORS.validate_python(raw_errors)
    except ValidationError as e:
        logger.debug("Could not decode field errors: %s", e)
        errors = []

    doc_url = data.get("documentation_url")
    return (
        message if isinstance(message, str) else "",
        errors,
        doc_url if isinstance(doc_url, str) else None,
    )


def check_response(response: httpx.Response, body: bytes | None = None) -> None:
    """Raise an ``ErrorResponse`` if the response is not a 2xx.

    Args:
        response: HTTP response to check.
        body: Error body already read from the response, or None if it
            could not be read.

    Raises:
        NotModified: For 304.
        RateLimitExceeded: For 403/429 with an exhausted limit or Retry-After.
        ErrorResponse: For any other non-2xx status.
    """
    status = response.status_code
    if 200 <= status < 300:
        return

    message, errors, doc_url = _decode_error_body(body)

    error_cls: type[ErrorResponse] = ErrorResponse
    if status == 304:
        error_cls = NotModified
    elif status in (403, 429):
        rate = Rate.from_headers(response.headers)
        if "retry-after" in response.headers or (rate is not None and rate.remaining == 0):
            error_cls = RateLimitExceeded

    raise error_cls(response, message=message, errors=errors, documentation_url=doc_url)


def parse_bool_response(error: ErrorResponse | None) -> bool:
    """Translate the outcome of a boolean-style call.

    Args:
        error: Error raised by the call, or None if it succeeded.

    Returns:
        True on success, False for a 404.

    Raises:
        ErrorResponse: Any other error, re-raised unchanged.
    """
    if error is None:
        return True
    if error.status_code == 404:
        return False
    raise error
