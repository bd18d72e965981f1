"""GitHub HTTP client: request construction and response decoding.

Async HTTP client for the GitHub REST API. Builds requests relative to a
base URL, sends them through a pluggable httpx transport and decodes the
responses into typed values plus per-call ``Response`` metadata.

The client keeps no per-call state, so one instance can serve concurrent
calls. It performs no retries; callers wanting retries wrap calls.
"""

import asyncio
import json
import logging
import os
from collections.abc import AsyncIterator
from functools import lru_cache
from typing import TYPE_CHECKING, Any
from urllib.parse import urlsplit

import httpx
from pydantic import BaseModel, TypeAdapter
from pydantic_core import to_jsonable_python

from octorest import __version__
from octorest.auth import TokenAuth
from octorest.exceptions import EncodeFailure, InvalidURL
from octorest.pagination import next_request
from octorest.response import (
    MAX_ERROR_BODY,
    ErrorResponse,
    Response,
    check_response,
    parse_bool_response,
    redact_url,
)
from octorest.urls import CONTROL_CHARS, QueryOptions, add_options

if TYPE_CHECKING:
    from octorest.config import ClientConfig

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.github.com/"
DEFAULT_UPLOAD_URL = "https://uploads.github.com/"
DEFAULT_USER_AGENT = f"octorest/{__version__}"


def _parse_base(url: str, name: str) -> httpx.URL:
    if not url.endswith("/"):
        raise ValueError(f"{name} must have a trailing slash, but {url!r} does not")
    return httpx.URL(url)


def encode_body(body: Any) -> bytes:
    """Encode a request body as JSON.

    Pydantic models are dumped by alias with every ``None`` field dropped,
    whether set explicitly or left at its default, so an API default applies
    instead of a JSON null. Anything else goes through ``json`` with pydantic's
    encoder as fallback for nested models, datetimes and enums.

    Args:
        body: Value to encode.

    Returns:
        UTF-8 encoded JSON document.

    Raises:
        EncodeFailure: If the value is not JSON serializable.
    """
    try:
        if isinstance(body, BaseModel):
            return body.model_dump_json(by_alias=True, exclude_none=True).encode()
        return json.dumps(body, allow_nan=False, default=to_jsonable_python).encode()
    except (TypeError, ValueError) as e:
        raise EncodeFailure(f"Cannot encode request body: {e}") from e


@lru_cache(maxsize=256)
def _adapter(target: Any) -> TypeAdapter[Any]:
    return TypeAdapter(target)


def _is_writer(into: Any) -> bool:
    return not isinstance(into, type) and callable(getattr(into, "write", None))


class GitHubClient:
    """Async HTTP client for the GitHub REST API.

    Features:
    - Relative path resolution against a configurable base URL
    - JSON request bodies and typed (pydantic) response decoding
    - Structured errors for non-2xx responses
    - Rate limit and pagination metadata on every response
    - Cancellation through asyncio task cancellation or a per-call timeout
    """

    DEFAULT_TIMEOUT = 30.0
    API_VERSION = "2022-11-28"

    def __init__(
        self,
        auth: httpx.Auth | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        base_url: str = DEFAULT_BASE_URL,
        upload_url: str = DEFAULT_UPLOAD_URL,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: httpx.AsyncBaseTransport | None = None,
        api_version: str = API_VERSION,
    ) -> None:
        """Initialize GitHub HTTP client.

        Args:
            auth: httpx auth flow applied to every request, or None for
                unauthenticated access.
            timeout: Transport timeout in seconds.
            base_url: Base URL for API requests. Must end with ``/``.
            upload_url: Base URL for upload requests. Must end with ``/``.
            user_agent: User-Agent header sent with every request.
            transport: httpx transport. None uses the default network transport.
            api_version: Value of the X-GitHub-Api-Version header.

        Raises:
            ValueError: If a base URL lacks the trailing slash.
        """
        self._base_url = _parse_base(base_url, "base_url")
        self._upload_url = _parse_base(upload_url, "upload_url")
        self._user_agent = user_agent
        self._api_version = api_version

        self._client = httpx.AsyncClient(
            auth=auth,
            timeout=timeout,
            transport=transport,
            headers=self._get_headers(),
            follow_redirects=True,
        )

    @classmethod
    def from_config(
        cls,
        config: "ClientConfig",
        auth: httpx.Auth | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "GitHubClient":
        """Create a client from a validated configuration.

        Args:
            config: Client configuration.
            auth: Explicit auth flow. If None and the configured token
                environment variable is set, token auth is used.
            transport: Optional httpx transport.

        Returns:
            Configured GitHubClient.
        """
        if auth is None and os.environ.get(config.token_env):
            auth = TokenAuth(token_env=config.token_env, use_gh_cli=False)

        return cls(
            auth=auth,
            timeout=config.timeout,
            base_url=config.base_url,
            upload_url=config.upload_url,
            user_agent=config.user_agent,
            transport=transport,
            api_version=config.api_version,
        )

    @property
    def base_url(self) -> httpx.URL:
        return self._base_url

    @property
    def upload_url(self) -> httpx.URL:
        return self._upload_url

    @property
    def user_agent(self) -> str:
        return self._user_agent

    def _get_headers(self) -> dict[str, str]:
        """Get headers sent with every request.

        Returns:
            Dictionary of HTTP headers.
        """
        return {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": self._api_version,
            "User-Agent": self._user_agent,
        }

    def _resolve(self, base: httpx.URL, path: str) -> httpx.URL:
        if CONTROL_CHARS.search(path):
            raise InvalidURL(f"Invalid URL {path!r}: control character")
        try:
            urlsplit(path)
            # A leading slash would drop an enterprise prefix like /api/v3/.
            return base.join(path.lstrip("/"))
        except (ValueError, httpx.InvalidURL) as e:
            raise InvalidURL(f"Invalid URL {path!r}: {e}") from e

    def _build(
        self,
        method: str,
        url: httpx.URL,
        content: bytes | None,
        content_type: str | None,
        headers: dict[str, str] | None,
    ) -> httpx.Request:
        request_headers: dict[str, str] = {}
        if content_type:
            request_headers["Content-Type"] = content_type
        if headers:
            request_headers.update(headers)
        return self._client.build_request(method, url, content=content, headers=request_headers)

    def new_request(
        self,
        method: str,
        path: str,
        body: Any = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Request:
        """Create an API request.

        Args:
            method: HTTP method (GET, POST, etc.).
            path: Path relative to the base URL (e.g. ``"repos/o/r"``), or
                an absolute URL such as one taken from a Link header.
            body: Value to JSON-encode as the request body, or None.
            headers: Extra headers, e.g. ``{"If-None-Match": etag}``.

        Returns:
            Request ready to be passed to ``do``.

        Raises:
            InvalidURL: If ``path`` cannot be resolved.
            EncodeFailure: If ``body`` cannot be encoded.
        """
        url = self._resolve(self._base_url, path)
        if body is None:
            return self._build(method, url, None, None, headers)
        return self._build(method, url, encode_body(body), "application/json", headers)

    def new_upload_request(
        self,
        path: str,
        content: bytes,
        media_type: str,
        headers: dict[str, str] | None = None,
    ) -> httpx.Request:
        """Create an upload request against the upload URL.

        Args:
            path: Path relative to the upload URL.
            content: Raw bytes to upload.
            media_type: Content-Type of ``content``.
            headers: Extra headers.

        Returns:
            POST request carrying ``content`` verbatim.
        """
        url = self._resolve(self._upload_url, path)
        return self._build("POST", url, content, media_type, headers)

    async def _read_error_body(self, response: httpx.Response) -> bytes | None:
        """Read at most MAX_ERROR_BODY bytes of an error response body.

        Returns:
            Body bytes, or None if the body could not be read.
        """
        chunks = bytearray()
        try:
            async for chunk in response.aiter_bytes():
                chunks.extend(chunk)
                if len(chunks) >= MAX_ERROR_BODY:
                    break
        except httpx.HTTPError as e:
            logger.debug("Failed to read error body for %s: %s", redact_url(response.url), e)
            return None
        return bytes(chunks[:MAX_ERROR_BODY])

    async def _decode(self, response: httpx.Response, into: Any) -> Any:
        if into is None:
            return None

        if _is_writer(into):
            async for chunk in response.aiter_bytes():
                into.write(chunk)
            return None

        body = await response.aread()
        if not body:
            return None
        return _adapter(into).validate_json(body)

    async def _send(self, request: httpx.Request, into: Any) -> tuple[Any, Response]:
        logger.debug("%s %s", request.method, redact_url(request.url))

        response = await self._client.send(request, stream=True)
        try:
            meta = Response.from_httpx(response)
            if meta.rate is not None and meta.rate.remaining == 0:
                logger.warning(
                    "Rate limit reached. Limit: %d, Reset: %s",
                    meta.rate.limit,
                    meta.rate.reset.isoformat(),
                )

            if not meta.is_success:
                body = await self._read_error_body(response)
                check_response(response, body)

            return await self._decode(response, into), meta
        finally:
            await response.aclose()

    async def do(
        self,
        request: httpx.Request,
        into: Any = None,
        *,
        timeout: float | None = None,
    ) -> tuple[Any, Response]:
        """Send a request and decode the response.

        Args:
            request: Request built with ``new_request``.
            into: What to decode a successful body into: None to discard it,
                a type or type annotation (``User``, ``list[User]``) to
                validate the JSON into, or a binary writer to copy the raw
                bytes to.
            timeout: Deadline for the whole call in seconds, or None.

        Returns:
            Tuple of (decoded value, response metadata). The value is None
            when ``into`` is None or a writer, or when the body is empty.

        Raises:
            ErrorResponse: On a non-2xx response.
            httpx.TransportError: If the server could not be reached.
            TimeoutError: If ``timeout`` elapsed.
            asyncio.CancelledError: If the calling task was cancelled.
            pydantic.ValidationError: If the body does not match ``into``.
        """
        async with asyncio.timeout(timeout):
            return await self._send(request, into)

    async def do_bool(
        self,
        request: httpx.Request,
        *,
        timeout: float | None = None,
    ) -> tuple[bool, Response]:
        """Send a request whose outcome is signalled by status alone.

        Returns:
            (True, metadata) for a 2xx, (False, metadata) for a 404.

        Raises:
            ErrorResponse: For any other non-2xx response.
        """
        try:
            _, meta = await self.do(request, timeout=timeout)
        except ErrorResponse as e:
            return parse_bool_response(e), Response.from_httpx(e.response)
        return True, meta

    async def paginate(
        self,
        request: httpx.Request,
        item_type: Any,
        items_key: str | None = None,
    ) -> AsyncIterator[tuple[list[Any], Response]]:
        """Walk all pages starting at ``request``.

        Args:
            request: Request for the first page.
            item_type: Type of a single item.
            items_key: Key of the item list when the API wraps pages in an
                envelope object (e.g. ``"seats"``), or None for bare lists.

        Yields:
            Tuple of (items list, metadata) for each page.
        """
        current: httpx.Request | None = request
        while current is not None:
            data, meta = await self.do(current, Any)
            if items_key is not None:
                data = data.get(items_key) if isinstance(data, dict) else None
            items = _adapter(list[item_type]).validate_python(data or [])

            yield items, meta
            current = next_request(current, meta)

    async def request(
        self,
        method: str,
        path: str,
        into: Any = None,
        *,
        body: Any = None,
        options: QueryOptions | None = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> tuple[Any, Response]:
        """Build and send a request in one step.

        Args:
            method: HTTP method.
            path: Path relative to the base URL.
            into: Decode target, see ``do``.
            body: JSON body, or None.
            options: Query options to append to ``path``.
            headers: Extra headers.
            timeout: Deadline in seconds.

        Returns:
            Tuple of (decoded value, response metadata).
        """
        request = self.new_request(method, add_options(path, options), body, headers)
        return await self.do(request, into, timeout=timeout)

    async def get(self, path: str, into: Any = None, **kwargs: Any) -> tuple[Any, Response]:
        """Make a GET request."""
        return await self.request("GET", path, into, **kwargs)

    async def post(self, path: str, into: Any = None, **kwargs: Any) -> tuple[Any, Response]:
        """Make a POST request."""
        return await self.request("POST", path, into, **kwargs)

    async def close(self) -> None:
        """Close the HTTP client and cleanup resources."""
        await self._client.aclose()

    async def __aenter__(self) -> "GitHubClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()
