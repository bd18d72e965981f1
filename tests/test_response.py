"""Tests for response metadata and error decoding."""

from datetime import UTC, datetime

import httpx
import pytest

from octorest.response import (
    ErrorResponse,
    FieldError,
    NotModified,
    Rate,
    RateLimitExceeded,
    Response,
    check_response,
    parse_bool_response,
    parse_link_header,
    redact_url,
)

REQUEST = httpx.Request("GET", "https://api.github.com/repos/o/r")


def make_response(status_code: int, headers: dict[str, str] | None = None) -> httpx.Response:
    """Create an httpx response bound to a request."""
    return httpx.Response(status_code, headers=headers, request=REQUEST)


class TestRate:
    """Tests for Rate model."""

    def test_from_headers_valid(self) -> None:
        """Test Rate.from_headers with valid headers."""
        headers = httpx.Headers(
            {
                "x-ratelimit-limit": "5000",
                "x-ratelimit-remaining": "4999",
                "x-ratelimit-reset": "1234567890",
                "x-ratelimit-used": "1",
                "x-ratelimit-resource": "search",
            }
        )

        rate = Rate.from_headers(headers)

        assert rate is not None
        assert rate.limit == 5000
        assert rate.remaining == 4999
        assert rate.used == 1
        assert rate.resource == "search"
        assert rate.reset == datetime.fromtimestamp(1234567890, tz=UTC)

    def test_from_headers_missing_headers(self) -> None:
        """Test Rate.from_headers returns None for missing headers."""
        assert Rate.from_headers(httpx.Headers({})) is None

    def test_from_headers_defaults(self) -> None:
        """Test Rate.from_headers handles missing optional fields."""
        rate = Rate.from_headers(httpx.Headers({"x-ratelimit-limit": "60"}))

        assert rate is not None
        assert rate.limit == 60
        assert rate.remaining == 0
        assert rate.used == 0
        assert rate.resource == "core"

    def test_from_headers_malformed(self) -> None:
        """Test malformed counters are ignored rather than raised."""
        headers = httpx.Headers({"x-ratelimit-limit": "lots"})
        assert Rate.from_headers(headers) is None

    def test_from_headers_reset_out_of_range(self) -> None:
        """Test a reset timestamp too large for a datetime is ignored."""
        headers = httpx.Headers(
            {
                "x-ratelimit-limit": "5000",
                "x-ratelimit-remaining": "4999",
                "x-ratelimit-reset": "99999999999999999999",
            }
        )
        assert Rate.from_headers(headers) is None

    def test_seconds_until_reset(self) -> None:
        """Test seconds_until_reset against an injected clock."""
        rate = Rate(limit=60, remaining=0, reset=datetime(2013, 7, 1, 17, 47, 53, tzinfo=UTC))
        now = datetime(2013, 7, 1, 17, 46, 53, tzinfo=UTC)
        assert rate.seconds_until_reset(now) == 60.0

    def test_seconds_until_reset_past(self) -> None:
        """Test a reset time in the past yields zero."""
        rate = Rate(limit=60, remaining=0, reset=datetime(2013, 7, 1, tzinfo=UTC))
        assert rate.seconds_until_reset(datetime(2014, 1, 1, tzinfo=UTC)) == 0.0

    def test_from_json_timestamp(self) -> None:
        """Test the reset field accepts epoch seconds as sent in bodies."""
        rate = Rate.model_validate({"limit": 2, "remaining": 1, "reset": 1372700873})
        assert rate.reset == datetime(2013, 7, 1, 17, 47, 53, tzinfo=UTC)


class TestParseLinkHeader:
    """Tests for parse_link_header."""

    def test_empty(self) -> None:
        """Test empty or missing header."""
        assert parse_link_header(None) == {}
        assert parse_link_header("") == {}

    def test_all_rels(self) -> None:
        """Test all four rel types are extracted."""
        links = parse_link_header(
            '<https://api.github.com/?page=1>; rel="first", '
            '<https://api.github.com/?page=4>; rel="next"'
        )
        assert links == {
            "first": "https://api.github.com/?page=1",
            "next": "https://api.github.com/?page=4",
        }

    def test_skips_malformed_entries(self) -> None:
        """Test entries without brackets or rel are skipped."""
        links = parse_link_header(
            '<https://api.github.com/?page=1>, https://api.github.com/?page=2; rel="prev"'
        )
        assert links == {}


class TestResponseFromHttpx:
    """Tests for Response.from_httpx pagination and rate fields."""

    def test_populate_page_values(self) -> None:
        """Test numbered page cursors."""
        response = Response.from_httpx(
            make_response(
                200,
                {
                    "Link": '<https://api.github.com/?page=1>; rel="first",'
                    ' <https://api.github.com/?page=2>; rel="prev",'
                    ' <https://api.github.com/?page=4>; rel="next",'
                    ' <https://api.github.com/?page=5>; rel="last"'
                },
            )
        )

        assert response.first_page == 1
        assert response.prev_page == 2
        assert response.next_page == 4
        assert response.last_page == 5
        assert response.next_token == 4
        assert response.method == "GET"
        assert response.url == "https://api.github.com/repos/o/r"

    def test_populate_page_values_invalid(self) -> None:
        """Test invalid Link entries leave cursors unset."""
        response = Response.from_httpx(
            make_response(
                200,
                {
                    "Link": "<https://api.github.com/?page=1>,"
                    '<https://api.github.com/?page=abc>; rel="first",'
                    'https://api.github.com/?page=2; rel="prev",'
                    '<https://api.github.com/>; rel="next",'
                    '<https://api.github.com/?page=>; rel="last"'
                },
            )
        )

        assert response.first_page is None
        assert response.prev_page is None
        assert response.next_page is None
        assert response.last_page is None
        assert response.next_token is None

    def test_populate_page_values_bad_escape(self) -> None:
        """Test a URL with a broken percent escape is ignored."""
        response = Response.from_httpx(
            make_response(200, {"Link": '<https://api.github.com/%?page=2>; rel="first"'})
        )
        assert response.first_page is None

    def test_populate_page_values_non_ascii_digits(self) -> None:
        """Test digit characters outside ASCII are not taken as page numbers."""
        response = Response.from_httpx(
            make_response(
                200,
                {
                    "Link": '<https://api.github.com/?page=%C2%B2>; rel="next",'
                    ' <https://api.github.com/?page=%D9%A3>; rel="last"'
                },
            )
        )

        assert response.next_page is None
        assert response.last_page is None
        assert response.next_token is None

    def test_url_redacts_client_secret(self) -> None:
        """Test OAuth app secrets are not kept in the response URL."""
        request = httpx.Request(
            "GET", "https://api.github.com/users/x?client_id=id&client_secret=s3cr3tvalue"
        )
        response = Response.from_httpx(httpx.Response(200, request=request))

        assert "s3cr3tvalue" not in response.url
        assert "client_id=id" in response.url
        assert "client_secret=REDACTED" in response.url

    def test_cursor_values(self) -> None:
        """Test after/before cursors from cursor paginated endpoints."""
        response = Response.from_httpx(
            make_response(
                200,
                {
                    "Link": '<https://api.github.com/orgs/o/audit-log?after=abc>; rel="next",'
                    ' <https://api.github.com/orgs/o/audit-log?before=xyz>; rel="prev"'
                },
            )
        )

        assert response.next_page is None
        assert response.after == "abc"
        assert response.before == "xyz"
        assert response.next_token == "abc"

    def test_rate_and_etag(self) -> None:
        """Test rate limit and conditional request headers are surfaced."""
        response = Response.from_httpx(
            make_response(
                200,
                {
                    "x-ratelimit-limit": "60",
                    "x-ratelimit-remaining": "59",
                    "x-ratelimit-reset": "1372700873",
                    "ETag": '"abc123"',
                    "Last-Modified": "Mon, 01 Jul 2013 17:47:53 GMT",
                },
            )
        )

        assert response.rate is not None
        assert response.rate.limit == 60
        assert response.rate.remaining == 59
        assert response.rate.reset == datetime(2013, 7, 1, 17, 47, 53, tzinfo=UTC)
        assert response.etag == '"abc123"'
        assert response.last_modified == "Mon, 01 Jul 2013 17:47:53 GMT"


class TestResponseProperties:
    """Tests for Response status helpers."""

    @pytest.mark.parametrize(
        ("status", "expected"),
        [(200, True), (201, True), (299, True), (304, False), (404, False), (500, False)],
    )
    def test_is_success(self, status: int, expected: bool) -> None:
        """Test is_success covers exactly the 2xx range."""
        assert Response(status_code=status, headers=httpx.Headers()).is_success is expected

    def test_is_rate_limited_429(self) -> None:
        """Test is_rate_limited returns True for 429 status code."""
        assert Response(status_code=429, headers=httpx.Headers()).is_rate_limited is True

    def test_is_rate_limited_403_with_zero_remaining(self) -> None:
        """Test is_rate_limited returns True for 403 with zero remaining."""
        rate = Rate(limit=5000, remaining=0, reset=datetime.now(UTC), used=5000)
        response = Response(status_code=403, headers=httpx.Headers(), rate=rate)
        assert response.is_rate_limited is True

    def test_is_rate_limited_403_with_remaining(self) -> None:
        """Test is_rate_limited returns False for 403 with remaining requests."""
        rate = Rate(limit=5000, remaining=100, reset=datetime.now(UTC), used=4900)
        response = Response(status_code=403, headers=httpx.Headers(), rate=rate)
        assert response.is_rate_limited is False

    def test_hashable(self) -> None:
        """Test responses with headers, rate and links can be hashed and compared."""
        headers = {
            "x-ratelimit-limit": "60",
            "x-ratelimit-remaining": "59",
            "x-ratelimit-reset": "1372700873",
            "Link": '<https://api.github.com/?page=2>; rel="next"',
        }
        first = Response.from_httpx(make_response(200, headers))
        second = Response.from_httpx(make_response(200, headers))

        assert hash(first) == hash(second)
        assert first == second
        assert len({first, second}) == 1


class TestCheckResponse:
    """Tests for check_response."""

    def test_success_passes(self) -> None:
        """Test 2xx responses do not raise."""
        check_response(make_response(200), b"{}")
        check_response(make_response(204), b"")

    def test_error_with_field_errors(self) -> None:
        """Test message and field errors are decoded verbatim."""
        body = (
            b'{"message":"m", "errors": [{"resource": "r", "field": "f", "code": "c"}],'
            b' "documentation_url": "https://docs.github.com/rest"}'
        )

        with pytest.raises(ErrorResponse) as exc_info:
            check_response(make_response(400), body)

        error = exc_info.value
        assert error.status_code == 400
        assert error.message == "m"
        assert error.errors == [FieldError(resource="r", field="f", code="c")]
        assert error.documentation_url == "https://docs.github.com/rest"
        assert error.request is REQUEST

    def test_error_without_body(self) -> None:
        """Test an empty error body still yields an error with the status."""
        with pytest.raises(ErrorResponse) as exc_info:
            check_response(make_response(400), b"")

        assert exc_info.value.message == ""
        assert exc_info.value.errors == []
        assert "400 Bad Request" in str(exc_info.value)

    def test_error_with_unreadable_body(self) -> None:
        """Test a body that could not be read still yields an error."""
        with pytest.raises(ErrorResponse) as exc_info:
            check_response(make_response(502), None)
        assert exc_info.value.status_code == 502

    def test_error_with_non_json_body(self) -> None:
        """Test a non-JSON body does not prevent the error."""
        with pytest.raises(ErrorResponse) as exc_info:
            check_response(make_response(500), b"<html>oops</html>")
        assert exc_info.value.message == ""
        assert exc_info.value.status_code == 500

    def test_error_with_string_errors(self) -> None:
        """Test plain string entries in errors are kept as messages."""
        body = b'{"message":"Validation Failed","errors":["Only one allowed"]}'

        with pytest.raises(ErrorResponse) as exc_info:
            check_response(make_response(422), body)

        assert exc_info.value.errors == [FieldError(message="Only one allowed")]
        assert "Only one allowed" in str(exc_info.value)

    def test_error_with_malformed_errors(self) -> None:
        """Test undecodable field errors are dropped, the message kept."""
        body = b'{"message":"bad","errors":[{"resource": 5}]}'

        with pytest.raises(ErrorResponse) as exc_info:
            check_response(make_response(422), body)

        assert exc_info.value.message == "bad"
        assert exc_info.value.errors == []

    def test_not_modified(self) -> None:
        """Test 304 maps to NotModified."""
        with pytest.raises(NotModified):
            check_response(make_response(304), b"")

    def test_primary_rate_limit(self) -> None:
        """Test 403 with an exhausted limit maps to RateLimitExceeded."""
        response = make_response(
            403,
            {
                "x-ratelimit-limit": "60",
                "x-ratelimit-remaining": "0",
                "x-ratelimit-reset": "1372700873",
            },
        )

        with pytest.raises(RateLimitExceeded) as exc_info:
            check_response(response, b'{"message":"API rate limit exceeded"}')

        assert exc_info.value.reset_at == datetime(2013, 7, 1, 17, 47, 53, tzinfo=UTC)
        assert exc_info.value.retry_after is None

    def test_secondary_rate_limit(self) -> None:
        """Test 429 with Retry-After maps to RateLimitExceeded."""
        response = make_response(429, {"retry-after": "30"})

        with pytest.raises(RateLimitExceeded) as exc_info:
            check_response(response, b"")

        assert exc_info.value.retry_after == 30

    def test_retry_after_non_ascii_digits(self) -> None:
        """Test a Retry-After of non-ASCII digit characters is ignored."""
        response = httpx.Response(429, headers=[(b"retry-after", "²".encode())], request=REQUEST)

        with pytest.raises(RateLimitExceeded) as exc_info:
            check_response(response, b"")

        assert exc_info.value.retry_after is None

    def test_forbidden_is_plain_error(self) -> None:
        """Test 403 without rate limit signals stays a plain ErrorResponse."""
        with pytest.raises(ErrorResponse) as exc_info:
            check_response(make_response(403), b'{"message":"Forbidden"}')
        assert type(exc_info.value) is ErrorResponse


class TestErrorResponse:
    """Tests for ErrorResponse formatting."""

    def test_str_includes_method_url_status(self) -> None:
        """Test the message names method, URL, status and message."""
        error = ErrorResponse(make_response(400), message="m")
        assert str(error) == "GET https://api.github.com/repos/o/r: 400 m"

    def test_str_includes_field_errors(self) -> None:
        """Test field errors are appended to the message."""
        error = ErrorResponse(
            make_response(422),
            message="Validation Failed",
            errors=[FieldError(resource="Issue", field="title", code="missing_field")],
        )
        assert str(error).endswith(
            "422 Validation Failed [missing_field error caused by title field on Issue resource]"
        )

    def test_str_redacts_client_secret(self) -> None:
        """Test OAuth app secrets sent in the query are masked in the message."""
        request = httpx.Request(
            "GET", "https://api.github.com/users/x?client_id=id&client_secret=s3cr3tvalue"
        )
        error = ErrorResponse(httpx.Response(404, request=request))

        assert "s3cr3tvalue" not in str(error)
        assert str(error) == (
            "GET https://api.github.com/users/x?client_id=id&client_secret=REDACTED: "
            "404 Not Found"
        )

    def test_field_error_str(self) -> None:
        """Test FieldError formatting."""
        error = FieldError(resource="r", field="f", code="c")
        assert str(error) == "c error caused by f field on r resource"


class TestParseBoolResponse:
    """Tests for parse_bool_response."""

    def test_true(self) -> None:
        """Test no error means True."""
        assert parse_bool_response(None) is True

    def test_false(self) -> None:
        """Test a 404 error means False."""
        assert parse_bool_response(ErrorResponse(make_response(404))) is False

    def test_error(self) -> None:
        """Test other errors are re-raised."""
        error = ErrorResponse(make_response(400))
        with pytest.raises(ErrorResponse) as exc_info:
            parse_bool_response(error)
        assert exc_info.value is error
        assert str(exc_info.value) != ""


class TestRedactUrl:
    """Tests for redact_url."""

    def test_masks_client_secret(self) -> None:
        """Test the secret value is replaced and other parameters kept."""
        url = redact_url("https://api.github.com/user?client_id=id&client_secret=abc&page=2")
        assert url == "https://api.github.com/user?client_id=id&client_secret=REDACTED&page=2"

    def test_leaves_plain_url(self) -> None:
        """Test URLs without credentials are returned unchanged."""
        url = httpx.URL("https://api.github.com/repos/o/r?page=2")
        assert redact_url(url) == "https://api.github.com/repos/o/r?page=2"
