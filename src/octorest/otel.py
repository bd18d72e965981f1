"""OpenTelemetry instrumentation for GitHub API traffic.

``TracingTransport`` wraps another httpx transport and records one client
span per request, named ``github/<METHOD>``, with the request URL, the
status code and the rate limit headers GitHub sends back. Trace context is
injected into the outgoing headers with the global propagator.

Usage::

    client = GitHubClient(transport=TracingTransport())

Needs the ``otel`` extra (``opentelemetry-api``); spans and metrics go to
the global providers unless others are passed in.
"""

import time

import httpx
from opentelemetry import metrics, propagate, trace
from opentelemetry.trace import SpanKind, Status, StatusCode

from octorest import __version__
from octorest.response import redact_url

INSTRUMENTATION_NAME = "octorest.otel"

# Response header -> span attribute, recorded as integers.
_INT_HEADERS = {
    "x-ratelimit-limit": "github.rate_limit.limit",
    "x-ratelimit-remaining": "github.rate_limit.remaining",
}
# Response header -> span attribute, recorded verbatim.
_STR_HEADERS = {
    "x-ratelimit-reset": "github.rate_limit.reset",
    "x-ratelimit-resource": "github.rate_limit.resource",
    "x-github-request-id": "github.request_id",
}


class TracingTransport(httpx.AsyncBaseTransport):
    """httpx transport that traces and counts GitHub API requests.

    Attributes:
        transport: Transport that actually sends the requests.
        tracer: Tracer spans are started with.
    """

    def __init__(
        self,
        transport: httpx.AsyncBaseTransport | None = None,
        *,
        tracer_provider: trace.TracerProvider | None = None,
        meter_provider: metrics.MeterProvider | None = None,
    ) -> None:
        """Wrap a transport.

        Args:
            transport: Inner transport. None uses httpx's network transport.
            tracer_provider: Provider for the tracer. None uses the global one.
            meter_provider: Provider for the meter. None uses the global one.
        """
        self.transport = transport or httpx.AsyncHTTPTransport()
        self.tracer = trace.get_tracer(INSTRUMENTATION_NAME, __version__, tracer_provider)

        meter = metrics.get_meter(INSTRUMENTATION_NAME, __version__, meter_provider)
        self._requests = meter.create_counter(
            "github.api.requests",
            unit="{request}",
            description="GitHub API responses received",
        )
        self._duration = meter.create_histogram(
            "github.api.duration",
            unit="s",
            description="Time until GitHub API response headers arrived",
        )

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        # Errors from the inner transport are recorded on the span and re-raised.
        with self.tracer.start_as_current_span(
            f"github/{request.method}", kind=SpanKind.CLIENT
        ) as span:
            span.set_attributes(
                {
                    "http.method": request.method,
                    "http.url": redact_url(request.url),
                    "http.host": request.url.host,
                }
            )
            propagate.inject(request.headers)

            start = time.perf_counter()
            response = await self.transport.handle_async_request(request)
            elapsed = time.perf_counter() - start

            span.set_attribute("http.status_code", response.status_code)
            for header, attribute in _INT_HEADERS.items():
                value = response.headers.get(header, "")
                if value.isascii() and value.isdigit():
                    span.set_attribute(attribute, int(value))
            for header, attribute in _STR_HEADERS.items():
                if value := response.headers.get(header):
                    span.set_attribute(attribute, value)

            if response.status_code >= 400:
                span.set_status(Status(StatusCode.ERROR, f"HTTP {response.status_code}"))
            else:
                span.set_status(Status(StatusCode.OK))

        labels = {"http.method": request.method, "http.status_code": response.status_code}
        self._requests.add(1, labels)
        self._duration.record(elapsed, labels)
        return response

    async def aclose(self) -> None:
        await self.transport.aclose()
