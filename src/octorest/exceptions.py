"""Exception hierarchy shared by the octorest modules.

Errors raised before any network I/O (bad paths, bad bodies) and errors
decoded from payloads live here. Errors built from HTTP responses are in
``octorest.response``; transport failures are plain ``httpx`` exceptions.
"""


class GitHubError(Exception):
    """Base exception for all octorest errors."""


class InvalidPathSegment(GitHubError):
    """Raised when a value cannot be used as a URL path segment."""

    def __init__(self, segment: object, reason: str) -> None:
        self.segment = segment
        self.reason = reason
        super().__init__(f"Invalid path segment {segment!r}: {reason}")


class InvalidURL(GitHubError):
    """Raised when a request URL cannot be parsed or resolved."""


class EncodeFailure(GitHubError):
    """Raised when a request body cannot be encoded as JSON."""


class UnsupportedVariant(GitHubError):
    """Raised when a discriminated JSON object names an unknown variant.

    Deliberately not a ``ValueError`` so pydantic validators let it
    propagate instead of folding it into a ``ValidationError``.
    """

    def __init__(self, discriminator: object, message: str | None = None) -> None:
        self.discriminator = discriminator
        super().__init__(message or f"unsupported variant type {discriminator!r}")


class UnsupportedAssigneeType(UnsupportedVariant):
    """Raised when a seat assignee is not a User, Team or Organization."""

    def __init__(self, discriminator: object, message: str | None = None) -> None:
        super().__init__(discriminator, message or f"unsupported assignee type {discriminator!r}")


class InvalidSignature(GitHubError):
    """Raised when a webhook payload signature does not validate."""
