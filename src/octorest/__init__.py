"""Typed async client core for the GitHub REST API."""

__version__ = "0.1.0"

from octorest.auth import AuthenticationError, ClientSecretAuth, TokenAuth  # noqa: E402
from octorest.config import ClientConfig, load_config  # noqa: E402
from octorest.exceptions import (  # noqa: E402
    EncodeFailure,
    GitHubError,
    InvalidPathSegment,
    InvalidSignature,
    InvalidURL,
    UnsupportedAssigneeType,
    UnsupportedVariant,
)
from octorest.http import GitHubClient  # noqa: E402
from octorest.logging import setup_logging  # noqa: E402
from octorest.models import (  # noqa: E402
    CopilotSeatDetails,
    Organization,
    RateLimits,
    Repository,
    Team,
    User,
    decode_discriminated,
)
from octorest.pagination import (  # noqa: E402
    ListOptions,
    next_request,
    scan,
    scan_and_collect,
    scan_pages,
)
from octorest.response import (  # noqa: E402
    ErrorResponse,
    FieldError,
    NotModified,
    Rate,
    RateLimitExceeded,
    Response,
)
from octorest.rest import RestClient  # noqa: E402
from octorest.urls import QueryOptions, add_options, build_path  # noqa: E402

__all__ = [
    "AuthenticationError",
    "ClientConfig",
    "ClientSecretAuth",
    "CopilotSeatDetails",
    "EncodeFailure",
    "ErrorResponse",
    "FieldError",
    "GitHubClient",
    "GitHubError",
    "InvalidPathSegment",
    "InvalidSignature",
    "InvalidURL",
    "ListOptions",
    "NotModified",
    "Organization",
    "QueryOptions",
    "Rate",
    "RateLimitExceeded",
    "RateLimits",
    "Repository",
    "Response",
    "RestClient",
    "Team",
    "TokenAuth",
    "UnsupportedAssigneeType",
    "UnsupportedVariant",
    "User",
    "__version__",
    "add_options",
    "build_path",
    "decode_discriminated",
    "load_config",
    "next_request",
    "scan",
    "scan_and_collect",
    "scan_pages",
    "setup_logging",
]
