"""GitHub authentication flows for httpx.

Token authentication loads a token from an explicit value, an environment
variable or the GitHub CLI. Client secret authentication sends OAuth app
credentials as query parameters for unauthenticated, higher-limit access.
"""

import logging
import os
import re
import subprocess
from collections.abc import Generator

import httpx

from octorest.exceptions import GitHubError

logger = logging.getLogger(__name__)


class AuthenticationError(GitHubError):
    """Raised when credentials are missing or malformed."""


def _get_gh_cli_token() -> str | None:
    """Try to get token from GitHub CLI.

    Returns:
        Token from `gh auth token` or None if not available.
    """
    try:
        result = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            timeout=5,
            check=False,
        )
    except FileNotFoundError:
        logger.debug("gh CLI not found")
        return None
    except subprocess.TimeoutExpired:
        logger.debug("gh CLI command timed out after 5 seconds")
        return None

    if result.returncode != 0:
        logger.debug("gh CLI returned non-zero exit code (%d)", result.returncode)
        return None

    token = result.stdout.strip()
    if token:
        logger.info("Using GitHub token from gh CLI")
    return token or None


class TokenAuth(httpx.Auth):
    """Bearer token authentication.

    Loads the token from, in order:
    1. Explicit token parameter
    2. The ``token_env`` environment variable (GITHUB_TOKEN by default)
    3. GitHub CLI (`gh auth token`), unless disabled

    Accepted formats are prefixed tokens (ghp_, gho_, ghu_, ghs_, ghr_,
    github_pat_) and classic 40 character hex tokens.
    """

    VALID_PREFIXES = ("ghp_", "gho_", "ghu_", "ghs_", "ghr_", "github_pat_")

    CLASSIC_TOKEN_PATTERN = re.compile(r"^[a-f0-9]{40}$")

    def __init__(
        self,
        token: str | None = None,
        token_env: str = "GITHUB_TOKEN",
        use_gh_cli: bool = True,
    ) -> None:
        """Initialize token authentication.

        Args:
            token: GitHub token. If None, loads from ``token_env`` or the gh CLI.
            token_env: Environment variable holding the token.
            use_gh_cli: Fall back to ``gh auth token`` when nothing else is set.

        Raises:
            AuthenticationError: If token is missing or invalid.
        """
        loaded_token = token or os.environ.get(token_env)
        if loaded_token:
            logger.info(
                "Using GitHub token from %s",
                "explicit parameter" if token else f"{token_env} environment variable",
            )
        elif use_gh_cli:
            loaded_token = _get_gh_cli_token()

        if not loaded_token:
            raise AuthenticationError(
                f"GitHub token not found. Set {token_env}, pass token explicitly, "
                "or authenticate with `gh auth login`."
            )

        self._token = loaded_token
        self._validate_token()

    def _validate_token(self) -> None:
        """Validate token format.

        Raises:
            AuthenticationError: If token format is invalid.
        """
        token = self._token
        has_valid_prefix = token.startswith(self.VALID_PREFIXES)
        is_classic = bool(self.CLASSIC_TOKEN_PATTERN.match(token))

        if not has_valid_prefix and not is_classic:
            raise AuthenticationError(
                f"Invalid token format. Expected prefix {self.VALID_PREFIXES} "
                "or 40-character hex string (classic token)"
            )

        if has_valid_prefix and len(token) < 20:
            raise AuthenticationError("Token appears too short to be valid")

    @property
    def token(self) -> str:
        return self._token

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        request.headers["Authorization"] = f"Bearer {self._token}"
        yield request


class ClientSecretAuth(httpx.Auth):
    """OAuth application credentials sent as query parameters.

    Lets an OAuth app make requests against the higher rate limit granted to
    the app without acting on behalf of a user.
    """

    def __init__(self, client_id: str, client_secret: str) -> None:
        if not client_id:
            raise AuthenticationError("client_id is empty")
        if not client_secret:
            raise AuthenticationError("client_secret is empty")
        self._client_id = client_id
        self._client_secret = client_secret

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        url = request.url.copy_set_param("client_id", self._client_id)
        request.url = url.copy_set_param("client_secret", self._client_secret)
        yield request
