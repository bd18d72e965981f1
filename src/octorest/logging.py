"""Logging configuration with secret redaction."""

import logging
import re
from typing import ClassVar

import httpx


class SecretRedactingFilter(logging.Filter):
    """Filter that redacts credentials from log messages.

    Request URLs and headers end up in debug logs, so tokens and OAuth app
    secrets are masked before a record is emitted.
    """

    SECRET_PATTERNS: ClassVar[list[tuple[re.Pattern[str], str]]] = [
        # GitHub tokens (ghp_, gho_, ghu_, ghs_, ghr_ followed by 20+ alphanumeric chars)
        (re.compile(r"gh[pousr]_[a-zA-Z0-9]{20,}"), "[REDACTED_GH_TOKEN]"),
        # GitHub fine-grained PAT
        (re.compile(r"github_pat_[a-zA-Z0-9_]+"), "[REDACTED_GH_PAT]"),
        (re.compile(r"Bearer\s+[a-zA-Z0-9_\-\.]+"), "Bearer [REDACTED]"),
        (re.compile(r"(Authorization:\s*)[^\s,\]]+", re.IGNORECASE), r"\1[REDACTED]"),
        # OAuth app credentials in query strings
        (re.compile(r"(client_secret=)[^&\s]+"), r"\1[REDACTED]"),
        (re.compile(r"(token[=:]\s*)[^\s,\]]+", re.IGNORECASE), r"\1[REDACTED]"),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        """Filter and redact secrets from log record."""
        record.msg = self._redact(str(record.msg))
        if record.args:
            record.args = tuple(
                self._redact(str(arg)) if isinstance(arg, str | httpx.URL) else arg
                for arg in record.args
            )
        return True

    def _redact(self, text: str) -> str:
        """Redact secrets from text."""
        for pattern, replacement in self.SECRET_PATTERNS:
            text = pattern.sub(replacement, text)
        return text


def setup_logging(
    verbose: bool = False,
    json_format: bool = False,
) -> None:
    """Configure logging for the application.

    Args:
        verbose: Enable debug level logging.
        json_format: Use JSON format for logs (useful for structured logging).
    """
    level = logging.DEBUG if verbose else logging.INFO

    if json_format:
        format_str = '{"time": "%(asctime)s", "level": "%(levelname)s", "name": "%(name)s", "message": "%(message)s"}'
    else:
        format_str = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

    logging.basicConfig(
        level=level,
        format=format_str,
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root_logger = logging.getLogger()
    redaction_filter = SecretRedactingFilter()

    for handler in root_logger.handlers:
        handler.addFilter(redaction_filter)

    # Set library loggers to WARNING to reduce noise
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
