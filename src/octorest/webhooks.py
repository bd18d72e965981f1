"""Validation of GitHub webhook deliveries.

GitHub signs each delivery with an HMAC of the raw request body, keyed by
the webhook secret, and sends it in ``X-Hub-Signature-256`` (or the legacy
``X-Hub-Signature``) as ``<algorithm>=<hexdigest>``.
"""

import hashlib
import hmac
import logging
from collections.abc import Callable, Mapping
from typing import Any
from urllib.parse import parse_qs

import httpx

from octorest.exceptions import InvalidSignature

logger = logging.getLogger(__name__)

SHA1_SIGNATURE_HEADER = "X-Hub-Signature"
SHA256_SIGNATURE_HEADER = "X-Hub-Signature-256"
EVENT_TYPE_HEADER = "X-GitHub-Event"
DELIVERY_ID_HEADER = "X-GitHub-Delivery"

# Name of the form field holding the JSON payload for form-encoded deliveries.
PAYLOAD_FORM_PARAM = "payload"

_HASHES: dict[str, Callable[..., Any]] = {
    "sha1": hashlib.sha1,
    "sha256": hashlib.sha256,
    "sha512": hashlib.sha512,
}


def _message_mac(signature: str) -> tuple[bytes, Callable[..., Any]]:
    if not signature:
        raise InvalidSignature("missing signature")

    prefix, sep, digest = signature.partition("=")
    if not sep:
        raise InvalidSignature(f"error parsing signature {signature!r}")

    hash_func = _HASHES.get(prefix)
    if hash_func is None:
        raise InvalidSignature(f"unknown hash type prefix: {prefix!r}")

    try:
        return bytes.fromhex(digest), hash_func
    except ValueError as e:
        raise InvalidSignature(f"error decoding signature {signature!r}: {e}") from e


def validate_signature(signature: str, payload: bytes, secret: bytes) -> None:
    """Check a delivery signature against the raw payload.

    Args:
        signature: Header value such as ``"sha256=<hex>"``.
        payload: Raw request body.
        secret: Webhook secret.

    Raises:
        InvalidSignature: If the signature is malformed or does not match.
    """
    mac, hash_func = _message_mac(signature)
    expected = hmac.new(secret, payload, hash_func).digest()
    if not hmac.compare_digest(mac, expected):
        raise InvalidSignature("payload signature check failed")


def validate_payload(
    body: bytes,
    content_type: str,
    signature: str,
    secret: bytes,
) -> bytes:
    """Validate a webhook delivery body and return its JSON payload.

    The signature is checked when a secret is configured or a signature is
    present. Webhooks without a secret are not secure and should be avoided.

    Args:
        body: Raw request body.
        content_type: ``application/json`` or ``application/x-www-form-urlencoded``,
            parameters such as ``charset`` are ignored.
        signature: Signature header value, may be empty.
        secret: Webhook secret, may be empty.

    Returns:
        The JSON payload bytes.

    Raises:
        InvalidSignature: On an unsupported content type or a bad signature.
    """
    media_type = content_type.split(";", 1)[0].strip().lower()

    if media_type == "application/json":
        payload = body
    elif media_type == "application/x-www-form-urlencoded":
        form = parse_qs(body.decode("utf-8"), keep_blank_values=True)
        payload = form.get(PAYLOAD_FORM_PARAM, [""])[0].encode()
    else:
        raise InvalidSignature(f"webhook request has unsupported Content-Type {content_type!r}")

    if secret or signature:
        validate_signature(signature, body, secret)
    else:
        logger.warning("Accepting webhook delivery without a secret")

    return payload


def validate_request(request: httpx.Request, secret: bytes) -> bytes:
    """Validate a webhook delivery received as an httpx request.

    Prefers the SHA-256 signature header over the SHA-1 one.
    """
    signature = request.headers.get(SHA256_SIGNATURE_HEADER) or request.headers.get(
        SHA1_SIGNATURE_HEADER, ""
    )
    return validate_payload(
        request.content,
        request.headers.get("content-type", ""),
        signature,
        secret,
    )


def webhook_type(headers: Mapping[str, str]) -> str:
    """Event type of a delivery, e.g. ``"push"``."""
    return httpx.Headers(headers).get(EVENT_TYPE_HEADER, "")


def delivery_id(headers: Mapping[str, str]) -> str:
    """Unique ID of a delivery."""
    return httpx.Headers(headers).get(DELIVERY_ID_HEADER, "")
