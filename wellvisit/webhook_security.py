"""
Webhook Security Module

Signature verification for PayMongo webhooks.

PayMongo sends a `Paymongo-Signature` header of the form
`t=<unix timestamp>,te=<test mode signature>,li=<live mode signature>`.
Each signature is the hex HMAC-SHA256 of `"{t}.{raw_body}"` keyed with the
webhook secret. Only the component for the current mode is filled in.
"""

import hashlib
import hmac
import logging
import time
from typing import Optional

from fastapi import HTTPException, Request

logger = logging.getLogger(__name__)

# Maximum age of webhook in seconds (5 minutes)
MAX_WEBHOOK_AGE_SECONDS = 300

SIGNATURE_HEADER = "Paymongo-Signature"


def constant_time_compare(a: str, b: str) -> bool:
    """
    Compare two strings in constant time to prevent timing attacks.
    Uses hmac.compare_digest which is designed for this purpose.
    """
    if not a or not b:
        return False
    return hmac.compare_digest(a, b)


def compute_hmac_sha256(secret: str, payload: bytes) -> str:
    """Compute HMAC-SHA256 signature of payload"""
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def verify_timestamp(
    timestamp: Optional[str], max_age: int = MAX_WEBHOOK_AGE_SECONDS, now: Optional[float] = None
) -> bool:
    """
    Verify webhook timestamp is within acceptable range.
    Prevents replay attacks by rejecting old webhooks.

    Args:
        timestamp: Unix timestamp as string
        max_age: Maximum age in seconds
        now: Current unix time, defaults to time.time()

    Returns:
        True if timestamp is valid, False otherwise
    """
    if not timestamp:
        return False

    try:
        webhook_time = int(timestamp)
        current_time = int(now if now is not None else time.time())
        age = abs(current_time - webhook_time)

        if age > max_age:
            logger.warning(f"🚫 Webhook timestamp too old: {age}s (max: {max_age}s)")
            return False

        return True
    except (ValueError, TypeError):
        logger.warning(f"🚫 Invalid webhook timestamp format: {timestamp}")
        return False


def parse_signature_header(header: str) -> dict[str, str]:
    """Split `t=..,te=..,li=..` into its parts"""
    parts = {}
    for item in header.split(","):
        key, sep, value = item.strip().partition("=")
        if sep:
            parts[key] = value
    return parts


def sign_paymongo_payload(secret: str, timestamp: str, raw_body: bytes) -> str:
    return compute_hmac_sha256(secret, timestamp.encode("utf-8") + b"." + raw_body)


def verify_paymongo_signature(
    raw_body: bytes, signature_header: Optional[str], secret: str, now: Optional[float] = None
) -> bool:
    """
    Check a PayMongo signature header against the raw request body.

    Returns:
        True when the timestamp is fresh and the live or test signature matches
    """
    if not signature_header:
        logger.error("❌ Missing Paymongo-Signature header")
        return False

    parts = parse_signature_header(signature_header)
    timestamp = parts.get("t")
    if not verify_timestamp(timestamp, now=now):
        logger.error("❌ Webhook timestamp expired or invalid")
        return False

    expected = sign_paymongo_payload(secret, timestamp, raw_body)
    received = parts.get("li") or parts.get("te") or ""

    if constant_time_compare(expected, received):
        logger.info("✅ PayMongo webhook signature verified")
        return True

    logger.warning(f"🚫 PayMongo webhook signature mismatch (body {len(raw_body)} bytes)")
    return False


async def verify_paymongo_webhook(
    request: Request, secret: Optional[str], raise_on_failure: bool = True
) -> tuple[bool, bytes]:
    """
    Verify a PayMongo webhook request.

    Args:
        request: FastAPI request object
        secret: Webhook secret from the PayMongo dashboard
        raise_on_failure: If True, raises HTTPException on failure

    Returns:
        Tuple of (is_valid, raw_body)
    """
    # Get raw body BEFORE any parsing - the signature covers the exact bytes
    raw_body = await request.body()

    if not secret:
        logger.error("❌ PAYMONGO_WEBHOOK_SECRET not configured, rejecting webhook")
        if raise_on_failure:
            raise HTTPException(status_code=503, detail="Webhook verification not configured")
        return False, raw_body

    is_valid = verify_paymongo_signature(raw_body, request.headers.get(SIGNATURE_HEADER), secret)
    if not is_valid and raise_on_failure:
        raise HTTPException(status_code=401, detail="Invalid webhook signature")
    return is_valid, raw_body
