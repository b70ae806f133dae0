"""LeadHub — Meta Webhook Verification & Parsing."""

import hashlib
import hmac
from typing import Any, Dict, Iterator, Optional

from leadhub.core.logging import get_logger

logger = get_logger("sync.webhook")

SIGNATURE_HEADER = "X-Hub-Signature-256"
SIGNATURE_PREFIX = "sha256="
WEBHOOK_OBJECTS = ("page", "ad_account")


def verify_signature(
    raw_body: bytes, signature_header: Optional[str], app_secret: Optional[str]
) -> bool:
    """Check `X-Hub-Signature-256: sha256=<hex>` against the raw request body.

    A missing header or an unconfigured app secret never verifies.
    """
    if not app_secret:
        logger.error("META_APP_SECRET not configured, rejecting webhook")
        return False

    if not signature_header or not signature_header.startswith(SIGNATURE_PREFIX):
        logger.warning("Missing or malformed webhook signature header")
        return False

    expected = hmac.new(app_secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()
    provided = signature_header[len(SIGNATURE_PREFIX):]

    # Constant-time comparison
    return hmac.compare_digest(expected, provided)


def verify_subscription(
    mode: Optional[str],
    verify_token: Optional[str],
    challenge: Optional[str],
    expected_token: Optional[str],
) -> Optional[str]:
    """Return the challenge to echo when the handshake matches, else None."""
    if mode == "subscribe" and expected_token and verify_token == expected_token:
        logger.info("Webhook verified successfully")
        return challenge or ""
    logger.warning("Webhook verification failed")
    return None


def iter_leadgen_events(payload: Dict[str, Any]) -> Iterator[Dict[str, Any]]:
    """Yield the `value` of every leadgen change in a webhook payload."""
    if not isinstance(payload, dict) or payload.get("object") not in WEBHOOK_OBJECTS:
        return
    for entry in payload.get("entry") or []:
        for change in entry.get("changes") or []:
            if change.get("field") == "leadgen" and isinstance(change.get("value"), dict):
                yield change["value"]
