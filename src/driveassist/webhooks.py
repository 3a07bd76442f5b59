"""Twilio webhook signature verification."""

import base64
import hashlib
import hmac
import logging
from collections.abc import Mapping

logger = logging.getLogger(__name__)


def compute_twilio_signature(url: str, params: Mapping[str, str], auth_token: str) -> str:
    """Compute the X-Twilio-Signature value for a form POST.

    Twilio signs the full request URL followed by each form parameter name and
    value, sorted by name, with HMAC-SHA1 keyed by the account auth token.
    """
    payload = url + "".join(f"{key}{params[key]}" for key in sorted(params))
    digest = hmac.new(auth_token.encode(), payload.encode(), hashlib.sha1).digest()
    return base64.b64encode(digest).decode()


def verify_twilio_signature(
    url: str,
    params: Mapping[str, str],
    signature_header: str | None,
    auth_token: str,
) -> bool:
    """Verify a Twilio webhook signature.

    Args:
        url: Full URL Twilio posted to (as configured in the Twilio console)
        params: Form parameters of the request
        signature_header: Value of the X-Twilio-Signature header
        auth_token: Twilio auth token

    Returns:
        True if the signature is valid, False otherwise
    """
    if not signature_header:
        logger.warning("Missing X-Twilio-Signature header")
        return False

    expected = compute_twilio_signature(url, params, auth_token)
    if not hmac.compare_digest(expected, signature_header):
        logger.warning("Twilio signature mismatch")
        return False
    return True
