"""Credential checks for the services the assistant depends on.

Verifies that required environment variables are present and that the
OpenAI and Twilio credentials are accepted by their APIs.
"""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field

import httpx

from driveassist.logging_utils import redact_secrets

logger = logging.getLogger(__name__)

REQUIRED_ENV_VARS = [
    "GOOGLE_CLIENT_ID",
    "GOOGLE_CLIENT_SECRET",
    "OPENAI_API_KEY",
    "TWILIO_ACCOUNT_SID",
    "TWILIO_AUTH_TOKEN",
]

OPTIONAL_ENV_VARS = [
    "GOOGLE_REFRESH_TOKEN",
    "GOOGLE_AUDIT_SHEET_ID",
    "TWILIO_WEBHOOK_URL",
]

OPENAI_MODELS_URL = "https://api.openai.com/v1/models"
TWILIO_ACCOUNT_URL = "https://api.twilio.com/2010-04-01/Accounts/{sid}.json"
USER_AGENT = "driveassist-credential-check/1.0"
CHECK_TIMEOUT_SECONDS = 5.0


@dataclass
class CredentialReport:
    """Outcome of a credential check run."""

    success: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def check_env_variables(
    report: CredentialReport, env: Mapping[str, str] | None = None
) -> bool:
    """Record which required and optional variables are set.

    Returns:
        True if every required variable is set
    """
    env = os.environ if env is None else env
    missing_required = 0

    for key in REQUIRED_ENV_VARS:
        if env.get(key):
            report.success.append(f"Found required variable: {key}")
        else:
            report.errors.append(f"Missing required environment variable: {key}")
            missing_required += 1

    for key in OPTIONAL_ENV_VARS:
        if env.get(key):
            report.success.append(f"Found optional variable: {key}")
        else:
            report.warnings.append(f"Missing optional environment variable: {key}")

    return missing_required == 0


def _ping(
    report: CredentialReport,
    service: str,
    url: str,
    timeout: float,
    **request_kwargs,
) -> bool:
    headers = {"User-Agent": USER_AGENT, **request_kwargs.pop("headers", {})}
    try:
        with httpx.Client(timeout=timeout) as client:
            response = client.get(url, headers=headers, **request_kwargs)
    except httpx.TimeoutException:
        report.errors.append(f"{service} API connection timeout")
        return False
    except httpx.HTTPError as e:
        report.errors.append(f"{service} API connection error: {redact_secrets(str(e))}")
        return False

    if response.status_code == 200:
        report.success.append(f"{service} API connection successful")
        return True

    report.errors.append(f"{service} API connection failed: {response.status_code}")
    return False


def check_openai(
    report: CredentialReport,
    api_key: str | None = None,
    timeout: float = CHECK_TIMEOUT_SECONDS,
) -> bool:
    """Check that the OpenAI API key can list models."""
    api_key = api_key or os.environ.get("OPENAI_API_KEY")
    if not api_key:
        report.errors.append("OpenAI API key not found")
        return False
    return _ping(
        report,
        "OpenAI",
        OPENAI_MODELS_URL,
        timeout,
        headers={"Authorization": f"Bearer {api_key}"},
    )


def check_twilio(
    report: CredentialReport,
    account_sid: str | None = None,
    auth_token: str | None = None,
    timeout: float = CHECK_TIMEOUT_SECONDS,
) -> bool:
    """Check that the Twilio account SID and auth token are accepted."""
    account_sid = account_sid or os.environ.get("TWILIO_ACCOUNT_SID")
    auth_token = auth_token or os.environ.get("TWILIO_AUTH_TOKEN")
    if not account_sid or not auth_token:
        report.errors.append("Twilio credentials not found")
        return False
    return _ping(
        report,
        "Twilio",
        TWILIO_ACCOUNT_URL.format(sid=account_sid),
        timeout,
        auth=(account_sid, auth_token),
    )


def run_checks(skip_network: bool = False) -> CredentialReport:
    """Run every check and return the combined report.

    Network checks are only attempted when all required variables are set.
    """
    report = CredentialReport()
    env_ok = check_env_variables(report)
    if env_ok and not skip_network:
        check_openai(report)
        check_twilio(report)
    for message in report.errors:
        logger.error("%s", message)
    return report
