"""Append audit rows to a Google Sheet."""

import logging
from urllib.parse import quote

import httpx

from driveassist.commands.types import AuditEntry
from driveassist.errors import CollaboratorError, CollaboratorTimeout

from .auth import TokenProvider

logger = logging.getLogger(__name__)

SHEETS_API_URL = "https://sheets.googleapis.com/v4/spreadsheets"


class SheetsAuditLog:
    """Mirror audit entries into a spreadsheet via ``values:append``."""

    def __init__(
        self,
        token_provider: TokenProvider,
        sheet_id: str,
        sheet_range: str = "AuditLog!A:F",
        timeout: float = 10.0,
    ) -> None:
        self._token_provider = token_provider
        self.sheet_id = sheet_id
        self.sheet_range = sheet_range
        self.timeout = timeout

    @property
    def append_url(self) -> str:
        return f"{SHEETS_API_URL}/{self.sheet_id}/values/{quote(self.sheet_range)}:append"

    def append(self, entry: AuditEntry) -> None:
        """Append one row.

        Raises:
            CollaboratorError: Missing token or API failure
        """
        token = self._token_provider.get_token()
        if not token:
            raise CollaboratorError("Google access token not available for Sheets calls")

        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(
                    self.append_url,
                    params={"valueInputOption": "RAW", "insertDataOption": "INSERT_ROWS"},
                    json={"values": [entry.to_row()]},
                    headers={"Authorization": f"Bearer {token}"},
                )
        except httpx.TimeoutException as e:
            raise CollaboratorTimeout("Sheets append timed out") from e
        except httpx.HTTPError as e:
            raise CollaboratorError(f"Sheets append failed: {e}") from e

        if response.status_code >= 400:
            logger.error("Sheets append failed: HTTP %d", response.status_code)
            raise CollaboratorError(f"Sheets append failed with status {response.status_code}")
