"""Google Drive and Sheets collaborators."""

from .auth import OAuthRefreshTokenProvider, StaticTokenProvider, TokenProvider, get_token_provider
from .client import DriveClient, DriveFile
from .sheets import SheetsAuditLog

__all__ = [
    "DriveClient",
    "DriveFile",
    "OAuthRefreshTokenProvider",
    "SheetsAuditLog",
    "StaticTokenProvider",
    "TokenProvider",
    "get_token_provider",
]
