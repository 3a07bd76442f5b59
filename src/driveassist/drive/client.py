"""Google Drive v3 REST client addressing files by slash-separated paths."""

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from driveassist.commands.types import FileEntry
from driveassist.errors import CollaboratorError, CollaboratorTimeout, FileNotFoundInDrive

from .auth import TokenProvider

logger = logging.getLogger(__name__)

DRIVE_API_URL = "https://www.googleapis.com/drive/v3"
FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
FILE_FIELDS = "id, name, mimeType, size, parents"


@dataclass(frozen=True)
class DriveFile:
    """Metadata for one Drive file or folder."""

    id: str
    name: str
    mime_type: str
    size: int | None = None
    parents: tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_folder(self) -> bool:
        return self.mime_type == FOLDER_MIME_TYPE

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "DriveFile":
        size = data.get("size")
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            mime_type=data.get("mimeType", ""),
            size=int(size) if size is not None else None,
            parents=tuple(data.get("parents", [])),
        )

    def to_entry(self) -> FileEntry:
        return FileEntry(name=self.name, size=self.size, is_folder=self.is_folder)


ROOT = DriveFile(id="root", name="", mime_type=FOLDER_MIME_TYPE)


def _escape(value: str) -> str:
    """Escape a literal for a Drive search query."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


def split_path(path: str) -> list[str]:
    return [part for part in path.split("/") if part]


class DriveClient:
    """Minimal Drive client for listing, trashing, moving and downloading files."""

    def __init__(
        self,
        token_provider: TokenProvider,
        timeout: float = 10.0,
        base_url: str = DRIVE_API_URL,
    ) -> None:
        self._token_provider = token_provider
        self.timeout = timeout
        self.base_url = base_url

    def _request(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Send a request to the Drive API.

        Raises:
            CollaboratorError: No token, or the API returned an error
            CollaboratorTimeout: The request timed out
        """
        token = self._token_provider.get_token()
        if not token:
            raise CollaboratorError("Google access token not available for Drive calls")

        url = f"{self.base_url}{endpoint}"
        headers = {"Authorization": f"Bearer {token}", "Accept": "application/json"}
        logger.debug("Drive API request: %s %s", method, endpoint)

        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.request(method, url, params=params, json=json, headers=headers)
        except httpx.TimeoutException as e:
            logger.error("Drive API request timed out: %s %s", method, endpoint)
            raise CollaboratorTimeout(f"Drive API request timed out: {endpoint}") from e
        except httpx.HTTPError as e:
            logger.error("Drive API request failed: %s", type(e).__name__)
            raise CollaboratorError(f"Drive API request failed: {e}") from e

        if response.status_code == 401:
            raise CollaboratorError("Drive API authentication failed. Token may be expired.")
        if response.status_code == 403:
            raise CollaboratorError("Drive API access forbidden or quota exceeded.")
        if response.status_code == 429:
            raise CollaboratorError("Drive API rate limit exceeded.")
        if response.status_code >= 400:
            logger.error(
                "Drive API request failed: HTTP %d - %s",
                response.status_code,
                response.text[:200],
            )
            raise CollaboratorError(f"Drive API request failed with status {response.status_code}")
        return response

    def _children(self, folder_id: str, name: str | None = None) -> list[DriveFile]:
        query = f"'{_escape(folder_id)}' in parents and trashed = false"
        if name is not None:
            query += f" and name = '{_escape(name)}'"

        files: list[DriveFile] = []
        page_token: str | None = None
        while True:
            params: dict[str, Any] = {
                "q": query,
                "fields": f"nextPageToken, files({FILE_FIELDS})",
                "orderBy": "folder,name",
                "pageSize": 100,
            }
            if page_token:
                params["pageToken"] = page_token
            payload = self._request("GET", "/files", params=params).json()
            files.extend(DriveFile.from_api(f) for f in payload.get("files", []))
            page_token = payload.get("nextPageToken")
            if not page_token or name is not None:
                return files

    def list_children(self, folder: DriveFile) -> list[DriveFile]:
        return self._children(folder.id)

    def resolve(self, path: str) -> DriveFile:
        """Walk folder names from the root to the file at ``path``.

        Raises:
            FileNotFoundInDrive: Some segment does not exist
        """
        current = ROOT
        parts = split_path(path)
        for index, part in enumerate(parts):
            if not current.is_folder:
                raise FileNotFoundInDrive(path)
            matches = self._children(current.id, name=part)
            if not matches:
                raise FileNotFoundInDrive(path)
            if len(matches) > 1:
                logger.warning("Multiple entries named %r; using the first", part)
            current = matches[0]
            if index < len(parts) - 1 and not current.is_folder:
                raise FileNotFoundInDrive(path)
        return current

    def list_files(self, path: str) -> list[FileEntry]:
        """List a folder; a file path lists just that file."""
        target = self.resolve(path)
        if not target.is_folder:
            return [target.to_entry()]
        return [child.to_entry() for child in self._children(target.id)]

    def delete_file(self, path: str) -> None:
        """Move the file at ``path`` to the trash."""
        target = self.resolve(path)
        if target.id == ROOT.id:
            raise CollaboratorError("Refusing to delete the root folder")
        self._request("PATCH", f"/files/{target.id}", json={"trashed": True})
        logger.info("Trashed Drive file %s", target.id)

    def move_file(self, source_path: str, destination_path: str) -> None:
        """Move ``source_path`` into a folder, or to a new name.

        An existing destination folder receives the source under its own
        name. Otherwise the destination's parent must be a folder and the last
        segment becomes the new name.
        """
        source = self.resolve(source_path)
        try:
            destination = self.resolve(destination_path)
        except FileNotFoundInDrive:
            destination = None

        body: dict[str, Any] = {}
        if destination is not None:
            if not destination.is_folder:
                raise CollaboratorError(
                    f"Destination exists: {destination_path}",
                    user_message=f"{destination_path} already exists.",
                )
            new_parent = destination
        else:
            parts = split_path(destination_path)
            new_parent = self.resolve("/" + "/".join(parts[:-1]))
            if not new_parent.is_folder:
                raise FileNotFoundInDrive(destination_path)
            if parts[-1] != source.name:
                body["name"] = parts[-1]

        if new_parent.id == source.id:
            raise CollaboratorError(
                "Cannot move a folder into itself",
                user_message=f"Cannot move {source_path} into itself.",
            )

        params = {"addParents": new_parent.id, "fields": "id, parents"}
        if source.parents:
            params["removeParents"] = ",".join(source.parents)
        self._request("PATCH", f"/files/{source.id}", params=params, json=body)
        logger.info("Moved Drive file %s", source.id)

    def download(self, target: DriveFile, export_mime_type: str | None = None) -> bytes:
        """Fetch file content, exporting Google Docs formats when requested."""
        if export_mime_type:
            response = self._request(
                "GET", f"/files/{target.id}/export", params={"mimeType": export_mime_type}
            )
        else:
            response = self._request("GET", f"/files/{target.id}", params={"alt": "media"})
        return response.content
