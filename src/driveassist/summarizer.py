"""File summarization through the OpenAI chat completions API.

Only text-like files and Google Docs formats that export to text are
summarized. Files over the size ceiling are rejected before any download or
API call.
"""

import logging
import os
from typing import Any

import openai

from driveassist.config import DEFAULT_SUMMARY_MAX_BYTES
from driveassist.drive.client import DriveClient, DriveFile
from driveassist.errors import (
    CollaboratorError,
    CollaboratorTimeout,
    ConfigurationError,
    SummaryTooLargeError,
    UnsupportedFileTypeError,
)

logger = logging.getLogger(__name__)

# Google Workspace types and the text format they export to
GOOGLE_EXPORTS = {
    "application/vnd.google-apps.document": "text/plain",
    "application/vnd.google-apps.spreadsheet": "text/csv",
    "application/vnd.google-apps.presentation": "text/plain",
}

TEXT_MIME_TYPES = {
    "application/json",
    "application/xml",
    "application/x-yaml",
    "application/yaml",
}

# Keeps the prompt within the model's context window
MAX_PROMPT_CHARS = 48_000

SYSTEM_PROMPT = (
    "You summarize documents for a chat user. Reply in plain text, at most "
    "five short bullet points per document, no preamble."
)


def is_supported(mime_type: str) -> bool:
    return mime_type.startswith("text/") or mime_type in TEXT_MIME_TYPES or (
        mime_type in GOOGLE_EXPORTS
    )


class Summarizer:
    """Summarize a Drive file, or the supported files in a folder."""

    def __init__(
        self,
        drive: DriveClient,
        client: Any | None = None,
        model: str = "gpt-4o-mini",
        max_bytes: int = DEFAULT_SUMMARY_MAX_BYTES,
        max_files: int = 5,
        timeout: float = 20.0,
    ) -> None:
        """Initialize the summarizer.

        Args:
            drive: Drive client used to resolve and download files
            client: OpenAI client (default: built from OPENAI_API_KEY)
            model: Chat model name
            max_bytes: Size ceiling per file
            max_files: Maximum number of files summarized from one folder
            timeout: Request timeout in seconds

        Raises:
            ConfigurationError: If no client is given and OPENAI_API_KEY is unset
        """
        if client is None:
            api_key = os.environ.get("OPENAI_API_KEY")
            if not api_key:
                raise ConfigurationError("OPENAI_API_KEY is required for summaries")
            client = openai.OpenAI(api_key=api_key, timeout=timeout)

        self.drive = drive
        self.client = client
        self.model = model
        self.max_bytes = max_bytes
        self.max_files = max_files
        self.timeout = timeout

    def summarize(self, path: str) -> str:
        """Summarize the file or folder at ``path``.

        Raises:
            SummaryTooLargeError: A file is over the size ceiling
            UnsupportedFileTypeError: A single file cannot be read as text
            CollaboratorError: Nothing to summarize, or an API failure
        """
        target = self.drive.resolve(path)
        if target.is_folder:
            candidates = [
                f for f in self.drive.list_children(target)
                if not f.is_folder and is_supported(f.mime_type)
            ]
            if not candidates:
                raise CollaboratorError(
                    f"No summarizable files in {path}",
                    user_message=f"No text documents to summarize in {path}.",
                )
            skipped = len(candidates) - self.max_files
            documents = [
                (f.name, self._read_text(f"{path.rstrip('/')}/{f.name}", f))
                for f in candidates[: self.max_files]
            ]
        else:
            skipped = 0
            documents = [(target.name, self._read_text(path, target))]

        summary = self._complete(documents)
        if skipped > 0:
            summary += f"\n({skipped} more files not summarized)"
        return summary

    def _read_text(self, path: str, drive_file: DriveFile) -> str:
        if not is_supported(drive_file.mime_type):
            raise UnsupportedFileTypeError(path, drive_file.mime_type)
        if drive_file.size is not None and drive_file.size > self.max_bytes:
            raise SummaryTooLargeError(path, drive_file.size, self.max_bytes)

        content = self.drive.download(drive_file, GOOGLE_EXPORTS.get(drive_file.mime_type))
        if len(content) > self.max_bytes:
            raise SummaryTooLargeError(path, len(content), self.max_bytes)
        return content.decode("utf-8", errors="replace")

    def _complete(self, documents: list[tuple[str, str]]) -> str:
        budget = MAX_PROMPT_CHARS // len(documents)
        body = "\n\n".join(f"### {name}\n{text[:budget]}" for name, text in documents)

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": body},
                ],
                max_tokens=500,
                timeout=self.timeout,
            )
        except openai.APITimeoutError as e:
            raise CollaboratorTimeout("OpenAI summary request timed out") from e
        except openai.OpenAIError as e:
            logger.error("OpenAI summary request failed: %s", type(e).__name__)
            raise CollaboratorError(f"OpenAI summary request failed: {e}") from e

        content = response.choices[0].message.content or ""
        if not content.strip():
            raise CollaboratorError("OpenAI returned an empty summary")
        return content.strip()
