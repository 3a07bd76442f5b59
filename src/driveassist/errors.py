"""Error taxonomy for the drive assistant.

Parse and validation errors never leave the parser: they are turned into an
INVALID command. Confirmation errors carry a remediation hint for the user.
Collaborator errors are caught at the router boundary and reported without
internal detail.
"""


class DriveAssistError(Exception):
    """Base class for all drive assistant errors."""


class ParseError(DriveAssistError):
    """Raised when a message cannot be parsed into a command."""


class ValidationError(ParseError):
    """Raised when a command argument (usually a path) is invalid."""


class ConfirmationError(DriveAssistError):
    """Base class for confirmation flow failures."""

    hint = "Send DELETE <path> again to restart confirmation."

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path

    @property
    def user_message(self) -> str:
        """Message shown to the user, including the remediation hint."""
        return f"{self} {self.hint}"


class NoPendingConfirmation(ConfirmationError):
    """No delete is awaiting confirmation for this sender."""

    hint = "Send DELETE <path> first, then CONFIRM DELETE <path>."


class PathMismatch(ConfirmationError):
    """The confirmed path differs from the pending delete."""

    def __init__(self, message: str, path: str | None = None, expected: str | None = None) -> None:
        super().__init__(message, path)
        self.expected = expected

    @property
    def user_message(self) -> str:
        if self.expected:
            return f"{self} Pending delete is for {self.expected}. {self.hint}"
        return super().user_message


class ConfirmationExpired(ConfirmationError):
    """The pending delete passed its expiry window."""


class CollaboratorError(DriveAssistError):
    """An external collaborator (file store, summarizer, audit log) failed.

    ``user_message`` is only set for failures whose text is safe to show to
    the user (e.g. a file too large to summarize).
    """

    def __init__(self, message: str, user_message: str | None = None) -> None:
        super().__init__(message)
        self.user_message = user_message


class CollaboratorTimeout(CollaboratorError):
    """A collaborator call did not finish within its timeout."""


class FileNotFoundInDrive(CollaboratorError):
    """The requested path does not exist in the file store."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Path not found: {path}", user_message=f"Not found: {path}")
        self.path = path


class SummaryTooLargeError(CollaboratorError):
    """A file exceeds the configured summarization size ceiling."""

    def __init__(self, path: str, size: int, limit: int) -> None:
        super().__init__(
            f"File {path} is {size} bytes, over the {limit} byte limit",
            user_message=(
                f"{path} is too large to summarize "
                f"({size // 1024} KB, limit {limit // 1024} KB)."
            ),
        )
        self.size = size
        self.limit = limit


class UnsupportedFileTypeError(CollaboratorError):
    """A file type cannot be fetched as text for summarization."""

    def __init__(self, path: str, mime_type: str) -> None:
        super().__init__(
            f"Unsupported mime type {mime_type} for {path}",
            user_message=f"Cannot summarize {path}: unsupported file type ({mime_type}).",
        )
        self.mime_type = mime_type


class ConfigurationError(DriveAssistError):
    """Required configuration or credentials are missing."""
