"""Response formatter producing the outbound message text."""

from driveassist.config import DEFAULT_MAX_MESSAGE_LENGTH

from .types import ActionResult, FileEntry

ERROR_MARKER = "❌"
ELLIPSIS = "…"


def format_size(size: int | None) -> str:
    """Human readable byte count (e.g. "1.5 MB")."""
    if size is None:
        return ""
    value = float(size)
    for unit in ("B", "KB", "MB", "GB"):
        if value < 1024 or unit == "GB":
            return f"{int(value)} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} TB"  # pragma: no cover


def format_entry(entry: FileEntry) -> str:
    if entry.is_folder:
        return f"📁 {entry.name}/"
    size = format_size(entry.size)
    return f"📄 {entry.name} ({size})" if size else f"📄 {entry.name}"


def _omitted(count: int) -> str:
    noun = "item" if count == 1 else "items"
    return f"{ELLIPSIS} ({count} more {noun})"


class ResponseFormatter:
    """Turn ActionResults into message text within the channel's length limit."""

    def __init__(self, max_length: int = DEFAULT_MAX_MESSAGE_LENGTH) -> None:
        self.max_length = max_length

    def format(self, result: ActionResult) -> str:
        if not result.success:
            return self._clip(f"{ERROR_MARKER} {result.message}")
        if result.items:
            return self._format_listing(result.message, [format_entry(e) for e in result.items])
        return self._clip(result.message)

    def _clip(self, text: str) -> str:
        if len(text) <= self.max_length:
            return text
        return text[: self.max_length - len(ELLIPSIS)].rstrip() + ELLIPSIS

    def _format_listing(self, header: str, lines: list[str]) -> str:
        full = "\n".join([header, *lines])
        if len(full) <= self.max_length:
            return full

        # Keep the most lines that still leave room for the omitted-count footer
        length = len(header)
        kept = 0
        for line in lines:
            footer = _omitted(len(lines) - kept - 1)
            if length + 1 + len(line) + 1 + len(footer) > self.max_length:
                break
            length += 1 + len(line)
            kept += 1

        text = "\n".join([header, *lines[:kept], _omitted(len(lines) - kept)])
        return self._clip(text)
