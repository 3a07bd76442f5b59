"""Parser turning raw message text into typed commands."""

import re
import shlex

from driveassist.errors import ParseError, ValidationError

from .registry import CommandRegistry, CommandSpec, default_registry
from .types import Command, CommandType

HELP_HINT = "Send HELP for the list of commands."

_REPEATED_SLASHES = re.compile(r"/{2,}")


def validate_path(path: str) -> str | None:
    """Check a path argument.

    Args:
        path: Path as typed by the sender

    Returns:
        An error message, or None if the path is acceptable
    """
    if not path:
        return "Path is required."
    if not path.startswith("/"):
        return f"Path must start with /: {path}"
    if path.startswith("//"):
        return f"Path must have a single leading /: {path}"
    if ".." in path:
        return f"Path must not contain '..': {path}"
    return None


def normalize_path(path: str) -> str:
    """Collapse repeated slashes and drop trailing ones.

    "/a//b/" and "/a/b" name the same entry and must confirm each other.
    """
    return _REPEATED_SLASHES.sub("/", path).rstrip("/") or "/"


def _unquote(text: str) -> str:
    if len(text) >= 2 and text[0] == text[-1] and text[0] in ("'", '"'):
        return text[1:-1]
    return text


class CommandParser:
    """Parse message text against a command registry.

    Only the verb is case-insensitive; arguments keep their case. A command
    with a single argument takes the rest of the message as that argument, so
    paths with spaces need no quoting. Commands with two arguments split on
    whitespace and accept shell-style quotes.
    """

    def __init__(self, registry: CommandRegistry | None = None) -> None:
        self.registry = registry or default_registry()

    def parse(self, raw_text: str, sender_id: str) -> Command:
        """Parse a message. Never raises; bad input yields an INVALID command."""
        text = (raw_text or "").strip()
        if not text:
            return self._invalid(raw_text, sender_id, "Empty message.")

        words = text.split()
        spec, consumed = self.registry.match(words)
        if spec is None:
            partial = self.registry.starts_multiword(words[0])
            if partial is not None:
                return self._invalid(
                    raw_text, sender_id, f"Incomplete command. Usage: {partial.usage}"
                )
            return self._invalid(raw_text, sender_id, f"Unknown command '{words[0]}'.")

        remainder = ""
        if len(words) > consumed:
            remainder = text.split(None, consumed)[consumed]

        try:
            args = self._validate_args(spec, self._split_args(spec, remainder))
        except ParseError as e:
            return self._invalid(raw_text, sender_id, str(e), verb=spec.verb)

        return Command(
            command_type=spec.command_type,
            sender_id=sender_id,
            raw_text=raw_text,
            path=args[0] if args else None,
            destination_path=args[1] if len(args) > 1 else None,
            verb=spec.verb,
        )

    def _split_args(self, spec: CommandSpec, remainder: str) -> list[str]:
        """Split the text after the verb into the spec's arguments.

        Raises:
            ParseError: Missing, extra or badly quoted arguments
        """
        expected = len(spec.arg_names)
        if expected == 0:
            return []

        if expected == 1:
            arg = _unquote(remainder.strip())
            if not arg:
                raise ParseError(f"Missing {spec.arg_names[0]}. Usage: {spec.usage}")
            return [arg]

        try:
            args = shlex.split(remainder)
        except ValueError as e:
            raise ParseError(f"Unbalanced quotes. Usage: {spec.usage}") from e

        if len(args) < expected:
            missing = spec.arg_names[len(args)]
            raise ParseError(f"Missing {missing}. Usage: {spec.usage}")
        if len(args) > expected:
            raise ParseError(f"Too many arguments (quote paths with spaces). Usage: {spec.usage}")
        return args

    def _validate_args(self, spec: CommandSpec, args: list[str]) -> list[str]:
        """Validate and normalize path arguments.

        Raises:
            ValidationError: A path is malformed or the combination is not allowed
        """
        normalized = []
        for arg in args:
            error = validate_path(arg)
            if error is not None:
                raise ValidationError(error)
            normalized.append(normalize_path(arg))

        if normalized and not spec.allow_root and normalized[0] == "/":
            raise ValidationError(f"{spec.verb} cannot target the root folder.")

        if spec.distinct_args and len(set(normalized)) != len(normalized):
            raise ValidationError(f"Source and destination must differ: {normalized[0]}")

        return normalized

    def _invalid(
        self, raw_text: str, sender_id: str, error: str, verb: str | None = None
    ) -> Command:
        return Command(
            command_type=CommandType.INVALID,
            sender_id=sender_id,
            raw_text=raw_text or "",
            validation_error=error,
            verb=verb,
        )
