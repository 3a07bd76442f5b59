"""Command registry mapping verbs to grammar and handler descriptors.

New commands are added by registering a ``CommandSpec``; neither the parser
nor the router needs to change.
"""

from collections.abc import Callable, Iterator
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .types import ActionResult, Command, CommandType, FileEntry


class Flow(str, Enum):
    """How the router executes a command."""

    DIRECT = "direct"  # call the handler, render its return value
    REQUEST_CONFIRMATION = "request_confirmation"  # record a pending action only
    CONFIRM = "confirm"  # consume a pending action, then call the handler
    HELP = "help"  # static text


Renderer = Callable[[Command, Any], ActionResult]


@dataclass(frozen=True)
class CommandSpec:
    """Grammar and dispatch descriptor for one verb."""

    verb: str
    command_type: CommandType | str
    arg_names: tuple[str, ...] = ()
    handler_name: str | None = None
    flow: Flow = Flow.DIRECT
    distinct_args: bool = False
    allow_root: bool = True  # whether the first argument may be "/"
    description: str = ""
    render: Renderer | None = None

    @property
    def usage(self) -> str:
        return " ".join([self.verb, *(f"<{name}>" for name in self.arg_names)])

    @property
    def verb_words(self) -> int:
        return len(self.verb.split())


def _render_listing(command: Command, entries: list[FileEntry]) -> ActionResult:
    entries = list(entries or [])
    if not entries:
        return ActionResult(success=True, message=f"📁 {command.path} is empty.", items=[])
    noun = "item" if len(entries) == 1 else "items"
    return ActionResult(
        success=True,
        message=f"📁 {command.path} ({len(entries)} {noun})",
        items=entries,
    )


def _render_move(command: Command, _: Any) -> ActionResult:
    return ActionResult(
        success=True,
        message=f"✅ Moved {command.path} to {command.destination_path}.",
    )


def _render_summary(command: Command, summary: str) -> ActionResult:
    return ActionResult(success=True, message=f"📝 Summary of {command.path}:\n{summary.strip()}")


def _render_delete(command: Command, _: Any) -> ActionResult:
    return ActionResult(success=True, message=f"🗑️ Deleted {command.path}.")


def render_default(command: Command, _: Any) -> ActionResult:
    """Fallback renderer for registered commands without their own."""
    words = " ".join([command.verb or "", *command.args]).strip()
    return ActionResult(success=True, message=f"✅ {words} done.")


class CommandRegistry:
    """Ordered verb -> CommandSpec table."""

    def __init__(self, specs: list[CommandSpec] | None = None) -> None:
        self._specs: dict[str, CommandSpec] = {}
        for spec in specs or []:
            self.register(spec)

    def register(self, spec: CommandSpec) -> None:
        """Add a command.

        Raises:
            ValueError: If the verb is already registered or malformed.
        """
        verb = " ".join(spec.verb.split()).upper()
        if not verb:
            raise ValueError("Command verb must not be empty")
        if verb != spec.verb:
            raise ValueError(f"Command verb must be upper case and single spaced: {spec.verb!r}")
        if verb in self._specs:
            raise ValueError(f"Command already registered: {verb}")
        if len(spec.arg_names) > 2:
            raise ValueError(f"Command {verb} takes at most two arguments")
        if spec.flow in (Flow.DIRECT, Flow.CONFIRM) and not spec.handler_name:
            raise ValueError(f"Command {verb} needs a handler_name")
        self._specs[verb] = spec

    def get(self, verb: str | None) -> CommandSpec | None:
        if not verb:
            return None
        return self._specs.get(verb.upper())

    def for_type(self, command_type: CommandType | str) -> CommandSpec | None:
        """Return the spec registered for a command variant, if any."""
        for spec in self._specs.values():
            if spec.command_type == command_type:
                return spec
        return None

    def match(self, words: list[str]) -> tuple[CommandSpec | None, int]:
        """Find the longest registered verb at the start of ``words``.

        Returns:
            (spec, number of words consumed), or (None, 0) if nothing matches
        """
        upper = [w.upper() for w in words]
        for size in sorted({s.verb_words for s in self._specs.values()}, reverse=True):
            if size > len(upper):
                continue
            spec = self._specs.get(" ".join(upper[:size]))
            if spec is not None:
                return spec, size
        return None, 0

    def starts_multiword(self, word: str) -> CommandSpec | None:
        """Return a multi-word command whose first word is ``word``, if any."""
        word = word.upper()
        for spec in self._specs.values():
            parts = spec.verb.split()
            if len(parts) > 1 and parts[0] == word:
                return spec
        return None

    def help_text(self) -> str:
        lines = ["Available commands:"]
        for spec in self._specs.values():
            line = f"• {spec.usage}"
            if spec.description:
                line += f" - {spec.description}"
            lines.append(line)
        lines.append("Paths start with /, e.g. LIST /Reports")
        return "\n".join(lines)

    def __iter__(self) -> Iterator[CommandSpec]:
        return iter(self._specs.values())

    def __len__(self) -> int:
        return len(self._specs)

    def __contains__(self, verb: str) -> bool:
        return verb.upper() in self._specs


def default_registry() -> CommandRegistry:
    """Registry with the built-in file commands."""
    return CommandRegistry(
        [
            CommandSpec(
                verb="LIST",
                command_type=CommandType.LIST,
                arg_names=("path",),
                handler_name="list_files",
                description="list files in a folder",
                render=_render_listing,
            ),
            CommandSpec(
                verb="SUMMARY",
                command_type=CommandType.SUMMARY,
                arg_names=("path",),
                handler_name="summarize_files",
                description="summarize a file or the files in a folder",
                render=_render_summary,
            ),
            CommandSpec(
                verb="DELETE",
                command_type=CommandType.DELETE,
                arg_names=("path",),
                flow=Flow.REQUEST_CONFIRMATION,
                allow_root=False,
                description="delete a file (asks for confirmation)",
            ),
            CommandSpec(
                verb="CONFIRM DELETE",
                command_type=CommandType.CONFIRM_DELETE,
                arg_names=("path",),
                handler_name="delete_file",
                flow=Flow.CONFIRM,
                allow_root=False,
                description="confirm a pending delete",
                render=_render_delete,
            ),
            CommandSpec(
                verb="MOVE",
                command_type=CommandType.MOVE,
                arg_names=("path", "destination"),
                handler_name="move_file",
                distinct_args=True,
                allow_root=False,
                description="move a file or folder",
                render=_render_move,
            ),
            CommandSpec(
                verb="HELP",
                command_type=CommandType.HELP,
                flow=Flow.HELP,
                description="show this message",
            ),
        ]
    )
