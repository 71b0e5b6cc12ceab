"""
Command construction.

A Command is an executable name plus an ordered, append-only list of string
arguments. It knows nothing about how it will be run; hand it to a
Dispatcher for that.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any, Callable, Iterable, Iterator, Optional

from shellbuild.build.options import project_options
from shellbuild.errors import InvalidArgument

Printer = Callable[[str], None]


def _walk_files(root: Path, max_depth: Optional[int]) -> Iterator[Path]:
    """Yield files under root. Files directly inside root are at depth 1."""
    root_depth = len(root.parts)
    for dirpath, dirnames, filenames in os.walk(root):
        current = Path(dirpath)
        depth = len(current.parts) - root_depth
        if max_depth is not None and depth + 1 >= max_depth:
            dirnames.clear()
        if max_depth is not None and depth + 1 > max_depth:
            continue
        for name in filenames:
            yield current / name


class Command:
    """Mutable argument list for one executable.

    The dump window (see mark_dump_limit) only affects diagnostic output,
    never the arguments passed to the tool.
    """

    def __init__(self, executable: str):
        if executable is None:
            raise InvalidArgument("executable must not be None")
        self._executable = str(executable)
        self.arguments: list[str] = []
        self.dump_offset = sys.maxsize
        self.dump_limit = sys.maxsize

    @property
    def executable(self) -> str:
        return self._executable

    def __repr__(self) -> str:
        return f"Command({self._executable!r}, {len(self.arguments)} arguments)"

    # -------------------------------------------------------------------------
    # Appending
    # -------------------------------------------------------------------------

    def add(self, argument: Any) -> "Command":
        """Append a single argument, converted to a string."""
        if argument is None:
            raise InvalidArgument(f"{self._executable}: argument must not be None")
        if isinstance(argument, os.PathLike):
            argument = os.fspath(argument)
        self.arguments.append(str(argument))
        return self

    def add_if(self, condition: bool, argument: Any) -> "Command":
        """Append the argument only when condition holds."""
        if condition:
            self.add(argument)
        return self

    def add_all(self, arguments: Iterable[Any]) -> "Command":
        """Append every item, in iteration order."""
        for argument in arguments:
            self.add(argument)
        return self

    def add_all_matching_files(
        self,
        root: Path,
        predicate: Callable[[Path], bool],
        max_depth: Optional[int] = None,
    ) -> "Command":
        """Append the paths of all files under root accepted by predicate.

        Paths are appended in sorted order so the argument list is stable for
        an unchanged tree. max_depth=1 limits the walk to root's direct
        children.
        """
        root = Path(root)
        if not root.exists():
            raise InvalidArgument(f"path `{root}` does not exist")
        matches = sorted(path for path in _walk_files(root, max_depth) if predicate(path))
        return self.add_all(matches)

    def add_options(self, options: Any) -> "Command":
        """Append the tokens projected from an options dataclass."""
        if options is None:
            return self
        return self.add_all(project_options(options))

    # -------------------------------------------------------------------------
    # Diagnostics
    # -------------------------------------------------------------------------

    def mark_dump_limit(self, limit: int) -> "Command":
        """Start the dump window at the current length.

        Arguments appended afterwards are shown up to ``limit`` of them; the
        rest are summarized, except the very last which is always shown.
        """
        self.dump_offset = len(self.arguments)
        self.dump_limit = self.dump_offset + limit
        return self

    def dump_lines(self) -> list[str]:
        """Render the executable and its arguments, honouring the dump window."""
        lines = [self._executable]
        last = len(self.arguments)
        for position, argument in enumerate(self.arguments, start=1):
            indent = "" if position > self.dump_offset or argument.startswith("-") else "  "
            if position >= self.dump_limit and position > self.dump_offset:
                # An empty window shows none of the appended arguments.
                if self.dump_limit > self.dump_offset and position < last:
                    lines.append(f"{indent}{argument}")
                    omitted = last - position - 1
                else:
                    omitted = last - position
                lines.append(f"{indent}... [omitted {omitted} arguments]")
                lines.append(f"{indent}{self.arguments[-1]}")
                break
            lines.append(f"{indent}{argument}")
        return lines

    def dump(self, printer: Printer = print) -> None:
        for line in self.dump_lines():
            printer(line)

    def to_argv(self) -> list[str]:
        """Executable followed by the arguments, ready for subprocess."""
        return [self._executable, *self.arguments]
