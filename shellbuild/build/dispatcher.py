"""
Command execution.

A Dispatcher runs a Command through the first channel that can take it:

    1. a custom tool registered under the executable name (in-process)
    2. a tool provider discovered via the ``shellbuild.tools`` entry points
       (in-process)
    3. an external process, stderr merged into stdout, streamed line by line

The resulting exit code goes through a checker; the default one raises
ExecutionFailure for anything but zero.
"""

from __future__ import annotations

import logging
import subprocess
import sys
from dataclasses import dataclass
from importlib.metadata import entry_points
from typing import Callable, Optional, Protocol, Sequence, TextIO, runtime_checkable

from shellbuild.build.command import Command
from shellbuild.core.timing import TimingContext
from shellbuild.core.utils import TagAdapter, get_log
from shellbuild.errors import ExecutionFailure, SpawnFailure

TOOL_ENTRY_POINT_GROUP = "shellbuild.tools"

ExitChecker = Callable[[str, int], None]


# =============================================================================
# Tools
# =============================================================================


@runtime_checkable
class ToolProvider(Protocol):
    """An in-process tool: a name and a run() returning an exit code."""

    name: str

    def run(self, out: TextIO, err: TextIO, args: Sequence[str]) -> int:
        ...


@dataclass
class FunctionTool:
    """Adapt a plain function ``func(out, err, args) -> int`` to a tool."""

    name: str
    func: Callable[[TextIO, TextIO, Sequence[str]], Optional[int]]

    def run(self, out: TextIO, err: TextIO, args: Sequence[str]) -> int:
        return _exit_code(self.func(out, err, args))


class ToolRegistry:
    """Custom tools, keyed by the executable name they stand in for."""

    def __init__(self) -> None:
        self._tools: dict[str, ToolProvider] = {}

    def register(self, tool: ToolProvider) -> ToolProvider:
        self._tools[tool.name] = tool
        return tool

    def get(self, name: str) -> Optional[ToolProvider]:
        return self._tools.get(name)

    def names(self) -> list[str]:
        return sorted(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)


def discover_tool(name: str) -> Optional[ToolProvider]:
    """Find an installed tool provider registered under the entry point name.

    The entry point may point at a tool instance, a tool class, or any
    zero-argument factory returning a tool.
    """
    for entry in entry_points(group=TOOL_ENTRY_POINT_GROUP):
        if entry.name != name:
            continue
        loaded = entry.load()
        if isinstance(loaded, ToolProvider) and not isinstance(loaded, type):
            return loaded
        return loaded()
    return None


def _exit_code(value: Optional[int]) -> int:
    return 0 if value is None else int(value)


def check_exit_code(executable: str, exit_code: int) -> None:
    """Default checker: anything but zero is a failure."""
    if exit_code != 0:
        raise ExecutionFailure(executable, exit_code)


def accept_any_exit_code(executable: str, exit_code: int) -> None:
    """Checker that never fails."""


# =============================================================================
# Dispatcher
# =============================================================================


class Dispatcher:
    """Runs commands; owns the output sinks and the per-tool timings."""

    def __init__(
        self,
        registry: Optional[ToolRegistry] = None,
        out: Optional[TextIO] = None,
        err: Optional[TextIO] = None,
        log: Optional[TagAdapter] = None,
        discover: Callable[[str], Optional[ToolProvider]] = discover_tool,
    ):
        self.registry = registry if registry is not None else ToolRegistry()
        self.out = out if out is not None else sys.stdout
        self.err = err if err is not None else sys.stderr
        self.log = log if log is not None else get_log(__name__)
        self.discover = discover
        self.timings: dict[str, float] = {}

    def execute(self, command: Command, checker: ExitChecker = check_exit_code) -> int:
        """Run the command and return its exit code after checking it.

        Raises:
            SpawnFailure: The external process could not be started.
            ExecutionFailure: The default checker rejected the exit code.
        """
        executable = command.executable
        with self.log.tagged("execute"):
            if not self.log.is_suppressed(logging.DEBUG):
                command.dump(lambda line: self.log.debug("%s", line))

            with TimingContext(self.timings, executable) as timer:
                exit_code = self._dispatch(command)

            self.log.debug("%s finished after %d ms", executable, timer.elapsed_ms)

        checker(executable, exit_code)
        return exit_code

    def _dispatch(self, command: Command) -> int:
        executable = command.executable
        args = list(command.arguments)

        tool = self.registry.get(executable)
        if tool is not None:
            self.log.debug("executing custom `%s` tool in-process...", executable)
            return _exit_code(tool.run(self.out, self.err, args))

        tool = self.discover(executable)
        if tool is not None:
            self.log.debug("executing loaded `%s` tool in-process...", executable)
            return _exit_code(tool.run(self.out, self.err, args))

        self.log.debug("executing external `%s` tool in new process...", executable)
        return self._run_process(command)

    def _run_process(self, command: Command) -> int:
        try:
            process = subprocess.Popen(
                command.to_argv(),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
            )
        except OSError as exc:
            if self.log.is_suppressed(logging.DEBUG):
                command.dump(lambda line: self.log.error("%s", line))
            raise SpawnFailure(command.executable, exc) from exc

        with process:
            assert process.stdout is not None
            for line in process.stdout:
                self.out.write(line)
            self.out.flush()
            return process.wait()
