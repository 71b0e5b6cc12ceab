"""Tests for command dispatch: custom tools, discovered tools, processes."""

import io
import logging
import sys
from unittest.mock import MagicMock, patch

import pytest

from shellbuild.build.command import Command
from shellbuild.build.dispatcher import (
    Dispatcher,
    FunctionTool,
    ToolProvider,
    ToolRegistry,
    accept_any_exit_code,
    discover_tool,
)
from shellbuild.core.utils import LOGGER_NAME
from shellbuild.errors import ExecutionFailure, SpawnFailure


class EchoTool:
    """In-process tool that writes its label and arguments."""

    def __init__(self, name: str, label: str, exit_code: int = 0):
        self.name = name
        self.label = label
        self.exit_code = exit_code

    def run(self, out, err, args):
        out.write(f"{self.label}:{' '.join(args)}\n")
        return self.exit_code


def _python(code: str) -> Command:
    return Command(sys.executable).add("-c").add(code)


@pytest.fixture
def out():
    return io.StringIO()


@pytest.fixture
def registry():
    return ToolRegistry()


@pytest.fixture
def dispatcher(registry, out):
    return Dispatcher(registry, out=out, err=out, discover=lambda name: None)


@pytest.mark.evergreen
class TestToolPrecedence:
    """First matching tier wins: registry, then discovery, then process."""

    def test_registry_wins_over_discovery(self, registry, out):
        registry.register(EchoTool("tool", "custom"))
        discovered = EchoTool("tool", "discovered")
        dispatcher = Dispatcher(registry, out=out, err=out, discover=lambda name: discovered)

        assert dispatcher.execute(Command("tool").add("x")) == 0
        assert out.getvalue() == "custom:x\n"

    def test_discovery_used_when_not_registered(self, registry, out):
        seen = []

        def discover(name):
            seen.append(name)
            return EchoTool(name, "discovered")

        dispatcher = Dispatcher(registry, out=out, err=out, discover=discover)
        dispatcher.execute(Command("tool").add("y"))

        assert seen == ["tool"]
        assert out.getvalue() == "discovered:y\n"

    def test_external_process_last(self, dispatcher, out):
        assert dispatcher.execute(_python("print('external')")) == 0
        assert "external" in out.getvalue()

    def test_process_stderr_merged_into_out(self, dispatcher, out):
        dispatcher.execute(_python("import sys; sys.stderr.write('oops\\n')"))
        assert "oops" in out.getvalue()

    def test_undecodable_process_output(self, dispatcher, out):
        """Bytes outside the locale encoding are replaced, the run still completes."""
        command = _python("import sys; sys.stdout.buffer.write(b'caf\\xe9\\n'); sys.exit(5)")
        assert dispatcher.execute(command, accept_any_exit_code) == 5
        assert out.getvalue().startswith("caf")
        assert "\ufffd" in out.getvalue() or "\u00e9" in out.getvalue()


@pytest.mark.evergreen
class TestExitCodes:
    """The checker decides whether an exit code is a failure."""

    def test_default_checker_raises_on_nonzero(self, registry, dispatcher):
        registry.register(EchoTool("tool", "t", exit_code=3))
        with pytest.raises(ExecutionFailure) as exc_info:
            dispatcher.execute(Command("tool"))
        assert exc_info.value.executable == "tool"
        assert exc_info.value.exit_code == 3

    def test_default_checker_accepts_zero(self, registry, dispatcher):
        registry.register(EchoTool("tool", "t"))
        assert dispatcher.execute(Command("tool")) == 0

    def test_substituted_checker(self, registry, dispatcher):
        registry.register(EchoTool("tool", "t", exit_code=3))
        assert dispatcher.execute(Command("tool"), accept_any_exit_code) == 3

    def test_process_exit_code(self, dispatcher):
        assert dispatcher.execute(_python("import sys; sys.exit(4)"), accept_any_exit_code) == 4

    def test_function_tool_none_is_success(self, registry, dispatcher):
        registry.register(FunctionTool("noop", lambda out, err, args: None))
        assert dispatcher.execute(Command("noop")) == 0


@pytest.mark.evergreen
class TestSpawnFailure:
    """A process that cannot start is reported with the attempted command."""

    def test_missing_executable(self, dispatcher):
        with pytest.raises(SpawnFailure) as exc_info:
            dispatcher.execute(Command("shellbuild-no-such-tool").add("--flag"))
        assert exc_info.value.executable == "shellbuild-no-such-tool"

    def test_dump_forced_when_debug_suppressed(self, dispatcher, caplog):
        caplog.set_level(logging.INFO, logger=LOGGER_NAME)
        with pytest.raises(SpawnFailure):
            dispatcher.execute(Command("shellbuild-no-such-tool").add("--flag"))
        errors = [r.getMessage() for r in caplog.records if r.levelno == logging.ERROR]
        assert errors == ["shellbuild-no-such-tool", "--flag"]

    def test_debug_dump_before_dispatch(self, registry, dispatcher, caplog):
        caplog.set_level(logging.DEBUG, logger=LOGGER_NAME)
        registry.register(EchoTool("tool", "t"))
        dispatcher.execute(Command("tool").add("value"))
        debug = [r.getMessage() for r in caplog.records if r.levelno == logging.DEBUG]
        assert debug[:2] == ["tool", "  value"]
        assert all(r.tag == "execute" for r in caplog.records)


@pytest.mark.evergreen
class TestTimings:
    def test_accumulates_per_executable(self, registry, dispatcher):
        registry.register(EchoTool("tool", "t"))
        dispatcher.execute(Command("tool"))
        dispatcher.execute(Command("tool"))
        assert list(dispatcher.timings) == ["tool"]
        assert dispatcher.timings["tool"] >= 0.0


@pytest.mark.evergreen
class TestRegistry:
    def test_register_and_lookup(self, registry):
        tool = registry.register(EchoTool("b", "b"))
        registry.register(EchoTool("a", "a"))
        assert registry.get("b") is tool
        assert registry.get("missing") is None
        assert "a" in registry
        assert len(registry) == 2
        assert registry.names() == ["a", "b"]

    def test_echo_tool_is_provider(self):
        assert isinstance(EchoTool("x", "x"), ToolProvider)


@pytest.mark.evergreen
class TestDiscoverTool:
    """discover_tool() consults the shellbuild.tools entry points."""

    def _entry(self, name, loaded):
        entry = MagicMock()
        entry.name = name
        entry.load.return_value = loaded
        return entry

    def test_instance(self):
        tool = EchoTool("jar", "jar")
        entries = [self._entry("javac", EchoTool("javac", "javac")), self._entry("jar", tool)]
        with patch("shellbuild.build.dispatcher.entry_points", return_value=entries) as mocked:
            assert discover_tool("jar") is tool
        mocked.assert_called_once_with(group="shellbuild.tools")

    def test_factory(self):
        entries = [self._entry("jar", lambda: EchoTool("jar", "made"))]
        with patch("shellbuild.build.dispatcher.entry_points", return_value=entries):
            assert discover_tool("jar").label == "made"

    def test_class(self):
        class JarTool:
            name = "jar"

            def run(self, out, err, args):
                return 0

        with patch("shellbuild.build.dispatcher.entry_points", return_value=[self._entry("jar", JarTool)]):
            assert isinstance(discover_tool("jar"), JarTool)

    def test_not_found(self):
        with patch("shellbuild.build.dispatcher.entry_points", return_value=[]):
            assert discover_tool("jar") is None
