"""
Build phases for Java projects.

Thin callers of the core: each phase resolves folders, builds a Command and
hands it to the session's dispatcher.
"""

from __future__ import annotations

import codecs
import locale
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Sequence, TextIO

from shellbuild.build.dispatcher import accept_any_exit_code
from shellbuild.build.folders import JDK_HOME_BIN, TOOLS
from shellbuild.errors import InvalidArgument

if TYPE_CHECKING:
    from shellbuild.build.session import Builder


# =============================================================================
# Source File Filters
# =============================================================================


def is_java_source_file(path: Path) -> bool:
    """True for regular files named like ``Name.java`` (exactly one dot)."""
    if not path.is_file():
        return False
    name = path.name
    return name.count(".") == 1 and name.endswith(".java")


def is_consumable_by_format(path: Path) -> bool:
    """Java sources the formatter accepts; module descriptors are not."""
    if path.name == "module-info.java":
        return False
    return is_java_source_file(path)


# =============================================================================
# javac
# =============================================================================


@dataclass
class JavacOptions:
    """Options for javac, in the order they appear on the command line."""

    # User-defined arguments, passed through verbatim.
    additional_arguments: list[str] = field(default_factory=list)

    # Output source locations where deprecated APIs are used.
    deprecation: bool = True

    # Character encoding of the source files.
    encoding: str = "UTF-8"

    # Terminate compilation if warnings occur.
    fail_on_warnings: bool = True

    # Where to find application modules.
    module_paths: list[Path] = field(default_factory=list)

    # Generate metadata for reflection on method parameters.
    parameters: bool = True

    # Output messages about what the compiler is doing.
    verbose: bool = False

    def encoding_args(self) -> list[str]:
        platform = locale.getpreferredencoding(False)
        if codecs.lookup(self.encoding).name == codecs.lookup(platform).name:
            return []
        return ["-encoding", self.encoding]

    def fail_on_warnings_args(self) -> list[str]:
        return ["-Werror"] if self.fail_on_warnings else []

    def module_paths_args(self) -> list[str]:
        if not self.module_paths:
            return []
        return ["--module-path", os.pathsep.join(str(p) for p in self.module_paths)]


def javac(
    builder: "Builder",
    module_source_path: Path,
    destination_path: Path,
    options: JavacOptions | None = None,
) -> int:
    """Compile every Java module found under module_source_path."""
    with builder.log.tagged("javac"):
        module_source_path = Path(module_source_path)
        if not module_source_path.exists():
            raise InvalidArgument(f"path `{module_source_path}` does not exist")
        if options is None:
            options = builder.default_javac_options()

        command = builder.command("javac")
        command.add_options(options)
        command.add("-d").add(destination_path)
        command.add("--module-source-path").add(module_source_path)
        command.mark_dump_limit(builder.config.dump_limit)
        command.add_all_matching_files(module_source_path, is_java_source_file)
        return builder.run(command)


# =============================================================================
# google-java-format
# =============================================================================


class GoogleJavaFormat:
    """Custom ``format`` tool: validate or rewrite Java sources in place.

    Runs the formatter jar (downloaded on first use into the TOOLS folder)
    once per source root. Returns the sum of the formatter's exit codes.
    """

    name = "format"

    def __init__(self, builder: "Builder", replace: bool, paths: Sequence[Path]):
        self.builder = builder
        self.replace = replace
        self.paths = [Path(p) for p in paths]

    def run(self, out: TextIO, err: TextIO, args: Sequence[str]) -> int:
        builder = self.builder
        log = builder.log
        mode = "replace" if self.replace else "validate"

        with log.tagged("format"):
            log.debug("mode=%s", mode)
            jar = builder.download(builder.config.format_uri, builder.path(TOOLS) / "google-java-format")
            java = builder.path(JDK_HOME_BIN) / "java"

            exit_code = 0
            count = 0
            for path in self.paths:
                log.debug("%s `%s`...", "formatting" if self.replace else "validating", path)
                command = builder.command(java, "-jar", jar, f"--{mode}", *args)
                command.mark_dump_limit(builder.config.dump_limit)
                before = len(command.arguments)
                command.add_all_matching_files(path, is_consumable_by_format)
                found = len(command.arguments) - before
                if not found:
                    log.debug("no Java sources in `%s`", path)
                    continue
                count += found
                exit_code += builder.run(command, checker=accept_any_exit_code)

            log.info("%d files %s", count, "formatted" if self.replace else "validated")
        return exit_code
