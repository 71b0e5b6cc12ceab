"""
Builder session.

Bundles everything a build needs to share: configuration, folder overrides,
custom tools, output sinks and the logging tag. Components get these handed
to them explicitly; nothing is global.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Optional, Sequence, TextIO, Union

from shellbuild.build.command import Command
from shellbuild.build.config import BuildConfig
from shellbuild.build.dispatcher import (
    Dispatcher,
    ExitChecker,
    ToolProvider,
    ToolRegistry,
    check_exit_code,
    discover_tool,
)
from shellbuild.build.download import ArtifactDownloader, SkipPredicate
from shellbuild.build.folders import (
    DEPENDENCIES,
    SOURCE,
    TARGET_COMPILE_MAIN,
    Folder,
    FolderResolver,
)
from shellbuild.build.phases import GoogleJavaFormat, JavacOptions, javac
from shellbuild.core.utils import LOGGER_NAME, TagAdapter, get_log

# Below DEBUG: enables the compiler's own verbose output.
TRACE = 5


class Builder:
    """One build session, driven by a script or the CLI."""

    def __init__(
        self,
        config: Optional[BuildConfig] = None,
        out: Optional[TextIO] = None,
        err: Optional[TextIO] = None,
        downloader: Optional[ArtifactDownloader] = None,
        discover: Callable[[str], Optional[ToolProvider]] = discover_tool,
        log: Optional[TagAdapter] = None,
    ):
        self.config = config if config is not None else BuildConfig()
        self.log = log if log is not None else get_log(LOGGER_NAME)
        self.folders = FolderResolver()
        self.folders.update(self.config.folders)
        self.tools = ToolRegistry()
        self.dispatcher = Dispatcher(self.tools, out, err, self.log, discover)
        self._downloader = downloader

    # -------------------------------------------------------------------------
    # Shared state
    # -------------------------------------------------------------------------

    @property
    def out(self) -> TextIO:
        return self.dispatcher.out

    @property
    def err(self) -> TextIO:
        return self.dispatcher.err

    @property
    def downloader(self) -> ArtifactDownloader:
        if self._downloader is None:
            self._downloader = ArtifactDownloader(log=self.log)
        return self._downloader

    def close(self) -> None:
        if self._downloader is not None:
            self._downloader.close()

    def __enter__(self) -> "Builder":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def path(self, folder: Folder) -> Path:
        """Resolve a folder against the overrides and the project root."""
        return self.config.project_root / self.folders.resolve(folder)

    def set_folder(self, folder: Folder, path: Union[str, Path]) -> None:
        self.folders.set(folder, path)

    def register_tool(self, tool: ToolProvider) -> ToolProvider:
        """Run ``tool`` in-process whenever its name is executed."""
        return self.tools.register(tool)

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    def command(self, executable: Union[str, Path], *arguments: Any) -> Command:
        return Command(str(executable)).add_all(arguments)

    def run(self, command: Command, checker: ExitChecker = check_exit_code) -> int:
        return self.dispatcher.execute(command, checker)

    def call(self, executable: str, *arguments: Any) -> int:
        """Create and execute a command in one go."""
        with self.log.tagged("call"):
            return self.run(self.command(executable, *arguments))

    def download(
        self,
        uri: str,
        target_directory: Path,
        target_file_name: Optional[str] = None,
        skip: Optional[SkipPredicate] = None,
    ) -> Path:
        return self.downloader.fetch(uri, target_directory, target_file_name, skip)

    # -------------------------------------------------------------------------
    # Phases
    # -------------------------------------------------------------------------

    def default_javac_options(self) -> JavacOptions:
        return JavacOptions(
            encoding=self.config.encoding,
            module_paths=[self.path(DEPENDENCIES)],
            verbose=not self.log.is_suppressed(TRACE),
        )

    def compile(self, options: Optional[JavacOptions] = None) -> int:
        """Compile the main Java modules from SOURCE into TARGET_COMPILE_MAIN."""
        with self.log.tagged("compile"):
            for folder, path in self.folders.items():
                self.log.debug("folder %s -> %s", folder, path)
            return javac(self, self.path(SOURCE), self.path(TARGET_COMPILE_MAIN), options)

    def format(
        self,
        paths: Optional[Sequence[Path]] = None,
        replace: Optional[bool] = None,
        additional_arguments: Sequence[str] = (),
    ) -> int:
        """Validate (or with replace=True, rewrite) formatting of Java sources.

        Defaults to the SOURCE folder and to the configured replace mode.
        """
        if replace is None:
            replace = self.config.format_replace
        if paths is None:
            paths = [self.path(SOURCE)]
        self.register_tool(GoogleJavaFormat(self, replace, paths))
        return self.run(self.command(GoogleJavaFormat.name, *additional_arguments))

    @property
    def timings(self) -> dict[str, float]:
        return self.dispatcher.timings

