"""
Folder layout and path resolution.

A Folder is an immutable node: a name, a relative path segment, and an
optional parent. A FolderResolver turns a Folder into a concrete path by
walking up the parent chain, consulting a mutable override table at every
step. Resolved paths are never cached, so changing an override takes effect
on the next resolve().
"""

from __future__ import annotations

import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Mapping, MutableMapping, Optional, Union

PathLike = Union[str, "os.PathLike[str]"]


# =============================================================================
# Folder Tree
# =============================================================================


@dataclass(frozen=True)
class Folder:
    """A named folder, relative to its parent (or to the working directory)."""

    name: str
    path: Path
    parent: Optional["Folder"] = None

    def __str__(self) -> str:
        return self.name


def find_jdk_home() -> Path:
    """Best guess at the JDK installation directory.

    Checks JDK_HOME, then JAVA_HOME, then the parent of the directory that
    holds ``java`` on PATH. Falls back to a relative ``jdk`` placeholder.
    """
    for variable in ("JDK_HOME", "JAVA_HOME"):
        value = os.environ.get(variable)
        if value:
            return Path(value)

    java = shutil.which("java")
    if java:
        # <JDK_HOME>/bin/java
        return Path(java).resolve().parent.parent

    return Path("jdk")


JDK_HOME = Folder("JDK_HOME", find_jdk_home())
JDK_HOME_BIN = Folder("JDK_HOME_BIN", Path("bin"), JDK_HOME)
JDK_HOME_MODS = Folder("JDK_HOME_MODS", Path("jmods"), JDK_HOME)

AUXILIARY = Folder("AUXILIARY", Path(".bach"))
DEPENDENCIES = Folder("DEPENDENCIES", Path("dependencies"), AUXILIARY)
TOOLS = Folder("TOOLS", Path("tools"), AUXILIARY)

SOURCE = Folder("SOURCE", Path("src"))

TARGET = Folder("TARGET", Path("target", "bach"))
TARGET_COMPILE_MAIN = Folder("TARGET_COMPILE_MAIN", Path("main", "java"), TARGET)

STANDARD_FOLDERS: tuple[Folder, ...] = (
    JDK_HOME,
    JDK_HOME_BIN,
    JDK_HOME_MODS,
    AUXILIARY,
    DEPENDENCIES,
    TOOLS,
    SOURCE,
    TARGET,
    TARGET_COMPILE_MAIN,
)


def folder_by_name(name: str) -> Folder:
    """Look up a standard folder by name, case-insensitively."""
    wanted = name.strip().upper().replace("-", "_")
    for folder in STANDARD_FOLDERS:
        if folder.name == wanted:
            return folder
    known = ", ".join(f.name for f in STANDARD_FOLDERS)
    raise KeyError(f"Unknown folder {name!r} (known: {known})")


# =============================================================================
# Resolution
# =============================================================================


class FolderResolver:
    """Resolve folders against an override table.

    An override replaces only the overridden folder's own segment. Its
    parent still resolves normally, and siblings are unaffected. An absolute
    override path discards the parent's resolution, as Path joining does.
    """

    def __init__(self, overrides: Optional[MutableMapping[Folder, Path]] = None):
        self.overrides: MutableMapping[Folder, Path] = overrides if overrides is not None else {}

    def resolve(self, folder: Folder) -> Path:
        path = self.overrides.get(folder, folder.path)
        if folder.parent is None:
            return path
        return self.resolve(folder.parent) / path

    def set(self, folder: Folder, path: PathLike) -> None:
        """Override the default path segment of a folder."""
        self.overrides[folder] = Path(path)

    def reset(self, folder: Folder) -> None:
        """Drop an override, restoring the default segment."""
        self.overrides.pop(folder, None)

    def update(self, overrides: Mapping[str, PathLike]) -> None:
        """Apply overrides keyed by folder name (as read from config)."""
        for name, path in overrides.items():
            self.set(folder_by_name(name), path)

    def items(self) -> Iterator[tuple[Folder, Path]]:
        """Yield (folder, resolved path) for every standard folder."""
        for folder in STANDARD_FOLDERS:
            yield folder, self.resolve(folder)
