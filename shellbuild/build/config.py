"""
Build configuration for shellbuild.

Defaults, the BuildConfig dataclass, and loading of ``shellbuild.yaml``.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from shellbuild.build.folders import folder_by_name
from shellbuild.core.utils import parse_level
from shellbuild.errors import ConfigError

# =============================================================================
# Constants
# =============================================================================

CONFIG_FILE_NAME = "shellbuild.yaml"

# Formatter jar with all dependencies bundled.
GOOGLE_JAVA_FORMAT_URI = (
    "https://jitpack.io/com/github/sormuras/google-java-format/validate-SNAPSHOT/"
    "google-java-format-validate-SNAPSHOT-all-deps.jar"
)

# Set to "1"/"true" to make the format action rewrite files instead of validating.
FORMAT_REPLACE_ENV = "SHELLBUILD_FORMAT_REPLACE"

DEFAULT_DUMP_LIMIT = 10


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class BuildConfig:
    """Configuration for a build session."""

    project_root: Path = field(default_factory=Path.cwd)
    log_level: int = logging.INFO
    encoding: str = "UTF-8"
    dump_limit: int = DEFAULT_DUMP_LIMIT
    folders: dict[str, str] = field(default_factory=dict)  # folder name -> path
    format_uri: str = GOOGLE_JAVA_FORMAT_URI
    format_replace: bool = False


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes", "on")


# =============================================================================
# Loading
# =============================================================================


def _expect(data: dict[str, Any], key: str, kind: Any, source: Path) -> Any:
    value = data.get(key)
    if value is not None and not isinstance(value, kind):
        kinds = kind if isinstance(kind, tuple) else (kind,)
        expected = " or ".join(k.__name__ for k in kinds)
        raise ConfigError(f"{source}: '{key}' must be a {expected}, got {type(value).__name__}")
    return value


def load_config(project_root: Path, config_path: Optional[Path] = None) -> BuildConfig:
    """Load ``shellbuild.yaml`` from project_root (or config_path).

    A missing file yields the defaults. The format replace flag may also be
    switched on through the SHELLBUILD_FORMAT_REPLACE environment variable.

    Raises:
        ConfigError: If the file cannot be read or has the wrong shape.
    """
    project_root = Path(project_root)
    path = config_path if config_path is not None else project_root / CONFIG_FILE_NAME
    config = BuildConfig(project_root=project_root)

    if path.exists():
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(f"Could not read {path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ConfigError(f"{path}: top level must be a mapping")

        level = _expect(data, "log_level", (str, int), path)
        if level is not None:
            try:
                config.log_level = parse_level(str(level))
            except ValueError as exc:
                raise ConfigError(f"{path}: {exc}") from exc

        encoding = _expect(data, "encoding", str, path)
        if encoding is not None:
            config.encoding = encoding

        dump_limit = _expect(data, "dump_limit", int, path)
        if dump_limit is not None:
            config.dump_limit = dump_limit

        folders = _expect(data, "folders", dict, path)
        if folders:
            for name in folders:
                try:
                    folder_by_name(str(name))
                except KeyError as exc:
                    raise ConfigError(f"{path}: {exc.args[0]}") from exc
            config.folders = {str(name): str(value) for name, value in folders.items()}

        fmt = _expect(data, "format", dict, path) or {}
        if fmt.get("uri"):
            config.format_uri = str(fmt["uri"])
        config.format_replace = bool(fmt.get("replace", False))

    if _env_flag(FORMAT_REPLACE_ENV):
        config.format_replace = True

    return config
