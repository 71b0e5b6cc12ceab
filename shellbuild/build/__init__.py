"""
shellbuild.build - Command construction, execution and artifact download.
"""

from shellbuild.build.command import Command
from shellbuild.build.config import (
    CONFIG_FILE_NAME,
    BuildConfig,
    load_config,
)
from shellbuild.build.dispatcher import (
    Dispatcher,
    FunctionTool,
    ToolProvider,
    ToolRegistry,
    accept_any_exit_code,
    check_exit_code,
    discover_tool,
)
from shellbuild.build.download import ArtifactDownloader, file_name_from_uri
from shellbuild.build.folders import Folder, FolderResolver, STANDARD_FOLDERS
from shellbuild.build.options import OptionDescriptor, OptionKind, describe_options, project_options
from shellbuild.build.phases import GoogleJavaFormat, JavacOptions, javac
from shellbuild.build.session import Builder

__all__ = [
    # Commands
    "Command",
    "OptionDescriptor",
    "OptionKind",
    "describe_options",
    "project_options",
    # Execution
    "Dispatcher",
    "FunctionTool",
    "ToolProvider",
    "ToolRegistry",
    "accept_any_exit_code",
    "check_exit_code",
    "discover_tool",
    # Download
    "ArtifactDownloader",
    "file_name_from_uri",
    # Folders
    "Folder",
    "FolderResolver",
    "STANDARD_FOLDERS",
    # Configuration
    "CONFIG_FILE_NAME",
    "BuildConfig",
    "load_config",
    # Session and phases
    "Builder",
    "GoogleJavaFormat",
    "JavacOptions",
    "javac",
]
