"""
Main CLI for shellbuild.

Thin action layer over the Builder session: every command maps to one
Builder method.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from shellbuild import __version__
from shellbuild.build.config import load_config
from shellbuild.build.folders import TOOLS, folder_by_name
from shellbuild.build.session import Builder
from shellbuild.core.timing import timing_summary
from shellbuild.core.utils import configure_logging, get_log, parse_level
from shellbuild.errors import ShellBuildError

log = get_log(tag="main")


# =============================================================================
# Argument Parsing
# =============================================================================


def _folder_override(value: str) -> tuple[str, str]:
    name, sep, path = value.partition("=")
    if not sep or not name or not path:
        raise argparse.ArgumentTypeError(f"expected FOLDER=PATH, got {value!r}")
    try:
        folder_by_name(name)
    except KeyError as exc:
        raise argparse.ArgumentTypeError(str(exc.args[0])) from exc
    return name, path


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="shellbuild",
        description="Assemble and run developer tool commands",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  shellbuild call javac --version          # Run any tool
  shellbuild download https://host/a.jar   # Fetch into the TOOLS folder
  shellbuild --set target=build compile    # Compile into build/main/java
  shellbuild format --replace              # Rewrite Java sources in place
  shellbuild folders                       # Show resolved folders
        """,
    )

    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-C", "--project-dir",
        default=".",
        help="Project directory (default: current directory)",
    )
    parser.add_argument("--config", help="Config file (default: <project>/shellbuild.yaml)")
    parser.add_argument("--log-level", help="Log threshold: debug, info, warning, ...")
    parser.add_argument("--verbose", "-v", action="store_true", help="Shortcut for --log-level debug")
    parser.add_argument("--no-color", action="store_true", help="Disable colored output")
    parser.add_argument(
        "--set",
        dest="overrides",
        action="append",
        default=[],
        type=_folder_override,
        metavar="FOLDER=PATH",
        help="Override a folder path (repeatable)",
    )

    subparsers = parser.add_subparsers(dest="command", title="commands", metavar="<command>")

    call_parser = subparsers.add_parser("call", help="Execute a tool with arguments")
    call_parser.add_argument("executable")
    call_parser.add_argument("arguments", nargs=argparse.REMAINDER)

    download_parser = subparsers.add_parser("download", help="Download an artifact")
    download_parser.add_argument("uri")
    download_parser.add_argument("--dir", help="Target directory (default: TOOLS folder)")
    download_parser.add_argument("--name", help="Target file name (default: from URI)")

    subparsers.add_parser("compile", help="Compile Java modules from SOURCE")

    format_parser = subparsers.add_parser("format", help="Validate or rewrite Java formatting")
    format_parser.add_argument("paths", nargs="*", help="Source roots (default: SOURCE folder)")
    format_parser.add_argument("--replace", action="store_true", default=None, help="Rewrite files")
    format_parser.add_argument(
        "--arg",
        dest="additional_arguments",
        action="append",
        default=[],
        help="Extra formatter argument (repeatable)",
    )

    subparsers.add_parser("folders", help="Show resolved folders")

    return parser


# =============================================================================
# Commands
# =============================================================================


def cmd_call(builder: Builder, args: argparse.Namespace) -> int:
    return builder.call(args.executable, *args.arguments)


def cmd_download(builder: Builder, args: argparse.Namespace) -> int:
    target = Path(args.dir) if args.dir else builder.path(TOOLS)
    path = builder.download(args.uri, target, args.name)
    print(path, file=builder.out)
    return 0


def cmd_compile(builder: Builder, args: argparse.Namespace) -> int:
    return builder.compile()


def cmd_format(builder: Builder, args: argparse.Namespace) -> int:
    paths = [Path(p) for p in args.paths] or None
    return builder.format(paths, args.replace, args.additional_arguments)


def cmd_folders(builder: Builder, args: argparse.Namespace) -> int:
    for folder, path in builder.folders.items():
        print(f"{folder.name:<20} {path}", file=builder.out)
    return 0


COMMANDS = {
    "call": cmd_call,
    "download": cmd_download,
    "compile": cmd_compile,
    "format": cmd_format,
    "folders": cmd_folders,
}


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    try:
        project_root = Path(args.project_dir).resolve()
        config = load_config(project_root, Path(args.config) if args.config else None)
        if args.log_level:
            config.log_level = parse_level(args.log_level)
        if args.verbose:
            config.log_level = min(config.log_level, logging.DEBUG)
        configure_logging(config.log_level, use_color=False if args.no_color else None)

        for name, path in args.overrides:
            config.folders[name] = path

        with Builder(config, log=log) as builder:
            log.debug("shellbuild %s in %s", __version__, project_root)
            code = COMMANDS[args.command](builder, args)
            log.debug("%s", timing_summary(builder.timings))
            return code

    except KeyboardInterrupt:
        log.warning("Interrupted")
        return 130
    except (ShellBuildError, ValueError) as e:
        log.error("%s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
