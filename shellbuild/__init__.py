"""
shellbuild - Assemble and run developer tool commands.

Build commands for compilers and formatters from structured options, run
them in-process or as external processes, and download tool artifacts with
a timestamp/size cache.
"""

__version__ = "0.1.0"
