"""
Entry point for running shellbuild as a module: python -m shellbuild
"""

import sys
from .cli import main

if __name__ == "__main__":
    sys.exit(main())
