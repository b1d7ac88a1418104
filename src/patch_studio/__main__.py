"""
Entry point for running Patch Studio as a module.

Usage:
    python -m patch_studio
"""

import sys

from patch_studio.main import main

if __name__ == "__main__":
    sys.exit(main())
