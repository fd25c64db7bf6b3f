"""
Main entry point for running confcrypt as a module.

Usage:
    python -m confcrypt <command> [options]
"""

from .cli import main
import sys

if __name__ == "__main__":
    sys.exit(main())
