"""
Entry point for running highlight detection as a module.

Usage:
    python -m highlight_detection VIDEO [options]
"""

from .cli import main

if __name__ == "__main__":
    main()
