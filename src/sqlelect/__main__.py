"""Main entry point for the sqlelect CLI.

Usage:
    python -m sqlelect --help
    sqlelect --help  # If installed via pip/uv
"""

from sqlelect.cli import main

if __name__ == "__main__":
    main()
