"""Command-line entry point, ``python -m emme``."""
import sys

from emme.cli import main

if __name__ == "__main__":
    sys.exit(main())
