"""Entry point for VM Tools."""

import sys

from vm_tools.cli import main

if __name__ == "__main__":
    sys.exit(main())
