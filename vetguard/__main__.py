"""Run the vetguard CLI with `python -m vetguard`."""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
