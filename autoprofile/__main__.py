"""`python -m autoprofile` entrypoint."""

from __future__ import annotations

import sys

from .cli.entrypoint import main


if __name__ == "__main__":
    sys.exit(main())
