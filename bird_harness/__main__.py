# __main__.py
# `python -m bird_harness`: run output.wasm, record into output.txt.

import asyncio
import logging
import sys

from .errors import HarnessError
from .guest import run


def main() -> int:
    logging.basicConfig(
        level=logging.WARNING,
        format='%(levelname)s: %(message)s'
    )
    try:
        asyncio.run(run())
    except HarnessError as e:
        print(f"{type(e).__name__}: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
