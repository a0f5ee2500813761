import logging
import os
import sys
from pathlib import Path

import fncli

from . import db
from .core.errors import ZenithError
from .lib.errors import exit_error


def _setup_logging() -> None:
    level = os.environ.get("ZENITH_LOG", "WARNING").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def main():
    _setup_logging()
    db.init()
    fncli.autodiscover(Path(__file__).parent, "zenith")

    user_args = sys.argv[1:]
    argv = ["zenith", *(user_args or ["ls"])]
    try:
        code = fncli.dispatch(argv)
    except ZenithError as e:
        exit_error(str(e))
    sys.exit(code)


if __name__ == "__main__":
    main()
