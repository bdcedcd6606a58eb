import logging
import sys
from pathlib import Path

import fncli

from . import config, db
from .core.errors import CadenceError
from .logging_setup import setup_logging

logger = logging.getLogger(__name__)


def main():
    verbose = "-v" in sys.argv[1:] or "--verbose" in sys.argv[1:]
    user_args = [a for a in sys.argv[1:] if a not in ("-v", "--verbose")]
    setup_logging(
        log_dir=config.LOG_DIR,
        console_level=logging.DEBUG if verbose else config.get_log_level(),
    )
    db.init()
    fncli.autodiscover(Path(__file__).parent, "cadence")

    argv = ["cadence", *user_args]
    try:
        code = fncli.dispatch(argv)
    except CadenceError as e:
        logger.debug("command failed", exc_info=True)
        sys.stderr.write(f"{e}\n")
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()
