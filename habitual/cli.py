import sys
from pathlib import Path

import fncli

from . import config, db
from .core.errors import HabitualError
from .lib.log import setup_logging

_registered = False


def _register() -> None:
    global _registered
    if not _registered:
        fncli.autodiscover(Path(__file__).parent, "habitual")
        _registered = True


def run(args: list[str]) -> int:
    """Dispatch ``habitual <args>`` and return the exit code."""
    _register()
    try:
        return fncli.dispatch(["habitual", *args])
    except HabitualError as e:
        sys.stderr.write(f"{e}\n")
        return 1


def main():
    db.init()
    setup_logging(config.LOG_PATH, config.get_log_level())
    sys.exit(run(sys.argv[1:]))


if __name__ == "__main__":
    main()
