"""
Wrapper for std.logging to add a new debug lvl: MYDEBUG as
DEBUG is allready used by dependencies (httpx, hydra)
"""
import logging
from typing import Final

# From logging
# CRITICAL = 50
# ERROR = 40
# WARNING = 30
# INFO = 20
MYDEBUG: Final = 15
# DEBUG = 10
# NOTSET = 0

LOGGING_LVL = logging.INFO


def setup_logging(debug: bool = False):
    logging.addLevelName(MYDEBUG, "DEBUG")

    logging.basicConfig(
        format='[%(levelname)s] %(message)s',
        datefmt='%H:%M',
        level=MYDEBUG if debug else LOGGING_LVL
    )


def debug15(msg, *args, **kwargs):
    logging.log(MYDEBUG, msg, *args, **kwargs)

info = logging.info
warning = logging.warning
error = logging.error
critical = logging.critical
exception = logging.exception
debug = logging.debug
