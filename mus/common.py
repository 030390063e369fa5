"""
The common module is our ugly grab bag of common toys: the version, the error hierarchy, and
logging setup. Everything else belongs to a more specific module.
"""

import logging
import logging.handlers
import os
import sys
from pathlib import Path

import appdirs

with (Path(__file__).parent / ".version").open("r") as fp:
    VERSION = fp.read().strip()


class MusError(Exception):
    pass


class MusExpectedError(MusError):
    """These errors are printed without traceback."""

    pass


class ValidationError(MusExpectedError, ValueError):
    """Malformed input: a negative numeric field, a missing required field, and so on."""

    pass


class ConflictError(MusExpectedError):
    """A uniqueness constraint would be violated."""

    pass


class NotFoundError(MusExpectedError):
    pass


class ProtectedEntityError(MusExpectedError):
    pass


class IntegrityError(MusError):
    """
    An internal invariant was found violated mid-operation. This should never be raised when the
    catalog is only mutated through this package, so we keep the traceback around for the bug
    report.
    """

    pass


_initialized_loggers: set[str | None] = set()


def initialize_logging(logger_name: str | None = None) -> None:
    """
    Attach a stderr handler and a rotating file handler to the named logger. Calling this twice for
    the same logger does nothing.

    Under pytest no handlers are attached, since pytest collects log records itself. Set `LOG_TEST`
    to attach them anyway, with the verbose format on stderr too.
    """
    if logger_name in _initialized_loggers:
        return
    _initialized_loggers.add(logger_name)

    verbose_everywhere = bool(os.environ.get("LOG_TEST"))
    if "pytest" in sys.modules and not verbose_everywhere:
        return

    log_dir = _log_dir()
    log_dir.mkdir(parents=True, exist_ok=True)

    terse = logging.Formatter("[%(asctime)s] %(levelname)s: %(message)s", datefmt="%H:%M:%S")
    verbose = logging.Formatter(
        "[ts=%(asctime)s.%(msecs)03d] [pid=%(process)d] [src=%(name)s:%(lineno)s] "
        "%(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    logger = logging.getLogger(logger_name)
    to_stderr = logging.StreamHandler(sys.stderr)
    to_stderr.setFormatter(verbose if verbose_everywhere else terse)
    logger.addHandler(to_stderr)

    to_file = logging.handlers.RotatingFileHandler(
        log_dir / "mus.log",
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
    )
    to_file.setFormatter(verbose)
    logger.addHandler(to_file)


def _log_dir() -> Path:
    # Logs are state, not cache: $XDG_STATE_HOME on Linux, ~/Library/Logs on macOS.
    if appdirs.system == "darwin":
        return Path(appdirs.user_log_dir("mus"))
    return Path(appdirs.user_state_dir("mus"))
