import logging

import pytest

from mus.common import (
    VERSION,
    ConflictError,
    IntegrityError,
    MusError,
    MusExpectedError,
    NotFoundError,
    ProtectedEntityError,
    ValidationError,
    initialize_logging,
)


def test_version() -> None:
    assert VERSION
    assert all(part.isdigit() for part in VERSION.split("."))


@pytest.mark.parametrize(
    "error",
    [ValidationError, ConflictError, NotFoundError, ProtectedEntityError],
)
def test_expected_errors(error: type[MusError]) -> None:
    assert issubclass(error, MusExpectedError)


def test_integrity_error_is_not_expected() -> None:
    # Invariant violations are bugs and must keep their traceback in the CLI.
    assert issubclass(IntegrityError, MusError)
    assert not issubclass(IntegrityError, MusExpectedError)


def test_validation_error_is_value_error() -> None:
    with pytest.raises(ValueError):
        raise ValidationError("bad")


def test_initialize_logging_is_idempotent_and_quiet_under_pytest() -> None:
    logger = logging.getLogger("mus.common_test")
    initialize_logging("mus.common_test")
    initialize_logging("mus.common_test")
    # pytest captures logging output on its own, so no handlers are attached.
    assert logger.handlers == []
