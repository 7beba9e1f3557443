import logging

import pytest

from watsonwork.core import log
from watsonwork.core.log import VERBOSE, _mask_token, get_level, set_level, verbose


@pytest.fixture(autouse=True)
def restore_level():
    package_logger = logging.getLogger(log.PACKAGE_LOGGER)
    level = package_logger.level
    yield
    package_logger.setLevel(level)


@pytest.mark.parametrize(
    "name, expected",
    [
        ("error", logging.ERROR),
        ("warn", logging.WARNING),
        ("info", logging.INFO),
        ("verbose", VERBOSE),
        ("debug", logging.DEBUG),
    ],
)
def test_set_level(name, expected):
    set_level(name)
    assert logging.getLogger("watsonwork").level == expected
    assert get_level() == name


def test_set_level_unknown():
    with pytest.raises(ValueError):
        set_level("trace")


def test_verbose_level_filtering(caplog):
    """verbose 介于 debug 与 info 之间"""
    logger = logging.getLogger("watsonwork.test")
    set_level("verbose")
    with caplog.at_level(logging.DEBUG):
        logger.debug("hidden debug")
        verbose(logger, "shown %s", "verbose")

    assert "shown verbose" in caplog.text
    assert "hidden debug" not in caplog.text
    assert any(r.levelname == "VERBOSE" for r in caplog.records)


def test_configure_logging_once(monkeypatch):
    package_logger = logging.getLogger("watsonwork")
    monkeypatch.setattr(log, "_handler", None)
    before = list(package_logger.handlers)
    try:
        log.configure_logging("warn")
        log.configure_logging("warn")
        added = [h for h in package_logger.handlers if h not in before]
        assert len(added) == 1
        assert package_logger.level == logging.WARNING
    finally:
        for handler in package_logger.handlers:
            if handler not in before:
                package_logger.removeHandler(handler)


def test_mask_token():
    assert _mask_token("abcdefgh") == "abcd***"
    assert _mask_token("abc") == "***"
    assert _mask_token(None) == "***"
    assert _mask_token("abcdefgh", visible_chars=0) == "***"
