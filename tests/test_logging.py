import logging

import pytest

from nearneeds.config.settings import get_logging_config
from nearneeds.core.logging import configure_logging


@pytest.fixture(autouse=True)
def restore_levels():
    names = ["nearneeds", "httpx", "httpcore"]
    saved = {name: logging.getLogger(name).level for name in names}
    yield
    for name, level in saved.items():
        logging.getLogger(name).setLevel(level)


def test_package_level_comes_from_settings():
    assert configure_logging() == "INFO"

    assert logging.getLogger("nearneeds").level == logging.INFO
    assert logging.getLogger("httpx").level == logging.WARNING
    assert logging.getLogger("httpcore").level == logging.WARNING


def test_explicit_level_only_affects_package_loggers():
    assert configure_logging("debug") == "DEBUG"

    assert logging.getLogger("nearneeds.feed.store").getEffectiveLevel() == logging.DEBUG
    assert logging.getLogger("httpx").level == logging.WARNING


def test_packaged_config_is_not_mutated():
    configure_logging("debug")

    config = get_logging_config()
    assert "nearneeds" not in config.get("loggers", {})
    assert "level" not in config["handlers"]["console"]
