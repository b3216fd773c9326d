import logging

from app.core.logging import LOGGER_NAME, get_logger, logger


def test_module_loggers_share_the_stdout_handler() -> None:
    child = get_logger("uploads")

    assert child.name == "family_tree_api.uploads"
    assert child.parent is logger
    assert logger.name == LOGGER_NAME
    handlers = [h for h in logger.handlers if isinstance(h, logging.StreamHandler)]
    assert len(handlers) == 1
    assert "%(levelname)s" in handlers[0].formatter._fmt
