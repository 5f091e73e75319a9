import logging

from app.core.logging import LOG_FORMAT, setup_logging


def test_setup_logging_does_not_stack_handlers() -> None:
    setup_logging("DEBUG")
    logger = setup_logging("WARNING")

    assert logger.name == "app"
    assert logger.level == logging.WARNING
    assert len(logger.handlers) == 1
    assert logger.handlers[0].formatter._fmt == LOG_FORMAT


def test_setup_logging_writes_to_file(tmp_path) -> None:
    log_file = tmp_path / "logs" / "app.log"

    logger = setup_logging("INFO", str(log_file))
    logging.getLogger("app.api.v1.auto_posting.service").info("batch created")
    for handler in logger.handlers:
        handler.flush()

    assert len(logger.handlers) == 2
    assert "batch created" in log_file.read_text()
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()
