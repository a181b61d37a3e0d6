import logging

import pytest

from qr_checkout.logs import LOGGER_NAME, configure_logging


@pytest.fixture
def clean_logger():
    logger = logging.getLogger(LOGGER_NAME)
    saved = list(logger.handlers)
    logger.handlers = []
    yield logger
    for handler in logger.handlers:
        handler.close()
    logger.handlers = saved


def test_configure_logging_writes_to_file_once(tmp_path, clean_logger):
    log_file = tmp_path / "logs" / "checkout.log"

    configure_logging(str(log_file))
    configure_logging(str(log_file))
    logging.getLogger("qr_checkout.polling").info("polling_started payment_code=PAY1")
    for handler in clean_logger.handlers:
        handler.flush()

    assert len(clean_logger.handlers) == 1
    assert "polling_started payment_code=PAY1" in log_file.read_text(encoding="utf-8")
