"""Tests for the command line log setup."""
import logging
import threading

import pytest

from emme.logging_config import setup_logging


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    logger = logging.getLogger("emme")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


class TestSetupLogging:

    def test_levels(self):
        assert setup_logging().level == logging.INFO
        assert setup_logging(verbose=True).level == logging.DEBUG

    def test_repeated_calls_replace_handlers(self):
        first = setup_logging()
        old = list(first.handlers)
        logger = setup_logging()
        assert len(logger.handlers) == 1
        assert logger.handlers[0] not in old

    def test_log_file_records_thread_name(self, tmp_path):
        path = tmp_path / "run.log"
        logger = setup_logging(log_file=str(path))
        assert len(logger.handlers) == 2

        worker = threading.Thread(target=lambda: logging.getLogger("emme.solver").info("from worker"),
                                  name="emme-worker-0")
        worker.start()
        worker.join()
        setup_logging()

        text = path.read_text(encoding="utf-8")
        assert "[emme-worker-0] emme.solver: from worker" in text

    def test_previous_file_handler_is_closed(self, tmp_path):
        logger = setup_logging(log_file=str(tmp_path / "run.log"))
        file_handler = next(h for h in logger.handlers if isinstance(h, logging.FileHandler))
        setup_logging()
        assert file_handler.stream is None
