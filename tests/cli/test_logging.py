import logging
import sys
from collections.abc import Iterator

import pytest

from draft_room.cli._logging import LOG_FORMAT, configure_logging


@pytest.fixture(autouse=True)
def _restore_root_logger() -> Iterator[None]:
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.setLevel(logging.WARNING)
    logging.getLogger("werkzeug").setLevel(logging.NOTSET)


class TestConfigureLogging:
    def test_levels(self) -> None:
        configure_logging()
        assert logging.getLogger().level == logging.INFO
        configure_logging(verbose=True)
        assert logging.getLogger().level == logging.DEBUG

    def test_request_log_quiet_unless_verbose(self) -> None:
        configure_logging()
        assert logging.getLogger("werkzeug").level == logging.WARNING
        configure_logging(verbose=True)
        assert logging.getLogger("werkzeug").level == logging.NOTSET

    def test_single_stderr_handler_after_repeated_calls(self) -> None:
        configure_logging()
        configure_logging()
        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0], logging.StreamHandler)
        assert handlers[0].stream is sys.stderr

    def test_records_carry_thread_name(self) -> None:
        configure_logging()
        formatter = logging.getLogger().handlers[0].formatter
        assert formatter is not None
        record = logging.LogRecord("draft_room.services", logging.WARNING, __file__, 1, "Lost race", None, None)
        record.threadName = "pick-worker-2"
        line = formatter.format(record)
        assert "[pick-worker-2] draft_room.services: Lost race" in line
        assert "%(threadName)s" in LOG_FORMAT
