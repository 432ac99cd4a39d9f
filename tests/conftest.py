import logging

import pytest

from pico_inject.constants import LOGGER

log_capture: list[str] = []


class ListLogHandler(logging.Handler):
    def emit(self, record):
        log_capture.append(self.format(record))


@pytest.fixture(autouse=True)
def reset_logging_capture():
    log_capture.clear()


@pytest.fixture
def captured_logs():
    handler = ListLogHandler()
    previous = LOGGER.level
    LOGGER.addHandler(handler)
    LOGGER.setLevel(logging.DEBUG)
    try:
        yield log_capture
    finally:
        LOGGER.removeHandler(handler)
        LOGGER.setLevel(previous)
