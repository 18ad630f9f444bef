import json
import logging

import pytest
from pythonjsonlogger.json import JsonFormatter

from qaledger.core.config import Settings
from qaledger.core.logging_config import configure_logging


@pytest.fixture
def root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers = handlers
    root.setLevel(level)


def make_record():
    return logging.LogRecord("qaledger.test", logging.WARNING, __file__, 1, "Answer %s endorsed", ("A1",), None)


def test_json_format_emits_one_object_per_record(root_logger):
    configure_logging(Settings(LOG_FORMAT="json", LOG_LEVEL="WARNING"))
    (handler,) = root_logger.handlers
    assert isinstance(handler.formatter, JsonFormatter)
    assert root_logger.level == logging.WARNING

    line = json.loads(handler.formatter.format(make_record()))
    assert line["message"] == "Answer A1 endorsed"
    assert line["levelname"] == "WARNING"
    assert line["name"] == "qaledger.test"


def test_text_format(root_logger):
    configure_logging(Settings(LOG_FORMAT="text"))
    (handler,) = root_logger.handlers
    assert " - qaledger.test - WARNING - Answer A1 endorsed" in handler.formatter.format(make_record())
