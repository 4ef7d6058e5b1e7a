import json
import logging

from modules.ez_p2p.logger import JsonFormatter, parse_level, setup_logger


def test_json_formatter_merges_extra_fields():
    record = logging.LogRecord("ez_multisig", logging.INFO, __file__, 1, "message_sent", None, None)
    record.extra = {"type": "MultisigSpend", "id": 7, "pub_key": b"\x02\x01"}

    line = json.loads(JsonFormatter().format(record))

    assert line["msg"] == "message_sent"
    assert line["level"] == "INFO"
    assert line["logger"] == "ez_multisig"
    assert line["type"] == "MultisigSpend"
    assert line["id"] == 7
    assert "pub_key" in line


def test_parse_level_accepts_names_and_numbers():
    assert parse_level("debug") == logging.DEBUG
    assert parse_level(logging.WARNING) == logging.WARNING
    assert parse_level("no-such-level") == logging.INFO


def test_setup_logger_is_idempotent():
    first = setup_logger("ez_multisig_test_logger", "DEBUG")
    second = setup_logger("ez_multisig_test_logger", "ERROR")

    assert first is second
    assert len(first.handlers) == 1
    assert first.level == logging.DEBUG
    assert first.propagate is False
