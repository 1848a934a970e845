from __future__ import annotations

import json
import logging

from rich.logging import RichHandler

from beaconanchor.logging_utils import JSONFormatter, setup_logging


def _record(**extra) -> logging.LogRecord:
    rec = logging.LogRecord("beaconanchor.test", logging.INFO, __file__, 1, "anchored block %d", (150,), None)
    for k, v in extra.items():
        setattr(rec, k, v)
    return rec


def test_json_formatter_emits_structured_fields():
    line = JSONFormatter().format(_record(event="submission_succeeded", boundary=150, tx_hash="0xab"))
    data = json.loads(line)
    assert data["msg"] == "anchored block 150"
    assert data["level"] == "INFO"
    assert data["event"] == "submission_succeeded"
    assert data["boundary"] == 150
    assert data["tx_hash"] == "0xab"
    assert "height" not in data


def test_setup_logging_installs_one_handler():
    root = logging.getLogger()
    saved = (list(root.handlers), root.level)
    try:
        h = setup_logging("debug", "json")
        assert root.handlers == [h]
        assert isinstance(h.formatter, JSONFormatter)
        assert root.level == logging.DEBUG
        h2 = setup_logging("INFO", "rich")
        assert root.handlers == [h2]
        assert isinstance(h2, RichHandler)
    finally:
        root.handlers[:] = saved[0]
        root.setLevel(saved[1])
