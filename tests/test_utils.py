import logging

import pytest

from countwatch.errors import LogSinkError
from countwatch.utils import Retryable, logger, open_log_sink, retry


def test_log_sink_appends(storage):
    log = storage / "log.txt"
    log.write_text("earlier run\n", encoding="utf-8")

    open_log_sink(log)
    logger.info("second run")

    text = log.read_text(encoding="utf-8")
    assert text.startswith("earlier run\n")
    assert "| INFO | countwatch | second run" in text


def test_unopenable_log_sink(tmp_path):
    with pytest.raises(LogSinkError):
        open_log_sink(tmp_path / "missing" / "log.txt")
    assert logger.handlers == []


def test_writes_to_a_failed_sink_are_dropped(broken_log, capsys):
    broken_log.info("Import completed successfully.")
    broken_log.error("Rejected /drop/export.csv (ingest): Header not found.")

    captured = capsys.readouterr()
    assert "Logging error" not in captured.err


def test_debug_stays_out_of_the_log_file(storage, monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    open_log_sink(storage / "log.txt")
    logger.debug("Idle -> Detected")

    assert "Idle -> Detected" not in (storage / "log.txt").read_text(encoding="utf-8")
    assert any(h.level == logging.DEBUG for h in logger.handlers)


def test_retry_gives_up_after_last_attempt(monkeypatch):
    sleeps = []
    monkeypatch.setattr("countwatch.utils.time.sleep", sleeps.append)
    calls = []

    @retry(times=3, delay=0.5)
    def flaky():
        calls.append(1)
        raise Retryable("still down")

    with pytest.raises(Retryable):
        flaky()
    assert len(calls) == 3
    assert sleeps == [0.5, 1.0]
