"""Shared fixtures: a temp storage directory and a temp-file SQLite gateway.

Export builders live in helpers.py.
"""
import pytest
from sqlalchemy import create_engine

from countwatch.sinks import CountsGateway
from countwatch.utils import close_log_sink, logger, open_log_sink


@pytest.fixture(autouse=True)
def _reset_log_sink():
    yield
    close_log_sink()


@pytest.fixture
def storage(tmp_path):
    d = tmp_path / "drop"
    d.mkdir()
    return d


@pytest.fixture
def export_path(storage):
    return storage / "export.csv"


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'counts.sqlite'}"


@pytest.fixture
def gateway(db_url):
    engine = create_engine(db_url, connect_args={"check_same_thread": False})
    gw = CountsGateway(engine)
    gw.create_tables()
    yield gw
    gw.dispose()


@pytest.fixture
def env(storage, db_url):
    return {
        "USERNAME": "counts_loader",
        "PASSWORD": "s3cret",
        "PATH_TO_CSV_AND_LOG": str(storage),
        "DATABASE_URL": db_url,
    }


class BrokenStream:
    """A log destination that has gone away (disk full, file yanked)."""

    def write(self, text):
        raise OSError(28, "No space left on device")

    def flush(self):
        pass


@pytest.fixture
def broken_log(storage):
    open_log_sink(storage / "log.txt")
    handlers = list(logger.handlers)
    streams = [h.stream for h in handlers]
    for h in handlers:
        h.stream = BrokenStream()
    yield logger
    for h, s in zip(handlers, streams):
        h.stream = s
