"""Process-level behaviour: the two fatal exits and one clean cycle."""
import pytest

from countwatch import watcher as watcher_mod
from countwatch.watcher import EXIT_CONFIG, EXIT_LOG_SINK, run
from helpers import make_record, write_export


@pytest.fixture
def polls(monkeypatch):
    calls = []
    original = watcher_mod.Watcher.poll

    def counting_poll(self):
        calls.append(self.path)
        return original(self)

    monkeypatch.setattr(watcher_mod.Watcher, "poll", counting_poll)
    return calls


def test_unwritable_log_location_exits_silently(env, tmp_path, capsys, polls):
    env["PATH_TO_CSV_AND_LOG"] = str(tmp_path / "not-there")

    with pytest.raises(SystemExit) as exc:
        run(environ=env, max_cycles=1, sleep=lambda s: None)

    assert exc.value.code == EXIT_LOG_SINK
    captured = capsys.readouterr()
    assert captured.out == "" and captured.err == ""
    assert not (tmp_path / "not-there").exists()
    assert polls == []


def test_unset_storage_directory_exits_silently(env, capsys, polls):
    env.pop("PATH_TO_CSV_AND_LOG")

    with pytest.raises(SystemExit) as exc:
        run(environ=env, max_cycles=1, sleep=lambda s: None)

    assert exc.value.code == EXIT_LOG_SINK
    captured = capsys.readouterr()
    assert captured.out == "" and captured.err == ""


@pytest.mark.parametrize("absent", [["PASSWORD"], ["USERNAME"], ["USERNAME", "PASSWORD"]])
def test_missing_credentials_are_logged_then_exit(env, storage, polls, absent):
    for name in absent:
        env.pop(name)

    with pytest.raises(SystemExit) as exc:
        run(environ=env, max_cycles=1, sleep=lambda s: None)

    assert exc.value.code == EXIT_CONFIG
    log = (storage / "log.txt").read_text(encoding="utf-8")
    for name in ["USERNAME", "PASSWORD"]:
        assert (name in log) == (name in absent)
    assert polls == []


def test_one_cycle_imports_and_clears_the_export(env, storage, gateway, polls):
    export = write_export(storage / "export.csv", [make_record("Jan 5, 2023 3:15 PM")])

    run(environ=env, max_cycles=1, sleep=lambda s: None)

    assert polls == [export]
    assert not export.exists()
    assert len(gateway.fetch_counts()) == 20
    log = (storage / "log.txt").read_text(encoding="utf-8")
    assert "Import completed successfully." in log
    assert "Deleting CSV file." in log


@pytest.mark.parametrize("url", ["not a url", "nosuchdialect://host/db"])
def test_unusable_database_url_is_logged_then_exit(env, storage, polls, url):
    env["DATABASE_URL"] = url

    with pytest.raises(SystemExit) as exc:
        run(environ=env, max_cycles=1, sleep=lambda s: None)

    assert exc.value.code == EXIT_CONFIG
    assert "Unable to open database gateway" in (storage / "log.txt").read_text(encoding="utf-8")
    assert polls == []
