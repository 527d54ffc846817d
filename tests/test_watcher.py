import os

from countwatch.watcher import Watcher
from helpers import make_record, write_export


def test_nothing_to_report_without_a_file(export_path):
    assert Watcher(export_path).poll() is None


def test_one_event_per_arrival(export_path):
    w = Watcher(export_path)
    write_export(export_path, [make_record("Jan 5, 2023 3:15 PM")])

    event = w.poll()
    assert event is not None
    assert event.path == export_path
    assert w.poll() is None
    assert w.poll() is None


def test_rearms_after_file_disappears(export_path):
    w = Watcher(export_path)
    write_export(export_path, [make_record("Jan 5, 2023 3:15 PM")])
    assert w.poll() is not None

    os.remove(export_path)
    assert w.poll() is None
    write_export(export_path, [make_record("Jan 5, 2023 3:15 PM")])

    assert w.poll() is not None


def test_forget_rearms_for_an_identical_redelivery(export_path):
    w = Watcher(export_path)
    write_export(export_path, [make_record("Jan 5, 2023 3:15 PM")])
    first = w.poll()

    w.forget()
    second = w.poll()

    assert second is not None
    assert second.signature == first.signature


def test_rewritten_file_is_a_new_arrival(export_path):
    w = Watcher(export_path)
    write_export(export_path, [make_record("Jan 5, 2023 3:15 PM")])
    assert w.poll() is not None

    write_export(export_path, [make_record("Jan 5, 2023 3:15 PM"),
                               make_record("Jan 5, 2023 3:30 PM")])

    assert w.poll() is not None


def test_directory_at_target_path_is_ignored(export_path):
    export_path.mkdir()

    assert Watcher(export_path).poll() is None
