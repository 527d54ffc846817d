from __future__ import annotations
import os, sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from sqlalchemy.exc import SQLAlchemyError

from .config import LOG_FILE_NAME, Config, load_config, resolve_settings_path, storage_dir
from .errors import ConfigError
from .sinks import CountsGateway


def human(n: float) -> str:
    return f"{n:,.0f}"


def pending_export(path: Path) -> Optional[str]:
    try:
        st = path.stat()
    except FileNotFoundError:
        return None
    age = datetime.now() - datetime.fromtimestamp(st.st_mtime)
    return f"{human(st.st_size)} bytes, waiting {int(age.total_seconds())}s"


def table_counts(config: Config) -> dict:
    gateway = CountsGateway.from_config(config)
    try:
        return gateway.table_counts()
    finally:
        gateway.dispose()


def tail(path: Path, lines: int = 20) -> list[str]:
    if not path.exists():
        return ["<log file not found>"]
    with open(path, "rb") as f:
        f.seek(0, os.SEEK_END)
        size = f.tell()
        block = 1024
        data = b""
        while size > 0 and data.count(b"\n") <= lines:
            step = min(block, size)
            f.seek(size - step)
            data = f.read(step) + data
            size -= step
    txt = data.decode("utf-8", errors="replace").splitlines()[-lines:]
    return txt if txt else ["<empty>"]


def report(environ=None, settings_path=None, out=sys.stdout):
    def say(line=""):
        print(line, file=out)

    say("=" * 70)
    say("Count import agent — Health Report")
    say(f"As of: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    say("=" * 70)

    store = storage_dir(environ)
    if store is None:
        say("\nStorage directory not configured (PATH_TO_CSV_AND_LOG).")
        return 1

    try:
        config = load_config(environ, settings_path)
    except ConfigError as e:
        config = None
        say(f"\nConfiguration: {e}")

    csv_path = config.csv_path if config else store / "export.csv"
    pending = pending_export(csv_path)
    say(f"\nWatched file: {csv_path}")
    say(f"  Pending export: {pending or 'none'}")

    if config is not None:
        try:
            counts = table_counts(config)
        except SQLAlchemyError as e:
            say(f"\nDatabase: unreachable ({e.__class__.__name__}: {e})")
        else:
            for table, n in counts.items():
                say(f"\n{table} rows: {human(n)}")

    log_path = store / LOG_FILE_NAME
    say(f"\nLog tail: {log_path}")
    for line in tail(log_path, lines=20):
        say("  " + line)
    say("\nDone.\n")
    return 0


def main():
    load_dotenv()
    sys.exit(report(settings_path=resolve_settings_path()))


if __name__ == "__main__":
    main()
