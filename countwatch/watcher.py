## countwatch/watcher.py

from __future__ import annotations
import os, stat, time
from datetime import datetime
from pathlib import Path
from typing import Callable, Mapping, Optional, Tuple, Union

from dotenv import load_dotenv
from sqlalchemy.exc import SQLAlchemyError

from .config import LOG_FILE_NAME, Config, load_config, resolve_settings_path, storage_dir
from .errors import ConfigError, LogSinkError
from .pipeline import ImportWorker
from .schemas import WatchEvent
from .sinks import CountsGateway
from .supervisor import Supervisor
from .utils import logger, open_log_sink

EXIT_LOG_SINK = 74
EXIT_CONFIG = 78


class Watcher:
    """Polls one path and reports each arrival of a file there exactly once."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._seen: Optional[Tuple[int, int, int]] = None

    def poll(self) -> Optional[WatchEvent]:
        try:
            st = os.stat(self.path)
        except FileNotFoundError:
            self._seen = None
            logger.debug("CSV file not located to import data from.")
            return None
        except OSError as e:
            logger.warning(f"Could not stat {self.path}: {e}")
            return None
        if not stat.S_ISREG(st.st_mode):
            return None

        signature = (st.st_ino, st.st_size, st.st_mtime_ns)
        if signature == self._seen:
            return None
        self._seen = signature
        return WatchEvent(path=self.path, detected_at=datetime.now(), signature=signature)

    def forget(self):
        """Re-arm after the current file was resolved."""
        self._seen = None


def bootstrap(environ: Optional[Mapping[str, str]] = None,
              settings_path: Union[str, Path, None] = None) -> Config:
    """Open the log sink, then load configuration. Order matters: see the exit codes."""
    store = storage_dir(environ)
    if store is None:
        raise LogSinkError("no storage directory configured for the log file")
    open_log_sink(store / LOG_FILE_NAME)
    try:
        return load_config(environ, settings_path)
    except ConfigError as e:
        logger.error(f"Unable to load configuration: {e}")
        raise


def run(settings_path: Union[str, Path, None] = None, *,
        environ: Optional[Mapping[str, str]] = None,
        max_cycles: Optional[int] = None,
        sleep: Callable[[float], None] = time.sleep):
    try:
        config = bootstrap(environ, settings_path)
    except LogSinkError:
        raise SystemExit(EXIT_LOG_SINK)
    except ConfigError:
        raise SystemExit(EXIT_CONFIG)

    settings = config.settings
    try:
        gateway = CountsGateway.from_config(config)
    except (SQLAlchemyError, ImportError) as e:
        logger.error(f"Unable to open database gateway: {e}")
        raise SystemExit(EXIT_CONFIG)
    supervisor = Supervisor(Watcher(config.csv_path), ImportWorker(gateway),
                            poll_seconds=settings.watcher.poll_seconds,
                            alerts=settings.alerts.enabled, sleep=sleep)
    logger.info(f"Watching {config.csv_path} for new exports...")
    try:
        supervisor.run(max_cycles)
    finally:
        gateway.dispose()


def main():
    # variables already in the environment win over .env
    load_dotenv()
    try:
        run(resolve_settings_path())
    except KeyboardInterrupt:
        logger.info("Stopped by signal.")


if __name__ == "__main__":
    main()
