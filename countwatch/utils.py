## countwatch/utils.py

from __future__ import annotations
import logging, os, time
from functools import wraps
from pathlib import Path
from typing import Any, Callable, Union

from .errors import LogSinkError

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

logger = logging.getLogger("countwatch")


class Retryable(Exception):
    pass


class _AppendHandler(logging.FileHandler):
    """File handler whose emit failures are dropped instead of reported."""

    def handleError(self, record):
        pass


class _ConsoleHandler(logging.StreamHandler):
    def handleError(self, record):
        pass


def _resolve_level(level_name: str) -> int:
    return getattr(logging, level_name.upper(), logging.INFO)


def open_log_sink(path: Union[str, Path]) -> logging.Logger:
    """Attach the append-only log file (plus console) to the agent logger.

    Raises LogSinkError if the file cannot be opened; nothing is written
    anywhere in that case.
    """
    try:
        file_handler = _AppendHandler(str(path), mode="a", encoding="utf-8")
    except OSError as e:
        raise LogSinkError(f"could not open log file {path}: {e}") from e

    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()

    formatter = logging.Formatter(LOG_FORMAT)
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(formatter)
    console = _ConsoleHandler()
    console.setLevel(_resolve_level(os.getenv("LOG_LEVEL", "INFO")))
    console.setFormatter(formatter)

    logger.addHandler(file_handler)
    logger.addHandler(console)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    return logger


def close_log_sink():
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()


def retry(times: int = 3, delay: float = 1.0):
    def deco(fn: Callable[..., Any]):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            last = None
            for i in range(times):
                try:
                    return fn(*args, **kwargs)
                except Retryable as e:
                    last = e
                    logger.warning(f"Retry {i+1}/{times} for {fn.__name__}: {e}")
                    if i + 1 < times:
                        time.sleep(delay * (2 ** i))
            raise last if last else Exception("Retry failed")
        return wrapper
    return deco


def load_yaml(path: Union[str, Path]) -> dict:
    import yaml
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}
