## countwatch/supervisor.py

from __future__ import annotations
import os, time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional

from .alerts import notify_failure
from .pipeline import ImportWorker, Stage, run_isolated
from .schemas import ImportOutcome, Imported, Rejected, WatchEvent
from .utils import logger


class Supervisor:
    """Owns the watch loop and the single decision point for every outcome.

    Every detected file goes Idle -> Detected -> Ingesting -> Writing ->
    Resolved -> Idle; nothing raised while importing one file gets past
    `step`.
    """

    def __init__(self, watcher, worker: ImportWorker, *, poll_seconds: float = 15.0,
                 alerts: bool = True, sleep: Callable[[float], None] = time.sleep):
        self.watcher = watcher
        self.worker = worker
        self.poll_seconds = poll_seconds
        self.alerts = alerts
        self._sleep = sleep
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="import-worker")
        self._pending: Optional[WatchEvent] = None
        self.state = Stage.IDLE

    @property
    def pending(self) -> Optional[WatchEvent]:
        return self._pending

    def _transition(self, stage: Stage):
        logger.debug(f"{self.state.value} -> {stage.value}")
        self.state = stage

    def step(self) -> Optional[ImportOutcome]:
        """One poll cycle. Returns the outcome if a file was handled."""
        event = self.watcher.poll()
        if event is None:
            return None

        self._pending = event
        self._transition(Stage.DETECTED)
        outcome = run_isolated(self._executor, self.worker, event, self._transition)
        self._transition(Stage.RESOLVED)
        try:
            self._resolve(outcome)
        finally:
            try:
                self._remove(event)
            finally:
                self._pending = None
                self._transition(Stage.IDLE)
        return outcome

    def _resolve(self, outcome: ImportOutcome):
        if isinstance(outcome, Imported):
            logger.info("Import completed successfully.")
            logger.info(f"{outcome.count} records read from {outcome.path}.")
            logger.info(f"Records for {outcome.dates_replaced} dates deleted.")
            logger.info(f"{outcome.individual_counts} individual counts inserted.")
            logger.info(f"{outcome.aggregated_counts} aggregated counts inserted.")
            logger.info(f"Elapsed time: {outcome.elapsed_seconds:.3f}s")
            return
        if isinstance(outcome, Rejected):
            logger.error(f"Rejected {outcome.path} ({outcome.stage}): {outcome.reason}")
            message = outcome.reason
        else:
            logger.error(f"Import worker failed on {outcome.path}: {outcome.cause}\n{outcome.detail}")
            message = outcome.cause
        if self.alerts:
            try:
                notify_failure(outcome.path, message)
            except Exception as e:
                logger.warning(f"Failure alert for {outcome.path} was not delivered: {e}")

    def _remove(self, event: WatchEvent):
        logger.info("Deleting CSV file.")
        try:
            st = os.stat(event.path)
        except FileNotFoundError:
            self.watcher.forget()
            return
        except OSError as e:
            logger.error(f"Could not inspect {event.path} before deleting it: {e}")
            return
        if (st.st_ino, st.st_size, st.st_mtime_ns) != event.signature:
            # a new delivery replaced the file mid-import; leave it for the next poll
            logger.warning(f"{event.path} changed during import; keeping it as a new arrival.")
            self.watcher.forget()
            return
        try:
            os.remove(event.path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(f"Could not delete {event.path}: {e}")
            return
        self.watcher.forget()

    def run(self, max_cycles: Optional[int] = None):
        cycles = 0
        try:
            while max_cycles is None or cycles < max_cycles:
                self.step()
                cycles += 1
                self._sleep(self.poll_seconds)
        finally:
            self.close()

    def close(self):
        self._executor.shutdown(wait=True)
