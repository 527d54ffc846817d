## countwatch/pipeline.py

from __future__ import annotations
import time, traceback
from concurrent.futures import Executor
from enum import Enum
from typing import Callable, Optional

from .aggregate import daily_totals
from .errors import IngestError, WriteError
from .ingest import read_counts
from .schemas import ImportOutcome, Imported, Rejected, WatchEvent, WorkerFailure
from .sinks import CountsGateway
from .utils import logger


class Stage(str, Enum):
    IDLE = "idle"
    DETECTED = "detected"
    INGESTING = "ingesting"
    WRITING = "writing"
    RESOLVED = "resolved"


class ImportWorker:
    """Drives one detected file through ingest -> aggregate -> database.

    Expected failures come back as Rejected. Anything else is left to
    propagate so the supervising side can turn it into a WorkerFailure.
    """

    def __init__(self, gateway: CountsGateway, reader: Callable = read_counts):
        self.gateway = gateway
        self.reader = reader

    def run(self, event: WatchEvent,
            on_stage: Optional[Callable[[Stage], None]] = None) -> ImportOutcome:
        notify = on_stage or (lambda stage: None)
        start = time.monotonic()
        logger.info(f"Import started: {event.path}")

        notify(Stage.INGESTING)
        logger.info("Extracting counts from CSV file.")
        try:
            parsed = self.reader(event.path)
        except IngestError as e:
            return Rejected(path=event.path, stage="ingest", reason=str(e))
        aggregated = daily_totals(parsed.counts)

        notify(Stage.WRITING)
        try:
            summary = self.gateway.write(parsed.counts, aggregated)
        except WriteError as e:
            return Rejected(path=event.path, stage="write", reason=str(e))

        return Imported(
            path=event.path,
            count=parsed.records,
            individual_counts=summary.individual_inserted,
            aggregated_counts=summary.aggregated_inserted,
            dates_replaced=summary.dates_replaced,
            elapsed_seconds=time.monotonic() - start,
        )


def run_isolated(executor: Executor, worker: ImportWorker, event: WatchEvent,
                 on_stage: Optional[Callable[[Stage], None]] = None) -> ImportOutcome:
    """Run the worker on `executor` and wait; a crash becomes a WorkerFailure value."""
    future = executor.submit(worker.run, event, on_stage)
    try:
        return future.result()
    except (Exception, SystemExit) as e:
        detail = "".join(traceback.format_exception(type(e), e, e.__traceback__))
        return WorkerFailure(path=event.path, cause=f"{type(e).__name__}: {e}", detail=detail)
