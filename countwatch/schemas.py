## countwatch/schemas.py

from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field
from typing import Annotated, List, Literal, Optional, Tuple, Union
from datetime import date, datetime
from pathlib import Path


class IndividualCount(BaseModel):
    """One location's counts for one export timestamp (a TBLCOUNTDATA row)."""
    model_config = ConfigDict(frozen=True)

    location_id: int
    counted_at: datetime
    total: Optional[int] = None
    ped_in: Optional[int] = None
    ped_out: Optional[int] = None
    bike_in: Optional[int] = None
    bike_out: Optional[int] = None


class AggregatedCount(BaseModel):
    """Daily totals per location (a TBLHEADER row)."""
    model_config = ConfigDict(frozen=True)

    location_id: int
    count_date: date
    total_ped: Optional[int] = None
    total_bike: Optional[int] = None
    total: Optional[int] = None


class ParsedExport(BaseModel):
    records: int = Field(description="CSV data records in the file")
    counts: List[IndividualCount]

    @property
    def dates(self) -> List[date]:
        return sorted({c.counted_at.date() for c in self.counts})


class WriteSummary(BaseModel):
    dates_replaced: int
    individual_inserted: int
    aggregated_inserted: int


class WatchEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: Path
    detected_at: datetime
    signature: Tuple[int, int, int] = Field(description="(inode, size, mtime_ns) at detection")


class Imported(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["imported"] = "imported"
    path: Path
    count: int
    individual_counts: int = 0
    aggregated_counts: int = 0
    dates_replaced: int = 0
    elapsed_seconds: float = 0.0


class Rejected(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["rejected"] = "rejected"
    path: Path
    stage: Literal["ingest", "write"]
    reason: str


class WorkerFailure(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["worker_failure"] = "worker_failure"
    path: Path
    cause: str
    detail: str = ""


ImportOutcome = Annotated[Union[Imported, Rejected, WorkerFailure], Field(discriminator="kind")]
