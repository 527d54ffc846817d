## countwatch/sinks.py

from __future__ import annotations
from datetime import date, datetime, time, timedelta
from typing import List, Optional, Sequence

from sqlalchemy import (Column, DateTime, Integer, MetaData, Table, create_engine, delete,
                        func, insert, select)
from sqlalchemy.engine import URL, Engine
from sqlalchemy.exc import SQLAlchemyError

from .config import Config
from .errors import WriteError
from .schemas import AggregatedCount, IndividualCount, WriteSummary
from .utils import logger

metadata = MetaData()

count_data = Table(
    "tblcountdata", metadata,
    Column("locationid", Integer, nullable=False),
    Column("countdate", DateTime, nullable=False),
    Column("total", Integer),
    Column("pedin", Integer),
    Column("pedout", Integer),
    Column("bikein", Integer),
    Column("bikeout", Integer),
    Column("counttime", DateTime),
)

count_header = Table(
    "tblheader", metadata,
    Column("locationid", Integer, nullable=False),
    Column("countdate", DateTime, nullable=False),
    Column("totalped", Integer),
    Column("totalbike", Integer),
    Column("total", Integer),
)


def database_url(config: Config):
    db = config.settings.database
    if db.url:
        return db.url
    # a bare host is treated by the oracle dialects as a TNS alias
    return URL.create(db.driver, username=config.username,
                      password=config.password.get_secret_value(), host=db.dsn)


def _day_bounds(day: date):
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def _count_row(c: IndividualCount) -> dict:
    return {
        "locationid": c.location_id, "countdate": c.counted_at, "total": c.total,
        "pedin": c.ped_in, "pedout": c.ped_out, "bikein": c.bike_in, "bikeout": c.bike_out,
        "counttime": c.counted_at,
    }


def _header_row(a: AggregatedCount) -> dict:
    return {
        "locationid": a.location_id, "countdate": datetime.combine(a.count_date, time.min),
        "totalped": a.total_ped, "totalbike": a.total_bike, "total": a.total,
    }


class CountsGateway:
    """Owns the engine (and its pool) for the life of the agent; one writer at a time."""

    def __init__(self, engine: Engine):
        self.engine = engine

    @classmethod
    def from_config(cls, config: Config) -> "CountsGateway":
        return cls(create_engine(database_url(config), pool_pre_ping=True))

    def create_tables(self):
        metadata.create_all(self.engine)

    def write(self, counts: Sequence[IndividualCount],
              aggregated: Sequence[AggregatedCount]) -> WriteSummary:
        """Replace every day present in `counts` with the new rows, all or nothing."""
        days = sorted({c.counted_at.date() for c in counts})
        try:
            with self.engine.begin() as conn:
                logger.info("Deleting all existing records w/ same date from tables TBLCOUNTDATA & TBLHEADER.")
                for day in days:
                    start, end = _day_bounds(day)
                    conn.execute(delete(count_data).where(count_data.c.countdate >= start,
                                                          count_data.c.countdate < end))
                    conn.execute(delete(count_header).where(count_header.c.countdate >= start,
                                                            count_header.c.countdate < end))
                logger.info("Inserting individual counts into database.")
                if counts:
                    conn.execute(insert(count_data), [_count_row(c) for c in counts])
                logger.info("Inserting aggregated counts into database.")
                if aggregated:
                    conn.execute(insert(count_header), [_header_row(a) for a in aggregated])
        except SQLAlchemyError as e:
            raise WriteError(f"Database write failed, nothing committed: {e}") from e
        return WriteSummary(dates_replaced=len(days), individual_inserted=len(counts),
                            aggregated_inserted=len(aggregated))

    def fetch_counts(self, day: Optional[date] = None) -> List[IndividualCount]:
        stmt = select(count_data).order_by(count_data.c.countdate, count_data.c.locationid)
        if day is not None:
            start, end = _day_bounds(day)
            stmt = stmt.where(count_data.c.countdate >= start, count_data.c.countdate < end)
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).mappings().all()
        return [IndividualCount(location_id=r["locationid"], counted_at=r["countdate"],
                                total=r["total"], ped_in=r["pedin"], ped_out=r["pedout"],
                                bike_in=r["bikein"], bike_out=r["bikeout"]) for r in rows]

    def fetch_daily(self) -> List[AggregatedCount]:
        stmt = select(count_header).order_by(count_header.c.locationid, count_header.c.countdate)
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).mappings().all()
        return [AggregatedCount(location_id=r["locationid"], count_date=r["countdate"].date(),
                                total_ped=r["totalped"], total_bike=r["totalbike"],
                                total=r["total"]) for r in rows]

    def table_counts(self) -> dict:
        with self.engine.connect() as conn:
            return {
                "TBLCOUNTDATA": conn.execute(select(func.count()).select_from(count_data)).scalar_one(),
                "TBLHEADER": conn.execute(select(func.count()).select_from(count_header)).scalar_one(),
            }

    def dispose(self):
        self.engine.dispose()
