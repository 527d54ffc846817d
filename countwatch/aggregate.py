## countwatch/aggregate.py

from __future__ import annotations
import pandas as pd
from typing import List, Optional, Sequence

from .schemas import AggregatedCount, IndividualCount

COUNT_COLUMNS = ("total", "ped_in", "ped_out", "bike_in", "bike_out")


def _opt(v) -> Optional[int]:
    return None if pd.isna(v) else int(v)


def to_frame(counts: Sequence[IndividualCount]) -> pd.DataFrame:
    df = pd.DataFrame([c.model_dump() for c in counts],
                      columns=["location_id", "counted_at", *COUNT_COLUMNS])
    for col in COUNT_COLUMNS:
        df[col] = df[col].astype("Int64")
    df["count_date"] = pd.to_datetime(df["counted_at"]).dt.normalize()
    return df


def daily_totals(counts: Sequence[IndividualCount]) -> List[AggregatedCount]:
    """Sum each location's counts per calendar day.

    A total stays NULL only when every value feeding it is NULL.
    """
    if not counts:
        return []
    df = to_frame(counts)
    sums = df.groupby(["location_id", "count_date"], sort=True)[list(COUNT_COLUMNS)].sum(min_count=1)
    sums["total_ped"] = sums["ped_in"].add(sums["ped_out"], fill_value=0)
    sums["total_bike"] = sums["bike_in"].add(sums["bike_out"], fill_value=0)

    out = []
    for (location_id, count_date), row in sums.iterrows():
        out.append(AggregatedCount(
            location_id=int(location_id),
            count_date=count_date.date(),
            total_ped=_opt(row["total_ped"]),
            total_bike=_opt(row["total_bike"]),
            total=_opt(row["total"]),
        ))
    return out
