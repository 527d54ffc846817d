## countwatch/ingest.py

from __future__ import annotations
import csv, re
from datetime import datetime
from pathlib import Path
from typing import List, NamedTuple, Optional, Sequence, Union

import pandas as pd

from .errors import CountShapeError, IngestError
from .schemas import IndividualCount, ParsedExport

TIME_FORMAT = "%b %d, %Y %I:%M %p"
COUNT_PATTERN = re.compile(r"[0-9]+")

EXPECTED_HEADER = [
    "Time",
    "Bartram's Garden",
    "Bartram's Garden Pedestrians NB - Bartram's Garden",
    "Bartram's Garden Pedestrians SB - Bartram's Garden",
    "Bartram's Garden Cyclists NB - Bartram's Garden",
    "Bartram's Garden Cyclists SB - Bartram's Garden",
    "Chester Valley Trail - East Whiteland Twp",
    "Chester Valley Trail - East Whiteland Twp CVT - EB - Pedestrian",
    "Chester Valley Trail - East Whiteland Twp CVT - WB - Pedestrian",
    "Chester Valley Trail - East Whiteland Twp CVT - EB - Bicycle",
    "Chester Valley Trail - East Whiteland Twp CVT - WB - Bicycle",
    "Cooper River Trail",
    "Cooper River Trail - EB Pedestrian",
    "Cooper River Trail - WB Pedestrian",
    "Cooper River Trail - EB Bicycle",
    "Cooper River Trail - WB Bicycle",
    "Cynwyd Heritage Trail",
    "Cynwyd Heritage Trail Pedestrian IN",
    "Cynwyd Heritage Trail Pedestrian OUT",
    "Cynwyd Heritage Trail CHT - WB - Bicycle",
    "Cynwyd Heritage Trail CHT - EB - Bicycle",
    "Darby Creek Trail",
    "Darby Creek Trail - Pedestrians - SB",
    "Darby Creek Trail - Pedestrians - NB",
    "Darby Creek Trail - Bicycle - SB",
    "Darby Creek Trail - Bicycle - NB",
    "Kelly Dr - Schuylkill River Trail",
    "Kelly Dr - Schuylkill River Trail Kelly Drive - Pedestrians - NB",
    "Kelly Dr - Schuylkill River Trail Kelly Drive - Pedestrians - SB",
    "Kelly Dr - Schuylkill River Trail Kelly Drive - Bicycle - NB",
    "Kelly Dr - Schuylkill River Trail Kelly Drive - Bicycle - SB",
    "Lawrence - Hopewell Trail",
    "Lawrence - Hopewell Trail LHT - Pedestrian - NB",
    "Lawrence - Hopewell Trail LHT - Pedestrian - SB",
    "Lawrence - Hopewell Trail LHT - Bicycle - NB",
    "Lawrence - Hopewell Trail LHT - Bicycle - SB",
    "Monroe Twp",
    "Monroe Twp Pedestrian IN",
    "Monroe Twp Pedestrian OUT",
    "Monroe Twp Monroe - Bicycle - EB",
    "Monroe Twp Monroe - Bicycle - WB",
    "Pawlings Rd - Schuylkill River Trail",
    "Pawlings Rd - Schuylkill River Trail Pawlings Rd - WB Pedestrian",
    "Pawlings Rd - Schuylkill River Trail Pawlings Rd - EB Pedestrian",
    "Pawlings Rd - Schuylkill River Trail Pawlings Rd - WB - Bicycle",
    "Pawlings Rd - Schuylkill River Trail Pawlings Rd - EB - Bicycle",
    "Pine St",
    "Pine St Pedestrian IN",  # misnamed and always empty, only the total is used
    "Pine St Pedestrian OUT",
    "Port Richmond",
    "Port Richmond - WB - Pedestrian",
    "Port Richmond - EB - Pedestrian",
    "Port Richmond - WB - Bicycle",
    "Port Richmond - EB - Bicycle",
    "Schuylkill Banks",
    "Schuylkill Banks - Pedestrian - NB",
    "Schuylkill Banks - Pedestrian - SB",
    "Schuylkill Banks - Bicycle - NB",
    "Schuylkill Banks - Bicycle - SB",
    "Spring Mill Station",
    "Spring Mill Station Pedestrians EB - To Philadelphia",
    "Spring Mill Station Pedestrians WB - To Conshohocken",
    "Spring Mill Station Cyclists EB - To Philadelphia",
    "Spring Mill Station Cyclists WB - To Conshohocken",
    "Spruce St",
    "Spruce St Pedestrian IN",  # misnamed and always empty, only the total is used
    "Spruce St Pedestrian OUT",
    "Tinicum Park - D&L Trail",
    "Tinicum Park - D&L Trail Hugh Moore Park - D&L Trail Pedestrians Wilkes-Barre (Bethlehem)",
    "Tinicum Park - D&L Trail Pedestrians Bristol (New Hope)",
    "Tinicum Park - D&L Trail Hugh Moore Park - D&L Trail Cyclists Wilkes-Barre (Bethlehem)",
    "Tinicum Park - D&L Trail Cyclists Bristol (New Hope)",
    "Tullytown",
    "Tullytown Pedestrians NB - Towards Trenton - IN",
    "Tullytown Pedestrians SB - Towards Tullytown - OUT",
    "Tullytown Cyclists NB - Towards Trenton - IN",
    "Tullytown Cyclists SB - Towards Tullytown - OUT",
    "US 202 Parkway Trail",
    "US 202 Parkway Trail US 202 Parkway - SB - Pedestrian",
    "US 202 Parkway Trail US 202 Parkway - NB - Pedestrian",
    "US 202 Parkway Trail US 202 Parkway - SB - Bicycle",
    "US 202 Parkway Trail US 202 Parkway - NB - Bicycle",
    "Washington Crossing",
    "Washington Crossing Pedestrians NB - To New Hope - IN",
    "Washington Crossing Pedestrians SB - To Yardley - OUT",
    "Washington Crossing Cyclists NB - To New Hope - IN",
    "Washington Crossing Cyclists SB - To Yardley - OUT",
    "Waterfront Display",
    "Waterfront Display Pedestrian IN",
    "Waterfront Display Pedestrian OUT",
    "Waterfront Display Cyclist IN",
    "Waterfront Display Cyclist OUT",
    "Wissahickon Trail",
    "Wissahickon Trail - Pedestrians - SB",
    "Wissahickon Trail - Pedestrians - NB",
    "Wissahickon Trail - Bicycles - SB",
    "Wissahickon Trail - Bicycles - NB",
    "",
]


class Location(NamedTuple):
    name: str
    location_id: int
    start: int  # column of the location total
    ped: bool
    bike: bool

    @property
    def width(self) -> int:
        return 5 if self.ped and self.bike else 3


# Pine St and Spruce St are one-way bike lanes; everything else counts both modes.
LOCATIONS: Sequence[Location] = (
    Location("Bartram's Garden", 16, 1, True, True),
    Location("Chester Valley Trail", 1, 6, True, True),
    Location("Cooper River Trail", 11, 11, True, True),
    Location("Cynwyd Heritage Trail", 3, 16, True, True),
    Location("Darby Creek Trail", 12, 21, True, True),
    Location("Kelly Dr", 5, 26, True, True),
    Location("Lawrence Hopewell Trail", 8, 31, True, True),
    Location("Monroe Twp", 10, 36, True, True),
    Location("Pawlings Rd", 2, 41, True, True),
    Location("Pine St", 24, 46, False, True),
    Location("Port Richmond", 7, 49, True, True),
    Location("Schuylkill Banks", 6, 54, True, True),
    Location("Spring Mill Station", 13, 59, True, True),
    Location("Spruce St", 25, 64, False, True),
    Location("Tinicum Park", 23, 67, True, True),
    Location("Tullytown", 14, 72, True, True),
    Location("US 202 Parkway Trail", 9, 77, True, True),
    Location("Washington Crossing", 15, 82, True, True),
    Location("Waterfront Display", 26, 87, True, True),
    Location("Wissahickon Trail", 4, 92, True, True),
)


def build_count(location_id: int, counted_at: datetime, counts: Sequence[Optional[int]],
                ped: bool, bike: bool) -> IndividualCount:
    """Map a location's slice (total first, then in/out pairs) onto a count row."""
    ped_in = ped_out = bike_in = bike_out = None
    if len(counts) == 5:
        if not ped and not bike:
            raise CountShapeError("expected fewer fields")
        ped_in, ped_out, bike_in, bike_out = counts[1:5]
    elif len(counts) == 3:
        if ped and bike:
            raise CountShapeError("expected more fields")
        if ped and not bike:
            ped_in, ped_out = counts[1:3]
        if bike and not ped:
            bike_in, bike_out = counts[1:3]
    else:
        raise CountShapeError(f"expected 3 or 5 fields, got {len(counts)}")
    return IndividualCount(location_id=location_id, counted_at=counted_at, total=counts[0],
                           ped_in=ped_in, ped_out=ped_out, bike_in=bike_in, bike_out=bike_out)


def parse_time(value: str) -> datetime:
    # exports pad day and hour with spaces ("Jan  5, 2023  3:15 PM")
    return datetime.strptime(" ".join(value.split()), TIME_FORMAT)


def parse_count(value: str) -> Optional[int]:
    value = value.strip()
    if not value:
        return None
    if not COUNT_PATTERN.fullmatch(value):
        raise ValueError(f"invalid count {value!r}")
    return int(value)


def read_rows(path: Union[str, Path]) -> List[List[str]]:
    """Raw records of the export with blank lines dropped, title line included."""
    try:
        with open(path, newline="", encoding="utf-8-sig") as f:
            return [row for row in csv.reader(f) if row]
    except csv.Error as e:
        raise IngestError(f"Could not read row from CSV: {e}") from e
    except (OSError, UnicodeDecodeError) as e:
        raise IngestError(f"Could not read CSV file {path}: {e}") from e


def enforce_header(rows: Sequence[List[str]]) -> None:
    if len(rows) < 2:
        raise IngestError("Header not found.")
    if rows[1] != EXPECTED_HEADER:
        raise IngestError("Header does not match expected header.")


def read_input(path: Union[str, Path]) -> pd.DataFrame:
    """Load the records under the header as strings, one column per header field.

    Field counts are checked on the raw records: a frame pads short rows,
    which would turn a truncated record into empty counts.
    """
    rows = read_rows(path)
    enforce_header(rows)
    width = len(EXPECTED_HEADER)
    for line, record in enumerate(rows[2:], start=3):
        if len(record) != width:
            raise IngestError(
                f"Incorrect number of fields in row {line}. Expected {width}, found {len(record)}.")
    return pd.DataFrame(rows[2:], columns=range(width), dtype=object)


def extract_counts(df: pd.DataFrame) -> List[IndividualCount]:
    counts: List[IndividualCount] = []
    for line, (_, record) in enumerate(df.iterrows(), start=3):
        fields = record.tolist()

        try:
            counted_at = parse_time(fields[0])
        except ValueError as e:
            raise IngestError(f"Could not parse date ({fields[0]}) from record on line {line}: {e}.") from e

        try:
            values = [None] + [parse_count(v) for v in fields[1:]]
        except ValueError as e:
            raise IngestError(f"Could not parse count on line {line}: {e}.") from e

        for loc in LOCATIONS:
            try:
                counts.append(build_count(loc.location_id, counted_at,
                                          values[loc.start:loc.start + loc.width], loc.ped, loc.bike))
            except CountShapeError as e:
                raise CountShapeError(f"Error creating count for {loc.name}: {e}") from e
    return counts


def read_counts(path: Union[str, Path]) -> ParsedExport:
    df = read_input(path)
    return ParsedExport(records=len(df), counts=extract_counts(df))
