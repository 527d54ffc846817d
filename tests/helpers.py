"""Builders for counter exports shaped like the real delivery."""
import csv

from countwatch.ingest import EXPECTED_HEADER

TITLE = ["Eco-Counter export", "Sum of counts", ""]

# Pine St / Spruce St pedestrian columns are always empty in real exports
EMPTY_COLUMNS = {47, 48, 65, 66}


def make_record(when, base=0, overrides=None):
    fields = [when]
    for col in range(1, len(EXPECTED_HEADER) - 1):
        fields.append("" if col in EMPTY_COLUMNS else str(base + col))
    fields.append("")
    for col, value in (overrides or {}).items():
        fields[col] = value
    return fields


def write_export(path, records, header=None, title=True):
    with open(path, "w", newline="", encoding="utf-8") as f:
        w = csv.writer(f)
        if title:
            w.writerow(TITLE)
        w.writerow(EXPECTED_HEADER if header is None else header)
        for r in records:
            w.writerow(r)
    return path
