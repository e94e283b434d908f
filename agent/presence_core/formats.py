"""
On-disk encodings for attendance records.

Two interchangeable codecs, selected by the data file's extension:
  .csv  → header row Date,IsOffice,IsDayOff; one row per date
  .json → pretty-printed array of {"Date", "IsOffice", "IsDayOff"}

Codecs only translate rows. Deduplication and ordering are the store's job,
so load() returns rows exactly as they appear in the file.
"""

import csv
import json
from datetime import datetime
from pathlib import Path

from .constants import DATE_FORMAT, RECORD_FIELDS, SUPPORTED_EXTENSIONS
from .exceptions import ConfigurationError
from .records import AttendanceRecord


# ─── Field helpers ───────────────────────────────────────────────

def format_date(day):
    return day.strftime(DATE_FORMAT)


def parse_date(value):
    """Accept yyyy-MM-dd, optionally followed by a time part."""
    text = str(value).strip()
    try:
        return datetime.strptime(text[:10], DATE_FORMAT).date()
    except ValueError:
        raise ValueError(f"invalid date {value!r}") from None


def format_bool(value):
    return "True" if value else "False"


def parse_bool(value):
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("true", "1", "yes"):
        return True
    if text in ("false", "0", "no", ""):
        return False
    raise ValueError(f"invalid boolean {value!r}")


def _field(row, name):
    """Case-insensitive dict lookup; None when missing."""
    if name in row:
        return row[name]
    lowered = name.lower()
    for key, value in row.items():
        if key is not None and key.strip().lower() == lowered:
            return value
    return None


def _to_record(row, line):
    raw_date = _field(row, "Date")
    if raw_date is None or str(raw_date).strip() == "":
        raise ValueError(f"row {line}: missing Date")
    try:
        return AttendanceRecord(
            date=parse_date(raw_date),
            is_office=parse_bool(_field(row, "IsOffice") or False),
            is_day_off=parse_bool(_field(row, "IsDayOff") or False),
        )
    except ValueError as e:
        raise ValueError(f"row {line}: {e}") from None


# ─── Codecs ──────────────────────────────────────────────────────

class CsvCodec:
    extension = ".csv"

    def load(self, fh):
        reader = csv.DictReader(fh)
        return [_to_record(row, reader.line_num) for row in reader]

    def dump(self, records, fh):
        writer = csv.writer(fh, lineterminator="\n")
        writer.writerow(RECORD_FIELDS)
        for record in records:
            writer.writerow([
                format_date(record.date),
                format_bool(record.is_office),
                format_bool(record.is_day_off),
            ])


class JsonCodec:
    extension = ".json"

    def load(self, fh):
        text = fh.read()
        if not text.strip():
            return []
        data = json.loads(text)
        if not isinstance(data, list):
            raise ValueError("expected a JSON array of records")
        records = []
        for index, row in enumerate(data, start=1):
            if not isinstance(row, dict):
                raise ValueError(f"row {index}: expected an object")
            records.append(_to_record(row, index))
        return records

    def dump(self, records, fh):
        payload = [
            {
                "Date": format_date(r.date),
                "IsOffice": r.is_office,
                "IsDayOff": r.is_day_off,
            }
            for r in records
        ]
        json.dump(payload, fh, indent=2)
        fh.write("\n")


_CODECS = {
    CsvCodec.extension: CsvCodec,
    JsonCodec.extension: JsonCodec,
}


def codec_for(path):
    """Pick the codec for a data file from its extension."""
    extension = Path(path).suffix.lower()
    try:
        return _CODECS[extension]()
    except KeyError:
        raise ConfigurationError(
            f"Unsupported data file extension {extension or '(none)'!r} in {Path(path).name!r}",
            hint=f"Supported: {', '.join(SUPPORTED_EXTENSIONS)}",
        ) from None
