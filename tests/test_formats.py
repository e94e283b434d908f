from __future__ import annotations

import io
import json
from datetime import date

import pytest

from presence_core.exceptions import ConfigurationError
from presence_core.formats import CsvCodec, JsonCodec, codec_for, parse_bool
from presence_core.records import AttendanceRecord


def test_codec_selected_by_extension():
    assert isinstance(codec_for("data/attendance.csv"), CsvCodec)
    assert isinstance(codec_for("ATTENDANCE.JSON"), JsonCodec)
    with pytest.raises(ConfigurationError):
        codec_for("attendance.txt")
    with pytest.raises(ConfigurationError):
        codec_for("attendance")


def test_csv_dump_writes_header_and_boolean_literals():
    out = io.StringIO()
    CsvCodec().dump([
        AttendanceRecord(date(2025, 1, 2), is_office=True),
        AttendanceRecord(date(2025, 1, 3), is_office=False, is_day_off=True),
    ], out)

    assert out.getvalue() == (
        "Date,IsOffice,IsDayOff\n"
        "2025-01-02,True,False\n"
        "2025-01-03,False,True\n"
    )


def test_csv_load_tolerates_missing_day_off_column_and_case():
    rows = CsvCodec().load(io.StringIO("Date,IsOffice\n2025-01-02,true\n2025-01-03,FALSE\n"))

    assert rows == [
        AttendanceRecord(date(2025, 1, 2), is_office=True),
        AttendanceRecord(date(2025, 1, 3), is_office=False),
    ]


def test_csv_load_rejects_bad_boolean():
    with pytest.raises(ValueError, match="maybe"):
        CsvCodec().load(io.StringIO("Date,IsOffice,IsDayOff\n2025-01-02,maybe,False\n"))


def test_json_dump_is_pretty_printed_array():
    out = io.StringIO()
    JsonCodec().dump([AttendanceRecord(date(2025, 1, 2), is_office=True)], out)

    assert json.loads(out.getvalue()) == [{"Date": "2025-01-02", "IsOffice": True, "IsDayOff": False}]
    assert "\n  {" in out.getvalue()


def test_json_load_accepts_datetime_strings():
    text = '[{"Date": "2025-01-02T00:00:00", "IsOffice": true, "IsDayOff": false}]'

    assert JsonCodec().load(io.StringIO(text)) == [AttendanceRecord(date(2025, 1, 2), is_office=True)]


def test_json_load_empty_file_is_empty():
    assert JsonCodec().load(io.StringIO("  \n")) == []


def test_json_load_rejects_non_array():
    with pytest.raises(ValueError):
        JsonCodec().load(io.StringIO('{"Date": "2025-01-02"}'))


def test_json_load_requires_date():
    with pytest.raises(ValueError, match="missing Date"):
        JsonCodec().load(io.StringIO('[{"IsOffice": true}]'))


@pytest.mark.parametrize("value, expected", [
    (True, True), ("True", True), ("1", True), ("false", False), ("", False), (False, False),
])
def test_parse_bool(value, expected):
    assert parse_bool(value) is expected
