import csv
import datetime as dt
import io

import pytest

from export_config import DEFAULT_EXPORT_CONFIG
from export_errors import EmptyScheduleError
from placement import SLOT_NOT_AVAILABLE, build_grid
from render_timetable_csv import SUMMARY_HEADER, grid_rows, render_timetable_csv
from schedule_records import ScheduleRecord, UserInfo, parse_schedule
from time_grid import DAY_ORDER

EXPORT_DATE = dt.date(2026, 10, 18)


def make_schedule(
    day: str = "Monday",
    start: str = "9:00",
    start_period: str = "AM",
    end: str = "11:00",
    end_period: str = "AM",
    code: str = "PC 317",
    section: str | None = None,
    year: int = 1,
) -> ScheduleRecord:
    return parse_schedule(
        {
            "day": day,
            "startTime": start,
            "startPeriod": start_period,
            "endTime": end,
            "endPeriod": end_period,
            "subject": {"_id": code, "courseCode": code, "descriptiveTitle": "Networking, Part 2"},
            "teacher": {"fullname": "Juan Dela Cruz"},
            "room": {"roomName": "CL1"},
            "section": {"_id": section, "sectionName": section, "yearLevel": year} if section else None,
        }
    )


def lines_of(text: str) -> list[str]:
    return text.split("\n")


def test_grid_rows_use_none_for_empty_and_continuation() -> None:
    grid, _ = build_grid([make_schedule()])
    rows = grid_rows(grid)
    assert len(rows) == 10
    assert rows[2] == ["9:00-10:00", "PC 317; 9:00 AM - 11:00 AM; Juan Dela Cruz; CL1"] + [None] * 5
    assert rows[3] == ["10:00-11:00"] + [None] * 6
    assert rows[5][0] == "LUNCH"


def test_worked_example_lines() -> None:
    rendered = render_timetable_csv([make_schedule()], export_date=EXPORT_DATE)
    lines = lines_of(rendered.text)
    assert '"9:00-10:00","PC 317; 9:00 AM - 11:00 AM; Juan Dela Cruz; CL1",,,,,' in lines
    assert '"10:00-11:00",,,,,,' in lines
    assert '"LUNCH",,,,,,' in lines
    assert "TIME," + ",".join(DAY_ORDER) in lines


def test_document_layout() -> None:
    user = UserInfo(name="Pedro Penduko", role="student", ctuid="1234567")
    rendered = render_timetable_csv([make_schedule()], user, export_date=EXPORT_DATE)
    rows = list(csv.reader(io.StringIO(rendered.text)))

    assert rows[0] == [DEFAULT_EXPORT_CONFIG["institution_name"]]
    assert rows[1] == [DEFAULT_EXPORT_CONFIG["campus_line"]]
    assert rows[2] == ["CHRONIX - CLASS SCHEDULE"]
    assert rows[3] == []
    assert ["Name:", "Pedro Penduko"] in rows
    assert ["Role:", "student"] in rows
    assert ["Export Date:", "October 18, 2026"] in rows
    assert ["CTU ID:", "1234567"] in rows
    assert ["Total Classes:", "1"] in rows

    summary_at = rows.index(SUMMARY_HEADER)
    assert rows[summary_at + 1] == ["3", "PC 317", "Networking, Part 2"]
    assert rows[-1] == [DEFAULT_EXPORT_CONFIG["footer_text"]]


def test_conflicts_are_reported() -> None:
    records = [make_schedule(), make_schedule(start="10:00", end="12:00", end_period="PM", code="IT 101")]
    rendered = render_timetable_csv(records, export_date=EXPORT_DATE)
    assert [d.reason for d in rendered.diagnostics] == [SLOT_NOT_AVAILABLE]
    assert "IT 101" not in rendered.text.split("SUBJECT CODE")[0]


def test_multi_section_blocks_in_order() -> None:
    records = [
        make_schedule(section="BSIT 2A", year=2),
        make_schedule(section="BSIT 1A", year=1, code="IT 101"),
    ]
    rendered = render_timetable_csv(records, multi_section=True, export_date=EXPORT_DATE)
    assert rendered.section_order == ["BSIT 1A", "BSIT 2A"]
    text = rendered.text
    assert text.index("Section:,BSIT 1A") < text.index("Section:,BSIT 2A")
    assert text.count("TIME,Monday") == 2


def test_custom_branding() -> None:
    config = dict(DEFAULT_EXPORT_CONFIG, product_name="CHRONIX Beta", footer_text="Draft copy")
    rendered = render_timetable_csv([make_schedule()], config=config, export_date=EXPORT_DATE)
    lines = lines_of(rendered.text)
    assert lines[2] == "CHRONIX Beta - CLASS SCHEDULE"
    assert rendered.text.rstrip("\n").endswith("Draft copy")


def test_empty_input_is_rejected() -> None:
    with pytest.raises(EmptyScheduleError):
        render_timetable_csv([])
