"""Render weekly class timetables as CSV text."""

from __future__ import annotations

import csv
import datetime as dt
import io
from dataclasses import dataclass, field

from display_format import (
    format_units,
    group_by_section,
    info_columns,
    section_details,
    subjects_summary,
)
from export_config import DEFAULT_EXPORT_CONFIG
from export_errors import EmptyScheduleError
from placement import PlacementDiagnostic, TimetableGrid, build_grid
from schedule_records import ScheduleRecord, UserInfo
from time_grid import DAY_ORDER, TIME_SLOTS, slot_label

LINE_SEPARATOR = "; "
SUMMARY_HEADER = ["UNITS", "SUBJECT CODE", "DESCRIPTIVE TITLE"]


@dataclass
class RenderedCsv:
    text: str
    diagnostics: list[PlacementDiagnostic] = field(default_factory=list)
    section_order: list[str] = field(default_factory=list)


def grid_rows(grid: TimetableGrid) -> list[list[str | None]]:
    """One row per slot; ``None`` marks an empty or continuation cell."""
    rows: list[list[str | None]] = []
    for row_index, slot in enumerate(TIME_SLOTS):
        row: list[str | None] = [slot_label(slot)]
        for column in range(grid.column_count):
            cell = grid.cell(row_index, column)
            if cell.is_primary:
                row.append(cell.content.replace("\n", LINE_SEPARATOR))
            else:
                row.append(None)
        rows.append(row)
    return rows


def write_section(
    plain,
    quoted,
    records: list[ScheduleRecord],
    user_info: UserInfo,
    export_date: dt.date,
) -> list[PlacementDiagnostic]:
    left, right = info_columns(user_info, records, export_date)
    for label, value in left + right:
        plain.writerow([label, value])
    plain.writerow([])

    grid, diagnostics = build_grid(records)
    plain.writerow(["TIME", *DAY_ORDER])
    quoted.writerows(grid_rows(grid))
    plain.writerow([])

    plain.writerow(SUMMARY_HEADER)
    for entry in subjects_summary(records):
        plain.writerow([format_units(entry.units), entry.course_code, entry.descriptive_title])
    plain.writerow([])
    return diagnostics


def render_timetable_csv(
    records: list[ScheduleRecord],
    user_info: UserInfo | None = None,
    config: dict | None = None,
    multi_section: bool = False,
    export_date: dt.date | None = None,
) -> RenderedCsv:
    if not records:
        raise EmptyScheduleError()
    user_info = user_info or UserInfo()
    config = config or DEFAULT_EXPORT_CONFIG
    export_date = export_date or dt.date.today()

    buffer = io.StringIO()
    plain = csv.writer(buffer, lineterminator="\n")
    quoted = csv.writer(buffer, lineterminator="\n", quoting=csv.QUOTE_NOTNULL)

    plain.writerow([config.get("institution_name")])
    plain.writerow([config.get("campus_line")])
    plain.writerow([f"{config.get('product_name')} - {config.get('document_title')}"])
    plain.writerow([])

    result = RenderedCsv(text="")
    groups = group_by_section(records) if multi_section else [records]
    for group in groups:
        result.section_order.append(section_details(group).section_name)
        result.diagnostics.extend(write_section(plain, quoted, group, user_info, export_date))

    plain.writerow([config.get("footer_text")])
    result.text = buffer.getvalue()
    return result
