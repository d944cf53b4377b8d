"""Human-readable text for timetable cells, summaries and section headers."""

from __future__ import annotations

import collections
import datetime as dt
import unicodedata
from dataclasses import dataclass

from schedule_records import (
    Room,
    ScheduleRecord,
    Section,
    Subject,
    Teacher,
    UserInfo,
)
from time_grid import clock_to_minutes, minutes_to_clock

NOT_AVAILABLE = "N/A"
TO_BE_ANNOUNCED = "TBA"
DEFAULT_UNITS = 3


@dataclass(frozen=True)
class FontProfile:
    subject_size: float
    detail_size: float
    line_height: float


@dataclass(frozen=True)
class SubjectSummary:
    units: float
    course_code: str
    descriptive_title: str


@dataclass(frozen=True)
class SectionDetails:
    section_name: str
    adviser_name: str
    shift: str


# Ordered by the upper duration bound (hours) each tier covers.
FONT_TIERS = [
    (1.0, FontProfile(subject_size=7.0, detail_size=5.5, line_height=2.6)),
    (2.0, FontProfile(subject_size=8.0, detail_size=6.5, line_height=3.2)),
]
LARGE_FONT = FontProfile(subject_size=9.0, detail_size=7.5, line_height=3.8)


def sanitize_text(value: object) -> str:
    if value is None:
        return ""
    text = str(value)
    if not text:
        return ""
    replacements = {
        "\u2013": "-",
        "\u2014": "-",
        "\u2018": "'",
        "\u2019": "'",
        "\u201c": "\"",
        "\u201d": "\"",
        "\u2026": "...",
    }
    for src, dest in replacements.items():
        text = text.replace(src, dest)
    text = unicodedata.normalize("NFKD", text)
    text = text.encode("ascii", "ignore").decode("ascii")
    return " ".join(text.split())


def subject_code(record: ScheduleRecord) -> str:
    if isinstance(record.subject, Subject):
        code = record.subject.course_code.strip()
    else:
        code = NOT_AVAILABLE
    if record.is_lab:
        code = f"{code} L"
    return code


def teacher_name(record: ScheduleRecord) -> str:
    if isinstance(record.teacher, Teacher):
        return record.teacher.fullname
    return TO_BE_ANNOUNCED


def room_name(record: ScheduleRecord) -> str:
    if isinstance(record.room, Room):
        return record.room.room_name
    return TO_BE_ANNOUNCED


def to_12_hour(clock: str) -> str:
    minutes = clock_to_minutes(clock)
    if minutes is None:
        return clock
    period = "AM" if minutes < 12 * 60 else "PM"
    return f"{minutes_to_clock(minutes)} {period}"


def format_clock(clock: str, period: str | None) -> str:
    if period and period.strip():
        return f"{clock} {period.strip().upper()}"
    return to_12_hour(clock)


def format_time_range(record: ScheduleRecord) -> str:
    start = format_clock(record.start_time, record.start_period)
    end = format_clock(record.end_time, record.end_period)
    return f"{start} - {end}"


def cell_text(record: ScheduleRecord) -> str:
    lines = [
        subject_code(record),
        format_time_range(record),
        teacher_name(record),
        room_name(record),
    ]
    return "\n".join(lines)


def start_minutes(record: ScheduleRecord) -> int | None:
    return clock_to_minutes(record.start_time, record.start_period)


def end_minutes(record: ScheduleRecord) -> int | None:
    return clock_to_minutes(record.end_time, record.end_period)


def duration_hours(record: ScheduleRecord) -> float:
    start = start_minutes(record)
    end = end_minutes(record)
    if start is None or end is None:
        return 0.0
    return (end - start) / 60


def format_hours(hours: float) -> str:
    return f"{round(hours, 2):g}h"


def font_profile(hours: float) -> FontProfile:
    for upper_bound, profile in FONT_TIERS:
        if hours <= upper_bound:
            return profile
    return LARGE_FONT


def format_units(units: float) -> str:
    return f"{units:g}"


def subjects_summary(records: list[ScheduleRecord]) -> list[SubjectSummary]:
    summary: dict[str, SubjectSummary] = {}
    for record in records:
        subject = record.subject
        if not isinstance(subject, Subject):
            continue
        if subject.identity in summary:
            continue
        units = subject.units if subject.units is not None else DEFAULT_UNITS
        summary[subject.identity] = SubjectSummary(
            units=units,
            course_code=subject.course_code.strip(),
            descriptive_title=subject.descriptive_title or NOT_AVAILABLE,
        )
    return list(summary.values())


def resolve_adviser(section: Section, records: list[ScheduleRecord]) -> str:
    if section.adviser_id:
        for record in records:
            teacher = record.teacher
            if isinstance(teacher, Teacher) and teacher.id == section.adviser_id:
                return teacher.fullname
    if section.adviser_name:
        return section.adviser_name
    if section.adviser_id:
        return section.adviser_id
    return NOT_AVAILABLE


def section_details(records: list[ScheduleRecord]) -> SectionDetails:
    section = records[0].section if records else None
    if not isinstance(section, Section):
        return SectionDetails(NOT_AVAILABLE, NOT_AVAILABLE, NOT_AVAILABLE)
    return SectionDetails(
        section_name=section.section_name or NOT_AVAILABLE,
        adviser_name=resolve_adviser(section, records),
        shift=section.shift or NOT_AVAILABLE,
    )


def group_by_section(records: list[ScheduleRecord]) -> list[list[ScheduleRecord]]:
    """Split records into per-section batches ordered by year level, then name.

    Records without a populated section share a trailing batch.
    """
    groups: dict[str, list[ScheduleRecord]] = collections.defaultdict(list)
    sections: dict[str, Section | None] = {}
    for record in records:
        section = record.section if isinstance(record.section, Section) else None
        key = section.identity if section else ""
        groups[key].append(record)
        sections.setdefault(key, section)

    def sort_key(key: str) -> tuple[int, int, str]:
        section = sections[key]
        if section is None:
            return (1, 0, "")
        year = section.year_level if section.year_level is not None else 0
        return (0, year, section.section_name)

    return [groups[key] for key in sorted(groups, key=sort_key)]


def format_export_date(value: dt.date) -> str:
    return f"{value:%B} {value.day}, {value.year}"


def info_columns(
    user_info: UserInfo,
    records: list[ScheduleRecord],
    export_date: dt.date,
) -> tuple[list[tuple[str, str]], list[tuple[str, str]]]:
    details = section_details(records)
    section_name = details.section_name
    if section_name == NOT_AVAILABLE and user_info.section:
        section_name = user_info.section
    left = [
        ("Name:", user_info.name or NOT_AVAILABLE),
        ("Section:", section_name),
        ("Adviser:", details.adviser_name),
    ]
    right = [
        ("Export Date:", format_export_date(export_date)),
        ("Total Classes:", str(len(records))),
        ("Shift:", details.shift),
    ]
    if user_info.role:
        left.append(("Role:", user_info.role))
    if user_info.ctuid:
        right.append(("CTU ID:", user_info.ctuid))
    return left, right
