"""Schedule records as handed over by the persistence layer.

Subject, teacher, room and section fields arrive either populated with their
display fields or as bare identifiers.  Populated values become the matching
dataclass, bare identifiers become a ``Reference`` and are never inspected
further.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Union

from export_errors import InvalidRecordError

LECTURE = "lecture"
LAB = "lab"


@dataclass(frozen=True)
class Reference:
    id: str


@dataclass(frozen=True)
class Subject:
    course_code: str
    descriptive_title: str = ""
    units: float | None = None
    id: str | None = None

    @property
    def identity(self) -> str:
        return self.id or self.course_code


@dataclass(frozen=True)
class Teacher:
    fullname: str
    id: str | None = None


@dataclass(frozen=True)
class Room:
    room_name: str
    id: str | None = None


@dataclass(frozen=True)
class Section:
    section_name: str
    adviser_id: str | None = None
    adviser_name: str | None = None
    shift: str | None = None
    year_level: int | None = None
    id: str | None = None

    @property
    def identity(self) -> str:
        return self.id or self.section_name


SubjectField = Union[Subject, Reference, None]
TeacherField = Union[Teacher, Reference, None]
RoomField = Union[Room, Reference, None]
SectionField = Union[Section, Reference, None]


@dataclass(frozen=True)
class ScheduleRecord:
    day: str
    start_time: str
    end_time: str
    start_period: str | None = None
    end_period: str | None = None
    schedule_type: str = LECTURE
    subject: SubjectField = None
    teacher: TeacherField = None
    room: RoomField = None
    section: SectionField = None

    @property
    def is_lab(self) -> bool:
        return self.schedule_type == LAB


@dataclass(frozen=True)
class UserInfo:
    name: str | None = None
    profile_picture: str | None = None
    role: str | None = None
    section: str | None = None
    ctuid: str | None = None


def _text(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _identifier(value: object) -> str | None:
    if isinstance(value, Mapping):
        return _text(value.get("_id") or value.get("id"))
    return _text(value)


def _number(value: object) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _year_level(value: object) -> int | None:
    number = _number(value)
    if number is None:
        return None
    return int(number)


def parse_subject(value: object) -> SubjectField:
    if isinstance(value, Mapping):
        code = _text(value.get("courseCode"))
        if code is None:
            ident = _identifier(value)
            return Reference(ident) if ident else None
        return Subject(
            course_code=code,
            descriptive_title=_text(value.get("descriptiveTitle")) or "",
            units=_number(value.get("units")),
            id=_identifier(value),
        )
    ident = _text(value)
    return Reference(ident) if ident else None


def parse_teacher(value: object) -> TeacherField:
    if isinstance(value, Mapping):
        name = _text(value.get("fullname"))
        if name is None:
            ident = _identifier(value)
            return Reference(ident) if ident else None
        return Teacher(fullname=name, id=_identifier(value))
    ident = _text(value)
    return Reference(ident) if ident else None


def parse_room(value: object) -> RoomField:
    if isinstance(value, Mapping):
        name = _text(value.get("roomName"))
        if name is None:
            ident = _identifier(value)
            return Reference(ident) if ident else None
        return Room(room_name=name, id=_identifier(value))
    ident = _text(value)
    return Reference(ident) if ident else None


def parse_section(value: object) -> SectionField:
    if isinstance(value, Mapping):
        name = _text(value.get("sectionName"))
        if name is None:
            ident = _identifier(value)
            return Reference(ident) if ident else None
        adviser = value.get("adviserTeacher")
        adviser_name = None
        if isinstance(adviser, Mapping):
            adviser_name = _text(adviser.get("fullname"))
        return Section(
            section_name=name,
            adviser_id=_identifier(adviser),
            adviser_name=adviser_name,
            shift=_text(value.get("shift")),
            year_level=_year_level(value.get("yearLevel")),
            id=_identifier(value),
        )
    ident = _text(value)
    return Reference(ident) if ident else None


def parse_schedule(data: Mapping) -> ScheduleRecord:
    schedule_type = (_text(data.get("scheduleType")) or LECTURE).lower()
    return ScheduleRecord(
        day=_text(data.get("day")) or "",
        start_time=_text(data.get("startTime")) or "",
        end_time=_text(data.get("endTime")) or "",
        start_period=_text(data.get("startPeriod")),
        end_period=_text(data.get("endPeriod")),
        schedule_type=schedule_type,
        subject=parse_subject(data.get("subject")),
        teacher=parse_teacher(data.get("teacher")),
        room=parse_room(data.get("room")),
        section=parse_section(data.get("section")),
    )


def parse_schedules(items: Iterable[object]) -> list[ScheduleRecord]:
    records: list[ScheduleRecord] = []
    for index, item in enumerate(items):
        if isinstance(item, ScheduleRecord):
            records.append(item)
            continue
        if not isinstance(item, Mapping):
            raise InvalidRecordError(index, item)
        records.append(parse_schedule(item))
    return records


def parse_user_info(data: Mapping | None) -> UserInfo:
    if not data:
        return UserInfo()
    return UserInfo(
        name=_text(data.get("name")),
        profile_picture=_text(data.get("profilePicture")),
        role=_text(data.get("role")),
        section=_text(data.get("section")),
        ctuid=_text(data.get("ctuid")),
    )
