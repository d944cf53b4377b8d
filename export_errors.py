"""Exceptions raised by the timetable export pipeline."""

from __future__ import annotations


class ExportError(Exception):
    """Base class for failures that abort a single export call."""


class EmptyScheduleError(ExportError):
    def __init__(self, message: str = "No schedules to export") -> None:
        super().__init__(message)


class DependencyLoadError(ExportError):
    def __init__(self, name: str, cause: BaseException | None = None) -> None:
        self.name = name
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Failed to load rendering dependency '{name}'{detail}")


class InvalidRecordError(ExportError):
    def __init__(self, index: int, value: object) -> None:
        self.index = index
        super().__init__(
            f"Schedule record #{index} must be an object, got {type(value).__name__}"
        )
