"""Place schedule records onto the weekly slot-by-weekday grid."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from display_format import cell_text, end_minutes, start_minutes, subject_code
from schedule_records import ScheduleRecord
from time_grid import DAY_ORDER, TIME_SLOTS, day_index, day_rank, slot_index_for

logger = logging.getLogger(__name__)

UNKNOWN_DAY = "unknown day"
TIME_OUT_OF_RANGE = "time out of range"
INVALID_DURATION = "invalid duration"
SLOT_NOT_AVAILABLE = "slot not available"


@dataclass
class GridCell:
    content: str = ""
    row_span: int = 1
    is_occupied: bool = False
    source_schedule: ScheduleRecord | None = None
    is_merged_continuation: bool = False

    @property
    def is_primary(self) -> bool:
        return self.is_occupied and self.row_span > 0

    @property
    def is_continuation(self) -> bool:
        return self.row_span == 0


@dataclass(frozen=True)
class PlacementDiagnostic:
    reason: str
    schedule: ScheduleRecord
    message: str


def _empty_rows() -> list[list[GridCell]]:
    return [[GridCell() for _ in DAY_ORDER] for _ in TIME_SLOTS]


@dataclass
class TimetableGrid:
    cells: list[list[GridCell]] = field(default_factory=_empty_rows)

    @property
    def row_count(self) -> int:
        return len(self.cells)

    @property
    def column_count(self) -> int:
        return len(DAY_ORDER)

    def cell(self, row: int, column: int) -> GridCell:
        return self.cells[row][column]

    def primary_cells(self) -> list[tuple[int, int, GridCell]]:
        return [
            (row, column, cell)
            for row, cells in enumerate(self.cells)
            for column, cell in enumerate(cells)
            if cell.is_primary
        ]

    def row_blocks(self) -> list[range]:
        """Group rows that merged cells join together.

        A block ends at the first row where no primary cell above still
        spans into the next row.
        """
        blocks: list[range] = []
        start = 0
        reach = 0
        for row, cells in enumerate(self.cells):
            for cell in cells:
                if cell.is_primary:
                    reach = max(reach, row + cell.row_span)
            if reach <= row + 1:
                blocks.append(range(start, row + 1))
                start = row + 1
                reach = row + 1
        if start < self.row_count:
            blocks.append(range(start, self.row_count))
        return blocks


def describe(record: ScheduleRecord) -> str:
    return (
        f"{subject_code(record)} on {record.day or '?'} "
        f"{record.start_time} {record.start_period or ''}-"
        f"{record.end_time} {record.end_period or ''}"
    ).replace("  ", " ")


def _start_sort_value(record: ScheduleRecord) -> int:
    minutes = start_minutes(record)
    return minutes if minutes is not None else 24 * 60


def sort_schedules(records: list[ScheduleRecord]) -> list[ScheduleRecord]:
    return sorted(records, key=lambda r: (day_rank(r.day), _start_sort_value(r)))


def place_schedule(grid: TimetableGrid, record: ScheduleRecord) -> PlacementDiagnostic | None:
    column = day_index(record.day)
    if column is None:
        return PlacementDiagnostic(
            UNKNOWN_DAY, record, f"Skipping {describe(record)}: day is not on the grid"
        )

    start_slot = slot_index_for(start_minutes(record))
    end_slot = slot_index_for(end_minutes(record))
    if start_slot is None or end_slot is None:
        return PlacementDiagnostic(
            TIME_OUT_OF_RANGE, record, f"Skipping {describe(record)}: time out of range"
        )

    duration = end_slot - start_slot
    if duration <= 0:
        return PlacementDiagnostic(
            INVALID_DURATION, record, f"Skipping {describe(record)}: invalid duration"
        )

    for row in range(start_slot, start_slot + duration):
        if row >= grid.row_count or grid.cells[row][column].is_occupied:
            return PlacementDiagnostic(
                SLOT_NOT_AVAILABLE,
                record,
                f"Skipping {describe(record)}: slot not available",
            )

    grid.cells[start_slot][column] = GridCell(
        content=cell_text(record),
        row_span=duration,
        is_occupied=True,
        source_schedule=record,
        is_merged_continuation=duration > 1,
    )
    for row in range(start_slot + 1, start_slot + duration):
        grid.cells[row][column] = GridCell(
            content="",
            row_span=0,
            is_occupied=True,
            source_schedule=record,
            is_merged_continuation=True,
        )
    return None


def build_grid(records: list[ScheduleRecord]) -> tuple[TimetableGrid, list[PlacementDiagnostic]]:
    grid = TimetableGrid()
    diagnostics: list[PlacementDiagnostic] = []
    for record in sort_schedules(records):
        diagnostic = place_schedule(grid, record)
        if diagnostic is not None:
            logger.warning(diagnostic.message)
            diagnostics.append(diagnostic)
    return grid, diagnostics
