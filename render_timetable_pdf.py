"""Render weekly class timetables as paginated, print-ready PDF documents."""

from __future__ import annotations

import datetime as dt
from collections.abc import Callable
from dataclasses import dataclass, field

from fpdf import FPDF
from PIL import Image

from assets import BrandAssets
from display_format import (
    SubjectSummary,
    duration_hours,
    font_profile,
    format_hours,
    format_units,
    group_by_section,
    info_columns,
    sanitize_text,
    section_details,
    subjects_summary,
)
from export_config import DEFAULT_EXPORT_CONFIG
from export_errors import EmptyScheduleError
from placement import GridCell, PlacementDiagnostic, TimetableGrid, build_grid
from schedule_records import ScheduleRecord, UserInfo
from time_grid import DAY_ORDER, TIME_SLOTS, slot_label, slot_range_label

# 8 x 13 inch portrait, in millimetres.
PAGE_FORMAT = (203.2, 330.2)

Color = tuple[int, int, int]

PRIMARY: Color = (0, 45, 98)
GOLD: Color = (242, 210, 131)
TEXT: Color = (51, 51, 51)
TEXT_LIGHT: Color = (100, 100, 100)
INFO_FILL: Color = (244, 247, 249)
BORDER: Color = (200, 205, 212)
WHITE: Color = (255, 255, 255)
LECTURE_FILL: Color = (222, 235, 250)
LAB_FILL: Color = (253, 238, 206)
EMPTY_FILL: Color = (255, 255, 255)
TIME_FILL: Color = (240, 243, 247)
LUNCH_FILL: Color = (250, 244, 228)
STRIPE_FILL: Color = (245, 247, 249)


@dataclass
class RenderConfig:
    margin: float = 10.0
    logo_size: float = 20.0
    title_line_height: float = 4.6
    info_line_height: float = 5.5
    info_padding: float = 3.0
    avatar_size: float = 22.0
    grid_header_height: float = 8.0
    base_row_height: float = 15.0
    time_col_width: float = 22.0
    header_font_size: float = 8.0
    body_font_size: float = 7.0
    summary_font_size: float = 8.0
    annotation_font_size: float = 5.5
    padding: float = 1.2
    footer_height: float = 16.0
    section_gap: float = 6.0


@dataclass
class RenderedTimetable:
    data: bytes
    diagnostics: list[PlacementDiagnostic] = field(default_factory=list)
    section_order: list[str] = field(default_factory=list)
    section_pages: list[int] = field(default_factory=list)
    page_count: int = 0


class TimetablePDF(FPDF):
    """FPDF document that stamps the branded footer on every page."""

    def __init__(
        self,
        render_config: RenderConfig,
        footer_image: Image.Image | None = None,
        footer_text: str = "",
    ) -> None:
        super().__init__(orientation="P", unit="mm", format=PAGE_FORMAT)
        self.render_config = render_config
        self.footer_image = footer_image
        self.footer_text = footer_text
        self.set_auto_page_break(auto=False, margin=0)
        self.set_margins(render_config.margin, render_config.margin, render_config.margin)

    @property
    def content_bottom(self) -> float:
        return self.h - self.render_config.footer_height

    def footer(self) -> None:
        config = self.render_config
        top = self.h - config.footer_height + 1.5
        width = self.w - 2 * config.margin
        page_label = f"Page {self.page_no()} of {{nb}}"

        if self.footer_image is not None:
            image_height = config.footer_height - 7.0
            draw_image_fit(self, self.footer_image, config.margin, top, width, image_height)
            self.set_font("Helvetica", size=6.5)
            self.set_text_color(*TEXT_LIGHT)
            self.set_xy(config.margin, top + image_height + 0.5)
            self.cell(width, 3.5, page_label, align="R")
            return

        self.set_draw_color(*GOLD)
        self.set_line_width(0.3)
        self.line(config.margin, top + 2, self.w - config.margin, top + 2)
        self.set_font("Helvetica", size=7.5)
        self.set_text_color(*TEXT_LIGHT)
        self.set_xy(config.margin, top + 4)
        self.cell(width / 2, 4, sanitize_text(self.footer_text), align="L")
        self.set_xy(config.margin + width / 2, top + 4)
        self.cell(width / 2, 4, page_label, align="R")


def wrap_text(pdf: FPDF, text: str, max_width: float) -> list[str]:
    words = text.split()
    if not words:
        return []
    lines: list[str] = []
    current = ""
    for word in words:
        candidate = f"{current} {word}".strip()
        if pdf.get_string_width(candidate) <= max_width:
            current = candidate
            continue
        if current:
            lines.append(current)
        if pdf.get_string_width(word) <= max_width:
            current = word
            continue
        chunk = ""
        for char in word:
            test = chunk + char
            if pdf.get_string_width(test) <= max_width:
                chunk = test
            else:
                if chunk:
                    lines.append(chunk)
                chunk = char
        current = chunk
    if current:
        lines.append(current)
    return lines


def shorten_line(pdf: FPDF, text: str, max_width: float, suffix: str = "...") -> str:
    if pdf.get_string_width(text) <= max_width:
        return text
    trimmed = text
    while trimmed and pdf.get_string_width(trimmed + suffix) > max_width:
        trimmed = trimmed[:-1]
    if not trimmed:
        return suffix
    return trimmed.rstrip() + suffix


def truncate_lines(
    pdf: FPDF, lines: list[str], max_width: float, max_lines: int
) -> list[str]:
    if len(lines) <= max_lines:
        return lines
    trimmed = lines[:max_lines]
    trimmed[-1] = shorten_line(pdf, trimmed[-1] + " ...", max_width)
    return trimmed


def draw_image_fit(
    pdf: FPDF, image: Image.Image, x: float, y: float, width: float, height: float
) -> None:
    """Draw ``image`` centred in the box, scaled to fit without distortion."""
    img_width, img_height = image.size
    if not img_width or not img_height:
        return
    scale = min(width / img_width, height / img_height)
    draw_width = img_width * scale
    draw_height = img_height * scale
    pdf.image(
        image,
        x=x + (width - draw_width) / 2,
        y=y + (height - draw_height) / 2,
        w=draw_width,
        h=draw_height,
    )


def draw_cell(
    pdf: FPDF,
    x: float,
    y: float,
    width: float,
    height: float,
    lines: list[str],
    fill_color: Color | None,
    align: str = "L",
    bold: bool = False,
    font_size: float | None = None,
    padding: float = 1.0,
    text_color: Color = TEXT,
    middle: bool = True,
) -> None:
    pdf.set_draw_color(*BORDER)
    pdf.set_line_width(0.2)
    if fill_color:
        pdf.set_fill_color(*fill_color)
        pdf.rect(x, y, width, height, style="DF")
    else:
        pdf.rect(x, y, width, height)

    if not lines:
        return

    style = "B" if bold else ""
    if font_size is not None:
        pdf.set_font("Helvetica", style=style, size=font_size)
    else:
        pdf.set_font("Helvetica", style=style)
    pdf.set_text_color(*text_color)
    line_height = pdf.font_size * 1.3
    max_lines = max(1, int((height - 2 * padding) / line_height + 1e-6))
    text_lines = truncate_lines(pdf, lines, width - 2 * padding, max_lines)
    cursor_y = y + padding
    if middle:
        cursor_y = y + (height - line_height * len(text_lines)) / 2
    for line in text_lines:
        pdf.set_xy(x + padding, cursor_y)
        pdf.cell(width - 2 * padding, line_height, line, align=align)
        cursor_y += line_height


def ensure_space(
    pdf: TimetablePDF,
    y: float,
    height: float,
    reprint_header: Callable[[float], float],
) -> float:
    """Return where the next content row starts, breaking the page if needed.

    On a page break the caller's header is drawn at the top of the new page.
    """
    if y + height <= pdf.content_bottom:
        return y
    pdf.add_page()
    return reprint_header(pdf.render_config.margin)


def draw_document_header(
    pdf: TimetablePDF, logos: list[Image.Image | None], config: dict, y: float
) -> float:
    rc = pdf.render_config
    logos = (list(logos) + [None, None, None])[:3]
    left_x = rc.margin
    right_x = pdf.w - rc.margin - rc.logo_size
    positions = [left_x, left_x + rc.logo_size + 2, right_x]
    for logo, x in zip(logos, positions):
        if logo is not None:
            draw_image_fit(pdf, logo, x, y, rc.logo_size, rc.logo_size)

    title_lines = list(config.get("title_lines") or [])
    text_x = rc.margin + 2 * rc.logo_size + 4
    text_width = right_x - 2 - text_x
    cursor_y = y
    for index, line in enumerate(title_lines):
        emphasized = index == 1
        pdf.set_font("Helvetica", style="B" if emphasized else "", size=11 if emphasized else 8)
        pdf.set_text_color(*(PRIMARY if emphasized else TEXT))
        pdf.set_xy(text_x, cursor_y)
        pdf.cell(text_width, rc.title_line_height, sanitize_text(line), align="C")
        cursor_y += rc.title_line_height

    pdf.set_font("Helvetica", style="B", size=13)
    pdf.set_text_color(*PRIMARY)
    pdf.set_xy(text_x, cursor_y + 1)
    pdf.cell(text_width, 6, sanitize_text(config.get("document_title")), align="C")
    cursor_y += 7

    bottom = max(y + rc.logo_size, cursor_y) + 2
    pdf.set_draw_color(*GOLD)
    pdf.set_line_width(0.6)
    pdf.line(rc.margin, bottom, pdf.w - rc.margin, bottom)
    return bottom + 3


def draw_info_box(
    pdf: TimetablePDF,
    user_info: UserInfo,
    records: list[ScheduleRecord],
    avatar: Image.Image | None,
    export_date: dt.date,
    y: float,
) -> float:
    rc = pdf.render_config
    left, right = info_columns(user_info, records, export_date)
    rows = max(len(left), len(right))
    box_width = pdf.w - 2 * rc.margin
    box_height = max(rows * rc.info_line_height, rc.avatar_size) + 2 * rc.info_padding

    pdf.set_fill_color(*INFO_FILL)
    pdf.set_draw_color(*BORDER)
    pdf.set_line_width(0.3)
    pdf.rect(rc.margin, y, box_width, box_height, style="DF")

    text_width = box_width - rc.avatar_size - 3 * rc.info_padding
    column_width = text_width / 2
    for column, entries in enumerate((left, right)):
        x = rc.margin + rc.info_padding + column * column_width
        label_width = 24.0
        for row, (label, value) in enumerate(entries):
            row_y = y + rc.info_padding + row * rc.info_line_height
            pdf.set_xy(x, row_y)
            pdf.set_font("Helvetica", style="B", size=8.5)
            pdf.set_text_color(*PRIMARY)
            pdf.cell(label_width, rc.info_line_height, label)
            pdf.set_font("Helvetica", size=8.5)
            pdf.set_text_color(*TEXT)
            value_width = column_width - label_width - 1
            pdf.set_xy(x + label_width, row_y)
            pdf.cell(
                value_width,
                rc.info_line_height,
                shorten_line(pdf, sanitize_text(value), value_width),
            )

    if avatar is not None:
        avatar_x = rc.margin + box_width - rc.avatar_size - rc.info_padding
        avatar_y = y + (box_height - rc.avatar_size) / 2
        pdf.image(avatar, x=avatar_x, y=avatar_y, w=rc.avatar_size, h=rc.avatar_size)

    return y + box_height + 4


def grid_geometry(pdf: TimetablePDF) -> tuple[float, float]:
    rc = pdf.render_config
    table_width = pdf.w - 2 * rc.margin
    day_width = (table_width - rc.time_col_width) / len(DAY_ORDER)
    return rc.margin, day_width


def draw_grid_header(pdf: TimetablePDF, y: float) -> float:
    rc = pdf.render_config
    table_x, day_width = grid_geometry(pdf)
    draw_cell(
        pdf,
        table_x,
        y,
        rc.time_col_width,
        rc.grid_header_height,
        ["TIME"],
        PRIMARY,
        align="C",
        bold=True,
        font_size=rc.header_font_size,
        padding=rc.padding,
        text_color=WHITE,
    )
    for index, day in enumerate(DAY_ORDER):
        draw_cell(
            pdf,
            table_x + rc.time_col_width + index * day_width,
            y,
            day_width,
            rc.grid_header_height,
            [day.upper()],
            PRIMARY,
            align="C",
            bold=True,
            font_size=rc.header_font_size,
            padding=rc.padding,
            text_color=WHITE,
        )
    return y + rc.grid_header_height


def draw_schedule_cell(
    pdf: TimetablePDF, x: float, y: float, width: float, height: float, cell: GridCell
) -> None:
    rc = pdf.render_config
    record = cell.source_schedule
    fill = LAB_FILL if record is not None and record.is_lab else LECTURE_FILL
    draw_cell(pdf, x, y, width, height, [], fill)

    hours = duration_hours(record) if record is not None else 0.0
    profile = font_profile(hours)
    lines = cell.content.split("\n")
    inner_width = width - 2 * rc.padding
    cursor_y = y + (height - profile.line_height * len(lines)) / 2
    pdf.set_text_color(*TEXT)
    for index, line in enumerate(lines):
        if index == 0:
            pdf.set_font("Helvetica", style="B", size=profile.subject_size)
            pdf.set_text_color(*PRIMARY)
        else:
            pdf.set_font("Helvetica", size=profile.detail_size)
            pdf.set_text_color(*TEXT)
        pdf.set_xy(x + rc.padding, cursor_y)
        pdf.cell(
            inner_width,
            profile.line_height,
            shorten_line(pdf, sanitize_text(line), inner_width),
            align="C",
        )
        cursor_y += profile.line_height

    if cell.row_span > 1:
        pdf.set_font("Helvetica", style="I", size=rc.annotation_font_size)
        pdf.set_text_color(*TEXT_LIGHT)
        pdf.set_xy(x + rc.padding, y + height - 3.2)
        pdf.cell(inner_width, 2.8, format_hours(hours), align="R")


def draw_grid_row(pdf: TimetablePDF, grid: TimetableGrid, row: int, y: float) -> None:
    rc = pdf.render_config
    table_x, day_width = grid_geometry(pdf)
    slot = TIME_SLOTS[row]
    time_lines = [slot_range_label(slot)]
    if slot.label:
        time_lines = [slot_label(slot), slot_range_label(slot)]
    draw_cell(
        pdf,
        table_x,
        y,
        rc.time_col_width,
        rc.base_row_height,
        time_lines,
        LUNCH_FILL if slot.label else TIME_FILL,
        align="C",
        bold=bool(slot.label),
        font_size=rc.body_font_size,
        padding=rc.padding,
    )
    for column in range(grid.column_count):
        cell = grid.cell(row, column)
        if cell.is_continuation:
            continue
        x = table_x + rc.time_col_width + column * day_width
        if cell.is_primary:
            height = cell.row_span * rc.base_row_height
            draw_schedule_cell(pdf, x, y, day_width, height, cell)
        else:
            draw_cell(pdf, x, y, day_width, rc.base_row_height, [], EMPTY_FILL)


def draw_grid(pdf: TimetablePDF, grid: TimetableGrid, y: float) -> float:
    rc = pdf.render_config
    y = ensure_space(pdf, y, rc.grid_header_height + rc.base_row_height, lambda top: top)
    y = draw_grid_header(pdf, y)
    for block in grid.row_blocks():
        block_height = len(block) * rc.base_row_height
        y = ensure_space(pdf, y, block_height, lambda top: draw_grid_header(pdf, top))
        for row in block:
            draw_grid_row(pdf, grid, row, y)
            y += rc.base_row_height
    return y + rc.section_gap


SUMMARY_COLUMNS = [("UNITS", 18.0), ("SUBJECT CODE", 34.0), ("DESCRIPTIVE TITLE", 0.0)]


def summary_widths(pdf: TimetablePDF) -> list[float]:
    rc = pdf.render_config
    table_width = pdf.w - 2 * rc.margin
    fixed = sum(width for _, width in SUMMARY_COLUMNS)
    return [width or table_width - fixed for _, width in SUMMARY_COLUMNS]


def draw_summary_header(pdf: TimetablePDF, y: float) -> float:
    rc = pdf.render_config
    x = rc.margin
    height = 7.0
    for (label, _), width in zip(SUMMARY_COLUMNS, summary_widths(pdf)):
        draw_cell(
            pdf,
            x,
            y,
            width,
            height,
            [label],
            PRIMARY,
            align="C",
            bold=True,
            font_size=rc.summary_font_size,
            padding=rc.padding,
            text_color=WHITE,
        )
        x += width
    return y + height


def draw_summary(pdf: TimetablePDF, summary: list[SubjectSummary], y: float) -> float:
    rc = pdf.render_config
    widths = summary_widths(pdf)
    pdf.set_font("Helvetica", size=rc.summary_font_size)
    line_height = pdf.font_size * 1.3

    def title_block(top: float) -> float:
        pdf.set_font("Helvetica", style="B", size=10)
        pdf.set_text_color(*PRIMARY)
        pdf.set_xy(rc.margin, top)
        pdf.cell(0, 6, "Summary of Courses")
        return draw_summary_header(pdf, top + 7)

    first_row = line_height + 2 * rc.padding
    y = ensure_space(pdf, y, 7 + 7 + first_row, lambda top: top)
    y = title_block(y)

    for index, entry in enumerate(summary):
        pdf.set_font("Helvetica", size=rc.summary_font_size)
        title_lines = wrap_text(
            pdf, sanitize_text(entry.descriptive_title), widths[2] - 2 * rc.padding
        ) or [""]
        row_height = len(title_lines) * line_height + 2 * rc.padding
        y = ensure_space(pdf, y, row_height, lambda top: draw_summary_header(pdf, top))
        fill = STRIPE_FILL if index % 2 else WHITE
        cells = [
            ([format_units(entry.units)], "C"),
            ([sanitize_text(entry.course_code)], "C"),
            (title_lines, "L"),
        ]
        x = rc.margin
        for (lines, align), width in zip(cells, widths):
            draw_cell(
                pdf,
                x,
                y,
                width,
                row_height,
                lines,
                fill,
                align=align,
                font_size=rc.summary_font_size,
                padding=rc.padding,
            )
            x += width
        y += row_height
    return y


def render_section(
    pdf: TimetablePDF,
    records: list[ScheduleRecord],
    user_info: UserInfo,
    assets: BrandAssets,
    config: dict,
    export_date: dt.date,
) -> list[PlacementDiagnostic]:
    pdf.add_page()
    y = draw_document_header(pdf, assets.logos, config, pdf.render_config.margin)
    y = draw_info_box(pdf, user_info, records, assets.avatar, export_date, y)
    grid, diagnostics = build_grid(records)
    y = draw_grid(pdf, grid, y)
    draw_summary(pdf, subjects_summary(records), y)
    return diagnostics


def render_timetable_pdf(
    records: list[ScheduleRecord],
    user_info: UserInfo | None = None,
    assets: BrandAssets | None = None,
    config: dict | None = None,
    render_config: RenderConfig | None = None,
    multi_section: bool = False,
    export_date: dt.date | None = None,
) -> RenderedTimetable:
    if not records:
        raise EmptyScheduleError()
    user_info = user_info or UserInfo()
    assets = assets or BrandAssets()
    config = config or DEFAULT_EXPORT_CONFIG
    render_config = render_config or RenderConfig()
    export_date = export_date or dt.date.today()

    pdf = TimetablePDF(
        render_config,
        footer_image=assets.footer,
        footer_text=config.get("footer_text") or "",
    )
    pdf.set_title(f"{config.get('product_name')} - {config.get('document_title')}")
    pdf.set_creator(str(config.get("product_name")))

    result = RenderedTimetable(data=b"")
    groups = group_by_section(records) if multi_section else [records]
    for group in groups:
        result.section_order.append(section_details(group).section_name)
        result.section_pages.append(pdf.page_no() + 1)
        result.diagnostics.extend(
            render_section(pdf, group, user_info, assets, config, export_date)
        )

    result.page_count = pdf.page_no()
    result.data = bytes(pdf.output())
    return result
