#!/usr/bin/env python3
"""Export class schedules as a PDF or CSV weekly timetable."""

from __future__ import annotations

import argparse
import asyncio
import datetime as dt
import enum
import importlib
import inspect
import json
import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import ModuleType
from typing import TYPE_CHECKING

import export_config
from export_errors import DependencyLoadError, EmptyScheduleError, ExportError
from logging_setup import setup_logging
from placement import PlacementDiagnostic
from schedule_records import ScheduleRecord, UserInfo, parse_schedules, parse_user_info

if TYPE_CHECKING:
    import httpx

logger = logging.getLogger(__name__)


class ExportChoice(str, enum.Enum):
    PDF = "pdf"
    CSV = "csv"
    CANCELLED = "cancelled"


PDF_DEPENDENCIES = ["fpdf", "PIL", "httpx", "assets", "render_timetable_pdf"]
CSV_DEPENDENCIES = ["render_timetable_csv"]


@dataclass
class ExportResult:
    choice: ExportChoice
    path: Path | None = None
    diagnostics: list[PlacementDiagnostic] = field(default_factory=list)


@dataclass
class ExportControl:
    label: str
    disabled: bool = False


def default_controls() -> dict[ExportChoice, ExportControl]:
    return {
        ExportChoice.PDF: ExportControl("Export to PDF"),
        ExportChoice.CSV: ExportControl("Export to CSV"),
    }


@dataclass
class ExportPrompt:
    controls: dict[ExportChoice, ExportControl] = field(default_factory=default_controls)
    is_open: bool = True

    def dismiss(self) -> None:
        self.is_open = False


Chooser = Callable[[ExportPrompt], "ExportChoice | str | None | Awaitable"]


class DependencyCache:
    """Lazily imported rendering modules, kept for the life of the process."""

    def __init__(self, importer: Callable[[str], ModuleType] = importlib.import_module) -> None:
        self._importer = importer
        self._modules: dict[str, ModuleType] = {}

    def is_loaded(self, name: str) -> bool:
        return name in self._modules

    def load(self, name: str) -> ModuleType:
        module = self._modules.get(name)
        if module is not None:
            return module
        try:
            module = self._importer(name)
        except ImportError as exc:
            raise DependencyLoadError(name, exc) from exc
        logger.debug("Loaded rendering dependency %s", name)
        self._modules[name] = module
        return module

    def load_all(self, names: Iterable[str]) -> dict[str, ModuleType]:
        return {name: self.load(name) for name in names}


def coerce_choice(value: ExportChoice | str | None) -> ExportChoice:
    if value is None:
        return ExportChoice.CANCELLED
    if isinstance(value, ExportChoice):
        return value
    return ExportChoice(str(value).strip().lower())


def coerce_user_info(user_info: UserInfo | Mapping | None) -> UserInfo:
    if isinstance(user_info, UserInfo):
        return user_info
    return parse_user_info(user_info)


class TimetableExporter:
    """Runs one export at a time; holds no state besides the injected cache."""

    def __init__(
        self,
        config: dict | None = None,
        output_dir: Path = Path("."),
        dependencies: DependencyCache | None = None,
        today: dt.date | None = None,
        asset_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config or export_config.normalize_export_config(None)
        self.output_dir = output_dir
        self.dependencies = dependencies or DependencyCache()
        self.today = today
        self.asset_client = asset_client

    def export_date(self) -> dt.date:
        return self.today or dt.date.today()

    def output_path(self, base_name: str | None, extension: str) -> Path:
        base = export_config.base_filename(self.config, base_name)
        return self.output_dir / f"{base}_{self.export_date().isoformat()}.{extension}"

    async def _save(self, path: Path, data: bytes) -> None:
        await asyncio.to_thread(path.parent.mkdir, parents=True, exist_ok=True)
        await asyncio.to_thread(path.write_bytes, data)
        logger.info("Saved %s", path)

    def _records(self, schedules: Iterable[object] | None) -> list[ScheduleRecord]:
        if not schedules:
            raise EmptyScheduleError()
        records = parse_schedules(schedules)
        if not records:
            raise EmptyScheduleError()
        return records

    async def export_pdf(
        self,
        schedules: Iterable[object] | None,
        user_info: UserInfo | Mapping | None = None,
        base_name: str | None = None,
        multi_section: bool = False,
    ) -> ExportResult:
        records = self._records(schedules)
        modules = self.dependencies.load_all(PDF_DEPENDENCIES)
        info = coerce_user_info(user_info)
        assets = await modules["assets"].load_assets(
            self.config, info.profile_picture, self.asset_client
        )
        rendered = modules["render_timetable_pdf"].render_timetable_pdf(
            records,
            info,
            assets,
            self.config,
            multi_section=multi_section,
            export_date=self.export_date(),
        )
        path = self.output_path(base_name, "pdf")
        await self._save(path, rendered.data)
        return ExportResult(ExportChoice.PDF, path, rendered.diagnostics)

    async def export_csv(
        self,
        schedules: Iterable[object] | None,
        user_info: UserInfo | Mapping | None = None,
        base_name: str | None = None,
        multi_section: bool = False,
    ) -> ExportResult:
        records = self._records(schedules)
        modules = self.dependencies.load_all(CSV_DEPENDENCIES)
        rendered = modules["render_timetable_csv"].render_timetable_csv(
            records,
            coerce_user_info(user_info),
            self.config,
            multi_section=multi_section,
            export_date=self.export_date(),
        )
        path = self.output_path(base_name, "csv")
        await self._save(path, rendered.text.encode("utf-8"))
        return ExportResult(ExportChoice.CSV, path, rendered.diagnostics)

    async def export(
        self,
        choice: ExportChoice | str,
        schedules: Iterable[object] | None,
        user_info: UserInfo | Mapping | None = None,
        base_name: str | None = None,
        multi_section: bool = False,
    ) -> ExportResult:
        choice = coerce_choice(choice)
        if choice is ExportChoice.PDF:
            return await self.export_pdf(schedules, user_info, base_name, multi_section)
        if choice is ExportChoice.CSV:
            return await self.export_csv(schedules, user_info, base_name, multi_section)
        return ExportResult(ExportChoice.CANCELLED)

    async def show_export_dialog(
        self,
        schedules: Iterable[object] | None,
        user_info: UserInfo | Mapping | None,
        chooser: Chooser,
        prompt: ExportPrompt | None = None,
        base_name: str | None = None,
        multi_section: bool = False,
    ) -> ExportResult:
        """Ask for a format, then run the matching export.

        The chosen control stays disabled while the export runs.  On failure
        it is re-enabled, the prompt stays open and the error propagates; on
        success the prompt is dismissed.
        """
        prompt = prompt or ExportPrompt()
        answer = chooser(prompt)
        if inspect.isawaitable(answer):
            answer = await answer
        choice = coerce_choice(answer)
        if choice is ExportChoice.CANCELLED:
            prompt.dismiss()
            return ExportResult(ExportChoice.CANCELLED)

        control = prompt.controls[choice]
        idle_label = control.label
        control.disabled = True
        control.label = "Exporting..."
        try:
            result = await self.export(choice, schedules, user_info, base_name, multi_section)
        except Exception:
            control.disabled = False
            control.label = idle_label
            raise
        control.disabled = False
        control.label = idle_label
        prompt.dismiss()
        return result


def console_chooser(
    prompt: ExportPrompt,
    read: Callable[[str], str] = input,
    write: Callable[[str], None] = print,
) -> ExportChoice:
    options = [choice for choice, control in prompt.controls.items() if not control.disabled]
    write("Export Schedule")
    for index, choice in enumerate(options, start=1):
        write(f"  {index}) {prompt.controls[choice].label}")
    write(f"  {len(options) + 1}) Cancel")
    while True:
        try:
            answer = read("Choose your preferred export format: ").strip().lower()
        except EOFError:
            return ExportChoice.CANCELLED
        if answer in {"", "c", "cancel", str(len(options) + 1)}:
            return ExportChoice.CANCELLED
        if answer.isdigit() and 1 <= int(answer) <= len(options):
            return options[int(answer) - 1]
        for choice in options:
            if answer == choice.value:
                return choice
        write(f"Unknown option: {answer}")


def load_schedule_file(path: Path) -> tuple[list, dict]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise SystemExit(f"Schedule file not found: {path}")
    except json.JSONDecodeError as exc:
        raise SystemExit(f"Schedule file is not valid JSON: {exc}")
    if isinstance(data, list):
        return data, {}
    if isinstance(data, dict):
        return list(data.get("schedules") or []), dict(data.get("user") or {})
    raise SystemExit("Schedule file must hold a list or an object with 'schedules'")


def build_user_info(args: argparse.Namespace, file_user: dict) -> UserInfo:
    merged = dict(file_user)
    overrides = {
        "name": args.user_name,
        "profilePicture": args.avatar,
        "role": args.role,
        "section": args.section,
        "ctuid": args.ctuid,
    }
    merged.update({key: value for key, value in overrides.items() if value})
    return parse_user_info(merged)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        description="Export a list of class schedules as a PDF or CSV weekly timetable."
    )
    parser.add_argument("schedules", type=Path, help="JSON file with schedule records")
    parser.add_argument("--format", choices=["pdf", "csv", "ask"], default="ask")
    parser.add_argument(
        "--multi-section",
        action="store_true",
        help="Render one timetable per section, ordered by year level and name.",
    )
    parser.add_argument("--user-name")
    parser.add_argument("--avatar", help="Profile picture path, URL or data URI")
    parser.add_argument("--role")
    parser.add_argument("--section")
    parser.add_argument("--ctuid")
    parser.add_argument(
        "--config",
        type=Path,
        default=Path("export.json"),
        help="Branding overrides JSON",
    )
    parser.add_argument("--outdir", type=Path, default=Path("exports"))
    parser.add_argument("--base-name", help="Output filename prefix")
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args(argv)

    setup_logging(args.log_level)
    schedules, file_user = load_schedule_file(args.schedules)
    user_info = build_user_info(args, file_user)
    exporter = TimetableExporter(
        config=export_config.load_export_config(args.config),
        output_dir=args.outdir,
    )

    try:
        if args.format == "ask":
            result = asyncio.run(
                exporter.show_export_dialog(
                    schedules,
                    user_info,
                    console_chooser,
                    base_name=args.base_name,
                    multi_section=args.multi_section,
                )
            )
        else:
            result = asyncio.run(
                exporter.export(
                    args.format,
                    schedules,
                    user_info,
                    base_name=args.base_name,
                    multi_section=args.multi_section,
                )
            )
    except ExportError as exc:
        raise SystemExit(f"Export failed: {exc}")

    if result.choice is ExportChoice.CANCELLED:
        print("Export cancelled.")
        return
    if result.diagnostics:
        print(f"Skipped {len(result.diagnostics)} schedules (see warnings above).")
    print(f"Exported {result.path}")


if __name__ == "__main__":
    main()
