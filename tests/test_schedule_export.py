import asyncio
import datetime as dt
import importlib
import json

import pytest

from export_config import normalize_export_config
from export_errors import DependencyLoadError, EmptyScheduleError, InvalidRecordError
from schedule_export import (
    DependencyCache,
    ExportChoice,
    ExportPrompt,
    TimetableExporter,
    console_chooser,
    main,
)

TODAY = dt.date(2026, 10, 18)

SCHEDULE = {
    "day": "Monday",
    "startTime": "9:00",
    "startPeriod": "AM",
    "endTime": "11:00",
    "endPeriod": "AM",
    "scheduleType": "lecture",
    "subject": {"_id": "s1", "courseCode": "PC 317", "descriptiveTitle": "Networking", "units": 3},
    "teacher": {"fullname": "Juan Dela Cruz"},
    "room": {"roomName": "CL1"},
}


class CountingImporter:
    def __init__(self) -> None:
        self.calls: list[str] = []

    def __call__(self, name: str):
        self.calls.append(name)
        return importlib.import_module(name)


def failing_importer(name: str):
    raise ImportError(f"No module named '{name}'")


def make_exporter(tmp_path, dependencies: DependencyCache | None = None) -> TimetableExporter:
    config = normalize_export_config({"logos": [], "footer_image": None})
    return TimetableExporter(
        config=config,
        output_dir=tmp_path,
        dependencies=dependencies,
        today=TODAY,
    )


def test_csv_export_writes_dated_file(tmp_path) -> None:
    exporter = make_exporter(tmp_path)
    result = asyncio.run(exporter.export_csv([SCHEDULE], {"name": "Pedro Penduko"}))
    assert result.choice is ExportChoice.CSV
    assert result.path == tmp_path / "schedule_2026-10-18.csv"
    text = result.path.read_text(encoding="utf-8")
    assert "Name:,Pedro Penduko" in text
    assert result.diagnostics == []


def test_pdf_export_writes_dated_file(tmp_path) -> None:
    exporter = make_exporter(tmp_path)
    result = asyncio.run(exporter.export_pdf([SCHEDULE], base_name="bsit3a"))
    assert result.path == tmp_path / "bsit3a_2026-10-18.pdf"
    assert result.path.read_bytes().startswith(b"%PDF")


def test_empty_schedules_raise_and_write_nothing(tmp_path) -> None:
    exporter = make_exporter(tmp_path)
    for schedules in (None, []):
        with pytest.raises(EmptyScheduleError):
            asyncio.run(exporter.export("csv", schedules))
    assert list(tmp_path.iterdir()) == []


def test_non_mapping_record_is_rejected(tmp_path) -> None:
    exporter = make_exporter(tmp_path)
    with pytest.raises(InvalidRecordError):
        asyncio.run(exporter.export_csv([SCHEDULE, "oops"]))


def test_dependencies_load_once(tmp_path) -> None:
    importer = CountingImporter()
    exporter = make_exporter(tmp_path, DependencyCache(importer))
    asyncio.run(exporter.export_csv([SCHEDULE]))
    asyncio.run(exporter.export_csv([SCHEDULE]))
    assert importer.calls == ["render_timetable_csv"]
    assert exporter.dependencies.is_loaded("render_timetable_csv")
    assert not exporter.dependencies.is_loaded("render_timetable_pdf")


def test_dependency_failure_surfaces(tmp_path) -> None:
    exporter = make_exporter(tmp_path, DependencyCache(failing_importer))
    with pytest.raises(DependencyLoadError) as excinfo:
        asyncio.run(exporter.export_pdf([SCHEDULE]))
    assert excinfo.value.name == "fpdf"
    assert list(tmp_path.iterdir()) == []


def test_dialog_cancel_dismisses_without_export(tmp_path) -> None:
    exporter = make_exporter(tmp_path)
    prompt = ExportPrompt()
    result = asyncio.run(
        exporter.show_export_dialog([SCHEDULE], None, lambda p: None, prompt=prompt)
    )
    assert result.choice is ExportChoice.CANCELLED
    assert not prompt.is_open
    assert list(tmp_path.iterdir()) == []


def test_dialog_disables_control_while_exporting(tmp_path) -> None:
    exporter = make_exporter(tmp_path)
    prompt = ExportPrompt()
    seen = {}

    original = exporter.export

    async def observing_export(*args, **kwargs):
        control = prompt.controls[ExportChoice.CSV]
        seen["disabled"] = control.disabled
        seen["label"] = control.label
        return await original(*args, **kwargs)

    exporter.export = observing_export

    async def choose(p: ExportPrompt) -> str:
        return "csv"

    result = asyncio.run(exporter.show_export_dialog([SCHEDULE], None, choose, prompt=prompt))
    assert seen == {"disabled": True, "label": "Exporting..."}
    assert result.path.exists()
    assert not prompt.is_open
    assert prompt.controls[ExportChoice.CSV].disabled is False
    assert prompt.controls[ExportChoice.CSV].label == "Export to CSV"


def test_dialog_failure_restores_control_and_stays_open(tmp_path) -> None:
    exporter = make_exporter(tmp_path)
    prompt = ExportPrompt()
    with pytest.raises(EmptyScheduleError):
        asyncio.run(exporter.show_export_dialog([], None, lambda p: ExportChoice.PDF, prompt=prompt))
    assert prompt.is_open
    assert prompt.controls[ExportChoice.PDF].disabled is False
    assert prompt.controls[ExportChoice.PDF].label == "Export to PDF"


def test_console_chooser_accepts_number_and_name() -> None:
    output = []
    answers = iter(["7", "2"])
    choice = console_chooser(ExportPrompt(), read=lambda _: next(answers), write=output.append)
    assert choice is ExportChoice.CSV
    assert "Unknown option: 7" in output

    assert console_chooser(ExportPrompt(), read=lambda _: "PDF", write=output.append) is ExportChoice.PDF
    assert console_chooser(ExportPrompt(), read=lambda _: "", write=output.append) is ExportChoice.CANCELLED


def test_console_chooser_eof_cancels() -> None:
    def read(_: str) -> str:
        raise EOFError

    assert console_chooser(ExportPrompt(), read=read, write=lambda _: None) is ExportChoice.CANCELLED


def test_main_exports_csv(tmp_path, capsys) -> None:
    schedule_file = tmp_path / "schedules.json"
    schedule_file.write_text(
        json.dumps({"schedules": [SCHEDULE], "user": {"name": "Pedro Penduko"}}),
        encoding="utf-8",
    )
    outdir = tmp_path / "out"
    main(
        [
            str(schedule_file),
            "--format",
            "csv",
            "--outdir",
            str(outdir),
            "--config",
            str(tmp_path / "missing.json"),
            "--role",
            "student",
        ]
    )
    written = list(outdir.glob("schedule_*.csv"))
    assert len(written) == 1
    text = written[0].read_text(encoding="utf-8")
    assert "Name:,Pedro Penduko" in text
    assert "Role:,student" in text
    assert "Exported" in capsys.readouterr().out


def test_main_reports_empty_schedule(tmp_path) -> None:
    schedule_file = tmp_path / "schedules.json"
    schedule_file.write_text("[]", encoding="utf-8")
    with pytest.raises(SystemExit, match="No schedules to export"):
        main([str(schedule_file), "--format", "pdf", "--outdir", str(tmp_path / "out")])
