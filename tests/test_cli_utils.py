"""Tests for CLI formatting helpers and the progress printer."""

import io

import pytest

from cli.utils import ProgressPrinter, format_unit, resolve_unit_ref, short_id
from common.types import FileUnit, UnitState


def make_unit(unit_id="tmp_0123456789abcdef", name="photo.png", **kwargs):
    return FileUnit(id=unit_id, name=name, byte_size=2048, mime_type="image/png", **kwargs)


@pytest.fixture
def output():
    return io.StringIO()


@pytest.fixture
def printer(registry, output):
    printer = ProgressPrinter(registry, stream=output)
    registry.subscribe(printer)
    return printer


def test_short_id():
    assert short_id("rec-1") == "rec-1"
    assert short_id("tmp_0123456789abcdef") == "tmp_01234567..."


def test_format_unit_completed():
    unit = make_unit(state=UnitState.COMPLETED, progress_percent=100, remote_locator="https://cdn.example.com/p.png")

    text = format_unit(unit)

    assert "photo.png (ID: tmp_01234567...)" in text
    assert "[completed]" in text
    assert "Size: 2.00 KiB" in text
    assert "URL: https://cdn.example.com/p.png" in text


def test_format_unit_uploading_shows_percent():
    text = format_unit(make_unit(state=UnitState.UPLOADING, progress_percent=40))

    assert "[uploading 40%]" in text
    assert "URL:" not in text


def test_resolve_unit_ref(registry):
    registry.insert_batch([make_unit("rec-10"), make_unit("rec-11"), make_unit("tmp_ff")])

    assert resolve_unit_ref(registry, "rec-10") == ("rec-10", None)
    assert resolve_unit_ref(registry, "tmp") == ("tmp_ff", None)
    assert resolve_unit_ref(registry, "tmp_ff...") == ("tmp_ff", None)
    unit_id, error = resolve_unit_ref(registry, "rec")
    assert unit_id is None
    assert "ambiguous (2 files match)" in error


def test_progress_printer_prints_steps_once(registry, printer, output):
    unit = make_unit()
    registry.insert_batch([unit])

    for percent in (0, 10, 30, 49, 50, 99):
        registry.update(unit.id, state=UnitState.UPLOADING, progress_percent=percent)
    registry.update(unit.id, state=UnitState.COMPLETED, progress_percent=100)
    registry.update(unit.id, remote_public_id="uploads/photo")

    lines = output.getvalue().splitlines()
    assert len(lines) == 5
    assert "Uploading photo.png" in lines[0] and "0%" in lines[0]
    assert "25%" in lines[1]
    assert "50%" in lines[2]
    assert "75%" in lines[3]
    assert "Uploaded photo.png" in lines[4]


def test_progress_printer_follows_rekey(registry, printer, output):
    unit = make_unit()
    registry.insert_batch([unit])
    registry.update(unit.id, state=UnitState.COMPLETED, progress_percent=100)

    registry.rekey(unit.id, "rec-1")
    registry.update("rec-1", remote_public_id="uploads/photo")

    assert output.getvalue().count("Uploaded photo.png") == 1


def test_progress_printer_reports_failure(registry, printer, output):
    unit = make_unit()
    registry.insert_batch([unit])

    registry.update(unit.id, state=UnitState.FAILED)
    registry.update(unit.id, progress_percent=0)

    text = output.getvalue()
    assert text.count("failed") == 1
    assert "use 'retry'" in text


def test_progress_printer_forgets_removed_units(registry, printer):
    first = make_unit("tmp_a")
    second = make_unit("tmp_b", name="other.png")
    registry.insert_batch([first, second])
    registry.update(first.id, state=UnitState.UPLOADING, progress_percent=10)
    registry.update(second.id, state=UnitState.UPLOADING, progress_percent=10)

    registry.remove(first.id)
    assert set(printer._printed) == {second.id}

    registry.replace_all([])
    assert printer._printed == {}
