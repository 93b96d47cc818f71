from __future__ import annotations

import fitz
import pytest

from template_autofill.field_mapper import default_field_mapper
from template_autofill.models import DataSource, Datasets, TextRun
from template_autofill.radio_groups import RadioGroupResolver
from template_autofill.token_scanner import (
    TokenScanner,
    cluster_lines,
    interpolate_x,
    line_text,
    locate_offset,
)

from conftest import PAGE_HEIGHT, make_inert_pdf


def _run(text, x, baseline_y, width, height=12.0, page=1):
    return TextRun(text=text, x=x, baseline_y=baseline_y, width=width, height=height, page=page)


@pytest.fixture
def scanner(settings):
    return TokenScanner(default_field_mapper(), RadioGroupResolver(settings), settings)


def test_token_x_is_interpolated_inside_its_run() -> None:
    line = [_run("ABC{x}DEF", x=100, baseline_y=500, width=90)]

    run, offset = locate_offset(line, 3)

    assert offset == 3
    assert interpolate_x(run, offset) == pytest.approx(130.0)


def test_locate_offset_spans_runs() -> None:
    line = [_run("Name: ", 50, 500, 30), _run("{firstName}", 80, 500, 55)]

    run, offset = locate_offset(line, len("Name: "))

    assert run.text == "{firstName}"
    assert offset == 0
    assert locate_offset(line, 100) is None


def test_cluster_lines_uses_tolerance_and_sorts_by_x() -> None:
    runs = [
        _run("world", 120, 500.0, 30),
        _run("hello", 50, 501.5, 30),
        _run("next line", 50, 480.0, 50),
    ]

    lines = cluster_lines(runs, tolerance=3.0)

    assert [line_text(line) for line in lines] == ["helloworld", "next line"]


def test_runs_just_outside_tolerance_split() -> None:
    runs = [_run("a", 0, 500.0, 5), _run("b", 10, 503.0, 5)]

    assert len(cluster_lines(runs, tolerance=3.0)) == 2


def test_token_split_across_runs_is_found(scanner) -> None:
    runs = [_run("Name: {first", 50, 700, 60), _run("Name}", 110, 700.5, 25)]
    datasets = Datasets(subject={"firstName": "Ada"})

    result = scanner.scan_pages([(1, PAGE_HEIGHT, runs)], datasets)

    assert [f.token for f in result.fields] == ["{firstName}"]
    field = result.fields[0]
    assert field.x == pytest.approx(50 + 6 / 12 * 60)
    assert field.y == pytest.approx(PAGE_HEIGHT - 700)
    assert field.value == "Ada"


def test_field_width_depends_on_line_occupancy(scanner) -> None:
    runs = [
        _run("{firstName} {lastName}", 50, 700, 120),
        _run("{city}", 50, 650, 30),
    ]

    result = scanner.scan_pages([(1, PAGE_HEIGHT, runs)], Datasets())

    widths = {f.token: f.width for f in result.fields}
    assert widths == {"{firstName}": 150.0, "{lastName}": 150.0, "{city}": 200.0}


def test_unknown_tokens_are_ignored(scanner) -> None:
    runs = [_run("{totallyUnknownField} {zip}", 50, 700, 120)]

    result = scanner.scan_pages([(1, PAGE_HEIGHT, runs)], Datasets(subject={"zipCode": "62701"}))

    assert [(f.token, f.value, f.width) for f in result.fields] == [("{zip}", "62701", 200.0)]


def test_unique_keys_do_not_collide(scanner) -> None:
    runs = [
        _run("{city}", 50, 700, 30),
        _run("{city}", 50, 650, 30),
    ]
    pages = [(1, PAGE_HEIGHT, runs), (2, PAGE_HEIGHT, [_run("{city}", 50, 700, 30, page=2)])]

    result = scanner.scan_pages(pages, Datasets())

    keys = [f.unique_key for f in result.fields]
    assert len(keys) == 3
    assert len(set(keys)) == 3


def test_runs_for_pages_outside_document_are_skipped(scanner) -> None:
    pages = [(3, PAGE_HEIGHT, [_run("{city}", 50, 700, 30, page=3)])]

    result = scanner.scan_pages(pages, Datasets(), page_count=1)

    assert result.fields == []


def test_scan_document_reads_real_pages(scanner, inert_pdf, datasets) -> None:
    doc = fitz.open(stream=inert_pdf, filetype="pdf")
    try:
        result = scanner.scan_document(doc, datasets)
    finally:
        doc.close()

    assert result.page_count == 2
    by_token = {f.token: f for f in result.fields}
    assert set(by_token) == {
        "{firstName}",
        "{lastName}",
        "{dateOfBirth}",
        "{doctorLastName}",
        "{date}",
    }
    assert by_token["{firstName}"].y == pytest.approx(100, abs=0.5)
    assert by_token["{firstName}"].x > 72
    assert by_token["{lastName}"].x > by_token["{firstName}"].x
    assert by_token["{firstName}"].width == 150.0
    assert by_token["{dateOfBirth}"].width == 200.0
    assert by_token["{dateOfBirth}"].value == "05/02/1990"
    assert by_token["{doctorLastName}"].source is DataSource.AUTHORITY
    assert by_token["{doctorLastName}"].page == 2
    assert by_token["{date}"].value == "10/18/2026"


def test_scanning_is_deterministic(scanner, datasets) -> None:
    pdf = make_inert_pdf([[(72, 100, "{firstName} and {city}"), (72, 200, "{radio_condition_a}")]])

    def snapshot():
        doc = fitz.open(stream=pdf, filetype="pdf")
        try:
            result = scanner.scan_document(doc, datasets)
        finally:
            doc.close()
        return (
            [(f.unique_key, f.x, f.y, f.width, f.value) for f in result.fields],
            [(r.group, r.option, r.x, r.y, r.selected) for r in result.radios],
        )

    assert snapshot() == snapshot()
