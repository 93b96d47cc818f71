from __future__ import annotations

from typing import Iterable, List, Sequence, Tuple

import fitz
import pytest

from template_autofill.models import Datasets
from template_autofill.service import build_detector
from template_autofill.settings import Settings

PAGE_WIDTH = 612
PAGE_HEIGHT = 792

Line = Tuple[float, float, str]


def make_inert_pdf(pages: Sequence[Iterable[Line]], fontsize: float = 11) -> bytes:
    """Build a PDF whose pages carry plain text at (x, baseline-from-top)."""
    doc = fitz.open()
    for lines in pages:
        page = doc.new_page(width=PAGE_WIDTH, height=PAGE_HEIGHT)
        for x, y, text in lines:
            page.insert_text((x, y), text, fontsize=fontsize, fontname="helv")
    data = doc.tobytes()
    doc.close()
    return data


def make_interactive_pdf(field_names: List[str], extra_text: Iterable[Line] = ()) -> bytes:
    """Build a one-page PDF with a text widget per name."""
    doc = fitz.open()
    page = doc.new_page(width=PAGE_WIDTH, height=PAGE_HEIGHT)
    for x, y, text in extra_text:
        page.insert_text((x, y), text, fontsize=11, fontname="helv")
    for index, name in enumerate(field_names):
        widget = fitz.Widget()
        widget.field_name = name
        widget.field_type = fitz.PDF_WIDGET_TYPE_TEXT
        widget.rect = fitz.Rect(72, 300 + index * 40, 360, 320 + index * 40)
        widget.text_fontsize = 11
        page.add_widget(widget)
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def detector(settings):
    return build_detector(settings)


@pytest.fixture
def datasets() -> Datasets:
    return Datasets(
        subject={
            "firstName": "Alice",
            "lastName": "Zephyr",
            "dateOfBirth": "1990-05-02",
            "city": "Springfield",
            "idType": "drivers_license",
        },
        authority={"firstName": "Gregory", "lastName": "House", "licenseNumber": "LIC-77"},
        meta={"generatedDate": "10/18/2026"},
    )


@pytest.fixture
def inert_pdf() -> bytes:
    return make_inert_pdf(
        [
            [
                (72, 100, "Name: {firstName} {lastName}"),
                (72, 140, "Born {dateOfBirth}"),
                (72, 180, "Extra {totallyUnknownField}"),
                (72, 220, "{radio_idtype_dl} Driver license  {radio_idtype_passport} Passport"),
                (72, 260, "{radio_condition_a} A   {radio_condition_b} B"),
            ],
            [
                (72, 100, "Issued by {doctorLastName} on {date}"),
            ],
        ]
    )


@pytest.fixture
def interactive_pdf() -> bytes:
    return make_interactive_pdf(["First Name", "last_name", "DOB", "Notes"])
