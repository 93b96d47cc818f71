from __future__ import annotations

import fitz
import pytest

from template_autofill.errors import TemplateLoadError
from template_autofill.models import DetectionMode, InertDetection, InteractiveDetection

from conftest import make_inert_pdf, make_interactive_pdf


def test_matching_form_fields_select_interactive_mode(detector, interactive_pdf, datasets) -> None:
    detection = detector.detect(interactive_pdf, datasets)

    assert isinstance(detection, InteractiveDetection)
    assert detection.mode is DetectionMode.INTERACTIVE
    assert detection.page_count == 1
    by_name = {f.name: f for f in detection.fields}
    assert by_name["First Name"].value == "Alice"
    assert by_name["last_name"].value == "Zephyr"
    assert by_name["DOB"].value == "05/02/1990"
    assert by_name["Notes"].matched is False
    assert by_name["Notes"].value == ""


def test_unmappable_form_fields_fall_back_to_scanning(detector, datasets) -> None:
    pdf = make_interactive_pdf(["Signature1"], extra_text=[(72, 100, "Name {firstName}")])

    detection = detector.detect(pdf, datasets)

    assert isinstance(detection, InertDetection)
    assert [f.value for f in detection.scan.fields] == ["Alice"]


def test_plain_pdf_is_inert(detector, inert_pdf, datasets) -> None:
    detection = detector.detect(inert_pdf, datasets)

    assert detection.mode is DetectionMode.INERT
    assert detection.page_count == 2
    radios = {(r.group, r.option): r.selected for r in detection.scan.radios}
    assert radios == {
        ("idtype", "dl"): True,
        ("idtype", "passport"): False,
        ("condition", "a"): False,
        ("condition", "b"): False,
    }


def test_template_without_placeholders_is_inert_and_empty(detector, datasets) -> None:
    detection = detector.detect(make_inert_pdf([[(72, 100, "Nothing to fill")]]), datasets)

    assert isinstance(detection, InertDetection)
    assert detection.scan.fields == []
    assert detection.scan.radios == []


@pytest.mark.parametrize("data", [b"", b"definitely not a pdf"])
def test_unparseable_bytes_raise(detector, datasets, data) -> None:
    with pytest.raises(TemplateLoadError):
        detector.detect(data, datasets)


def test_owner_password_only_template_is_read(detector, datasets) -> None:
    doc = fitz.open()
    doc.new_page().insert_text((72, 100), "Hello {firstName}", fontname="helv", fontsize=11)
    data = doc.tobytes(encryption=fitz.PDF_ENCRYPT_AES_256, owner_pw="owner-secret", user_pw="")
    doc.close()

    detection = detector.detect(data, datasets)

    assert [f.value for f in detection.scan.fields] == ["Alice"]
