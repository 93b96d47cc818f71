"""
Low-level PDF output for both template styles.

Interactive templates are filled through their form fields with pypdf and
then flattened with PyMuPDF so the values become static page content.
Inert templates get the values drawn directly onto their pages. Every
function here decodes its own copy of the template bytes and returns a new
buffer; the input is never modified.
"""

from __future__ import annotations

import io
import logging
from typing import Iterable, List

import fitz  # PyMuPDF
from pypdf import PdfWriter

from .errors import OutputBuildError, TemplateLoadError
from .mode_detector import open_document, open_reader
from .models import (
    DetectedField,
    DetectedRadioOption,
    Detection,
    InertDetection,
    InteractiveDetection,
    InteractiveField,
)
from .settings import Settings

logger = logging.getLogger(__name__)

BLACK = (0, 0, 0)
TEXT_FONT = "helv"


def build_output(template_bytes: bytes, detection: Detection, settings: Settings) -> bytes:
    """Produce the filled PDF for whichever mode the template was loaded in."""
    try:
        if isinstance(detection, InteractiveDetection):
            return fill_interactive_template(template_bytes, detection.fields, settings)
        if isinstance(detection, InertDetection):
            return draw_inert_overlay(
                template_bytes, detection.scan.fields, detection.scan.radios, settings
            )
    except TemplateLoadError as exc:
        raise OutputBuildError(f"Template could not be re-opened: {exc}") from exc
    raise OutputBuildError(f"Unsupported detection result {type(detection).__name__}")


def fill_interactive_template(
    template_bytes: bytes,
    fields: Iterable[InteractiveField],
    settings: Settings,
) -> bytes:
    """Write field values into the form and flatten it."""
    fill_data = {field.name: field.value or "" for field in fields if field.is_text}

    try:
        reader = open_reader(template_bytes)
        writer = PdfWriter(clone_from=reader)
        for page in writer.pages:
            if "/Annots" not in page:
                continue
            writer.update_page_form_field_values(page, fill_data, auto_regenerate=False)

        buffer = io.BytesIO()
        writer.write(buffer)
        filled = buffer.getvalue()
    except TemplateLoadError:
        raise
    except Exception as exc:
        logger.error("Failed to fill form fields: %s", exc, exc_info=True)
        raise OutputBuildError(f"Failed to fill form fields: {exc}") from exc

    result = _flatten_form(filled, settings.widget_font_size)
    logger.info("Filled and flattened %d form field(s)", len(fill_data))
    return result


def _flatten_form(pdf_bytes: bytes, font_size: float) -> bytes:
    """Regenerate text widget appearances at a sane size, then bake them."""
    doc = open_document(pdf_bytes)
    try:
        for page in doc:
            for widget in page.widgets():
                if widget.field_type == fitz.PDF_WIDGET_TYPE_TEXT:
                    widget.text_fontsize = font_size
                    widget.update()
        doc.bake()
        return doc.tobytes(garbage=3, deflate=True)
    except Exception as exc:
        logger.error("Failed to flatten form: %s", exc, exc_info=True)
        raise OutputBuildError(f"Failed to flatten form: {exc}") from exc
    finally:
        doc.close()


def mark_radius(font_size: float) -> float:
    return max(font_size * 0.3, 4.0)


def draw_inert_overlay(
    template_bytes: bytes,
    fields: Iterable[DetectedField],
    radios: Iterable[DetectedRadioOption],
    settings: Settings,
) -> bytes:
    """Draw field values and selected radio marks at their detected positions."""
    doc = open_document(template_bytes)
    try:
        page_count = len(doc)
        drawn = 0
        for field in fields:
            if not field.value or not 1 <= field.page <= page_count:
                continue
            page = doc[field.page - 1]
            page.insert_text(
                fitz.Point(field.x, field.y + settings.text_baseline_offset),
                field.value,
                fontsize=settings.text_font_size,
                fontname=TEXT_FONT,
                color=BLACK,
            )
            drawn += 1

        marks = 0
        for radio in radios:
            if not radio.selected or not 1 <= radio.page <= page_count:
                continue
            page = doc[radio.page - 1]
            radius = mark_radius(radio.font_size)
            center = fitz.Point(radio.x + radius, radio.y + radius)
            if settings.mark_shape == "square":
                rect = fitz.Rect(center.x - radius, center.y - radius, center.x + radius, center.y + radius)
                page.draw_rect(rect, color=BLACK, fill=BLACK)
            else:
                page.draw_circle(center, radius, color=BLACK, fill=BLACK)
            marks += 1

        result = doc.tobytes(garbage=3, deflate=True)
    except Exception as exc:
        logger.error("Failed to draw overlay: %s", exc, exc_info=True)
        raise OutputBuildError(f"Failed to draw overlay: {exc}") from exc
    finally:
        doc.close()

    logger.info("Drew %d value(s) and %d radio mark(s)", drawn, marks)
    return result


def render_page_png(pdf_bytes: bytes, page_number: int, scale: float) -> bytes:
    """Rasterize one 1-based page to PNG."""
    doc = open_document(pdf_bytes)
    try:
        if not 1 <= page_number <= len(doc):
            raise IndexError(f"Page {page_number} out of range. PDF has {len(doc)} page(s).")
        pixmap = doc[page_number - 1].get_pixmap(matrix=fitz.Matrix(scale, scale), alpha=False)
        return pixmap.tobytes("png")
    finally:
        doc.close()


def extract_page_texts(pdf_bytes: bytes) -> List[str]:
    """Visible text per page, used to verify flattened output."""
    doc = open_document(pdf_bytes)
    try:
        return [page.get_text("text") for page in doc]
    finally:
        doc.close()
