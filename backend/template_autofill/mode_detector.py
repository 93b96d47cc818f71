"""
Template mode detection.

Decides, once per load, whether a template is filled through its own form
fields (interactive) or by drawing values over placeholder text (inert),
and produces the initial field/option records for that mode.
"""

from __future__ import annotations

import io
import logging
from typing import List, Tuple

import fitz  # PyMuPDF
from pypdf import PdfReader

from .errors import TemplateLoadError
from .field_mapper import FieldNameMapper
from .models import Datasets, Detection, InertDetection, InteractiveDetection, InteractiveField
from .offsets import OffsetCorrector
from .token_scanner import TokenScanner
from .value_resolver import resolve_value

logger = logging.getLogger(__name__)


def open_reader(template_bytes: bytes) -> PdfReader:
    """Open template bytes with pypdf, ignoring owner-only encryption."""
    if not template_bytes:
        raise TemplateLoadError("Template is empty")
    try:
        reader = PdfReader(io.BytesIO(template_bytes), strict=False)
        if reader.is_encrypted:
            reader.decrypt("")
        # Forces the page tree to be parsed
        len(reader.pages)
    except Exception as exc:
        raise TemplateLoadError(f"Template could not be parsed as PDF: {exc}") from exc
    return reader


def open_document(template_bytes: bytes) -> "fitz.Document":
    """Open template bytes with PyMuPDF, ignoring owner-only encryption."""
    if not template_bytes:
        raise TemplateLoadError("Template is empty")
    try:
        doc = fitz.open(stream=template_bytes, filetype="pdf")
    except Exception as exc:
        raise TemplateLoadError(f"Template could not be parsed as PDF: {exc}") from exc
    if doc.needs_pass and not doc.authenticate(""):
        doc.close()
        raise TemplateLoadError("Template is password protected")
    return doc


def _is_terminal(field) -> bool:
    kids = field.get("/Kids")
    if not kids:
        return True
    return not any("/T" in kid.get_object() for kid in kids)


def list_form_fields(reader: PdfReader) -> List[Tuple[str, str]]:
    """Return (qualified name, field type) for every terminal form field."""
    fields = reader.get_fields() or {}
    result = []
    for name, field in fields.items():
        if not _is_terminal(field):
            continue
        result.append((name, str(field.get("/FT") or "")))
    return result


class ModeDetector:
    def __init__(
        self,
        field_mapper: FieldNameMapper,
        token_scanner: TokenScanner,
        offset_corrector: OffsetCorrector,
    ):
        self.field_mapper = field_mapper
        self.token_scanner = token_scanner
        self.offset_corrector = offset_corrector

    def detect(self, template_bytes: bytes, datasets: Datasets) -> Detection:
        reader = open_reader(template_bytes)
        form_fields = list_form_fields(reader)
        page_count = len(reader.pages)

        interactive_fields: List[InteractiveField] = []
        matches = 0
        for name, field_type in form_fields:
            entry = self.field_mapper.lookup_field_name(name)
            if entry is None:
                interactive_fields.append(InteractiveField(name=name, field_type=field_type))
                continue
            matches += 1
            interactive_fields.append(
                InteractiveField(
                    name=name,
                    value=resolve_value(entry.source, entry.data_key, datasets),
                    matched=True,
                    field_type=field_type,
                )
            )

        if matches:
            logger.info(
                "Interactive template: %d of %d form field(s) matched", matches, len(form_fields)
            )
            return InteractiveDetection(page_count=page_count, fields=interactive_fields)

        logger.info(
            "No mappable form fields among %d; scanning placeholders", len(form_fields)
        )
        doc = open_document(template_bytes)
        try:
            scan = self.token_scanner.scan_document(doc, datasets)
        except Exception as exc:
            raise TemplateLoadError(f"Template text could not be read: {exc}") from exc
        finally:
            doc.close()

        correction = self.offset_corrector.correction_for(datasets.authority.get("lastName"))
        if correction.dx or correction.dy:
            logger.info(
                "Applying offset (%.1f, %.1f) for '%s'", correction.dx, correction.dy, correction.party_key
            )
        self.offset_corrector.apply(scan, correction)
        return InertDetection(scan=scan)
