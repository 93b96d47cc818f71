"""
Placeholder Token Scanner

Recovers the page position of literal `{token}` placeholders in templates
that have no usable form fields.

The text layer reports independently positioned glyph runs. Runs are
clustered into visual lines by baseline, each line's text is rebuilt
left-to-right and scanned for tokens, and a token's x position is
interpolated inside the run that holds its first character.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, List, Optional, Sequence, Tuple

import fitz  # PyMuPDF

from .field_mapper import FieldNameMapper
from .models import Datasets, DetectedField, ScanResult, TextRun
from .radio_groups import RadioGroupResolver, RadioOptionSet
from .settings import Settings
from .value_resolver import resolve_value

logger = logging.getLogger(__name__)

TOKEN_PATTERN = re.compile(r"\{(\w+)\}")

DEFAULT_FONT_SIZE = 12.0


def extract_text_runs(page: "fitz.Page", page_number: int) -> List[TextRun]:
    """Read every non-empty span on the page as a TextRun.

    PyMuPDF reports span origins top-down; they are flipped into PDF user
    space so that `baseline_y` grows upwards like the page's own coordinates.
    """
    page_height = float(page.rect.height)
    runs: List[TextRun] = []
    text_dict = page.get_text("dict")
    for block in text_dict.get("blocks", []):
        if block.get("type", 0) != 0:
            continue
        for line in block.get("lines", []):
            for span in line.get("spans", []):
                text = span.get("text", "")
                if not text:
                    continue
                x0, _, x1, _ = span["bbox"]
                origin_x, origin_y = span.get("origin", (x0, span["bbox"][3]))
                runs.append(
                    TextRun(
                        text=text,
                        x=float(origin_x),
                        baseline_y=page_height - float(origin_y),
                        width=float(x1 - x0),
                        height=float(span.get("size") or DEFAULT_FONT_SIZE),
                        page=page_number,
                    )
                )
    return runs


def cluster_lines(runs: Iterable[TextRun], tolerance: float) -> List[List[TextRun]]:
    """Group runs whose baseline is within `tolerance` of a line's first run.

    Lines keep their first-seen order; runs inside a line are sorted by x.
    """
    lines: List[List[TextRun]] = []
    for run in runs:
        for line in lines:
            if abs(line[0].baseline_y - run.baseline_y) < tolerance:
                line.append(run)
                break
        else:
            lines.append([run])
    return [sorted(line, key=lambda run: run.x) for line in lines]


def line_text(line: Sequence[TextRun]) -> str:
    return "".join(run.text for run in line)


def locate_offset(line: Sequence[TextRun], offset: int) -> Optional[Tuple[TextRun, int]]:
    """Find the run holding character `offset` of the line's joined text."""
    consumed = 0
    for run in line:
        if consumed + len(run.text) > offset:
            return run, offset - consumed
        consumed += len(run.text)
    return None


def interpolate_x(run: TextRun, offset_in_run: int) -> float:
    return run.x + (offset_in_run / max(len(run.text), 1)) * run.width


class TokenScanner:
    """Scans glyph runs for placeholder tokens and radio markers."""

    def __init__(
        self,
        field_mapper: FieldNameMapper,
        radio_resolver: RadioGroupResolver,
        settings: Settings,
    ):
        self.field_mapper = field_mapper
        self.radio_resolver = radio_resolver
        self.settings = settings

    def scan_document(self, doc: "fitz.Document", datasets: Datasets) -> ScanResult:
        pages = []
        for index, page in enumerate(doc):
            page_number = index + 1
            pages.append((page_number, float(page.rect.height), extract_text_runs(page, page_number)))
        return self.scan_pages(pages, datasets, page_count=len(doc))

    def scan_pages(
        self,
        pages: Sequence[Tuple[int, float, List[TextRun]]],
        datasets: Datasets,
        page_count: Optional[int] = None,
    ) -> ScanResult:
        """Scan pre-extracted runs; `pages` holds (page_number, page_height, runs)."""
        result = ScanResult(page_count=page_count if page_count is not None else len(pages))
        radios = RadioOptionSet()

        for page_number, page_height, runs in pages:
            if not 1 <= page_number <= result.page_count:
                logger.warning("Skipping runs for page %d outside 1..%d", page_number, result.page_count)
                continue
            result.fields.extend(self._scan_page(page_number, page_height, runs, datasets, radios))
            for option in self.radio_resolver.find_split_fragments(runs, page_number, page_height, datasets):
                radios.add(option)

        result.radios = radios.options
        logger.info(
            "Scanned %d page(s): %d field(s), %d radio option(s)",
            result.page_count,
            len(result.fields),
            len(result.radios),
        )
        return result

    def _scan_page(
        self,
        page_number: int,
        page_height: float,
        runs: List[TextRun],
        datasets: Datasets,
        radios: RadioOptionSet,
    ) -> List[DetectedField]:
        fields: List[DetectedField] = []

        for line_index, line in enumerate(cluster_lines(runs, self.settings.line_tolerance)):
            text = line_text(line)
            line_fields: List[DetectedField] = []

            for match in TOKEN_PATTERN.finditer(text):
                token = match.group(0)
                located = locate_offset(line, match.start())
                if located is None:
                    logger.debug("Dropping %s on page %d: no run at offset %d", token, page_number, match.start())
                    continue
                run, offset_in_run = located
                x = interpolate_x(run, offset_in_run)
                y = page_height - run.baseline_y

                if self.radio_resolver.is_radio_token(token):
                    parsed = self.radio_resolver.parse_token(token)
                    if parsed is None:
                        continue
                    group, option = parsed
                    radios.add(
                        self.radio_resolver.make_option(
                            token, group, option, x, y, page_number, run.height, datasets
                        )
                    )
                    continue

                entry = self.field_mapper.lookup_token(token)
                if entry is None:
                    logger.debug("Ignoring unsupported placeholder %s on page %d", token, page_number)
                    continue

                line_fields.append(
                    DetectedField(
                        token=token,
                        unique_key=f"{page_number}-{line_index}-{match.start()}",
                        source=entry.source,
                        data_key=entry.data_key,
                        x=x,
                        y=y,
                        width=self.settings.field_width,
                        page=page_number,
                        value=resolve_value(entry.source, entry.data_key, datasets),
                    )
                )

            # Lines packing several short fields get narrower inputs
            if len(line_fields) > 1:
                for detected in line_fields:
                    detected.width = self.settings.field_width_shared_line
            fields.extend(line_fields)

        return fields
