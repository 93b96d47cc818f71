"""
Editable state for one loaded template.

A session owns the template bytes, the detection result and the mutable
field/option records the user edits before building the final document.
Loads are versioned: each load takes a new generation id, and a load that
finishes after a newer one has started is discarded.
"""

from __future__ import annotations

import datetime as dt
import logging
import re
import threading
import uuid
from typing import Dict, List, Optional

from .errors import AutofillError
from .mode_detector import ModeDetector
from .models import (
    Datasets,
    DetectedField,
    DetectedRadioOption,
    Detection,
    DetectionMode,
    InertDetection,
    InteractiveDetection,
    InteractiveField,
)
from .pdf_utils import build_output, render_page_png
from .radio_groups import selected_by_group, toggle_group
from .settings import Settings
from .sources import Fetch

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9]")


class TemplateSession:
    def __init__(
        self,
        datasets: Datasets,
        detector: ModeDetector,
        settings: Settings,
        session_id: Optional[str] = None,
    ):
        self.session_id = session_id or str(uuid.uuid4())
        self.datasets = datasets
        self.detector = detector
        self.settings = settings

        self._lock = threading.RLock()
        self._generation = 0
        self.loaded_generation = 0

        self.template_bytes: Optional[bytes] = None
        self.detection: Optional[Detection] = None
        self.current_page = 0

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    def begin_load(self) -> int:
        """Reserve a generation id for a load that is about to start."""
        with self._lock:
            self._generation += 1
            return self._generation

    def load(self, template_bytes: bytes, generation: Optional[int] = None) -> bool:
        """Analyse `template_bytes` and replace the session state.

        Returns False when a newer load superseded this one; the result is
        then dropped. Raises TemplateLoadError without touching the current
        state when the bytes cannot be parsed.
        """
        if generation is None:
            generation = self.begin_load()
        data = bytes(template_bytes)
        detection = self.detector.detect(data, self.datasets)
        return self._apply_load(generation, data, detection)

    def load_from_source(self, template_url: str, fetch: Fetch) -> bool:
        generation = self.begin_load()
        data = fetch(template_url)
        return self.load(data, generation=generation)

    def _apply_load(self, generation: int, data: bytes, detection: Detection) -> bool:
        with self._lock:
            if generation != self._generation:
                logger.info(
                    "Discarding stale load %d for session %s (current %d)",
                    generation,
                    self.session_id,
                    self._generation,
                )
                return False
            self.template_bytes = data
            self.detection = detection
            self.loaded_generation = generation
            self.current_page = 1 if detection.page_count else 0
            logger.info(
                "Session %s loaded %s template with %d page(s)",
                self.session_id,
                detection.mode.value,
                detection.page_count,
            )
            return True

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------
    @property
    def is_loaded(self) -> bool:
        return self.detection is not None

    @property
    def mode(self) -> Optional[DetectionMode]:
        return self.detection.mode if self.detection is not None else None

    @property
    def page_count(self) -> int:
        return self.detection.page_count if self.detection is not None else 0

    @property
    def fields(self) -> List[DetectedField]:
        if isinstance(self.detection, InertDetection):
            return self.detection.scan.fields
        return []

    @property
    def radios(self) -> List[DetectedRadioOption]:
        if isinstance(self.detection, InertDetection):
            return self.detection.scan.radios
        return []

    @property
    def interactive_fields(self) -> List[InteractiveField]:
        if isinstance(self.detection, InteractiveDetection):
            return self.detection.fields
        return []

    def _require_loaded(self) -> Detection:
        if self.detection is None or self.template_bytes is None:
            raise AutofillError("No template loaded")
        return self.detection

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------
    def set_field_value(self, key: str, value: str) -> None:
        """Edit an inert field by unique key, or an interactive field by name."""
        with self._lock:
            detection = self._require_loaded()
            records = (
                detection.fields
                if isinstance(detection, InteractiveDetection)
                else detection.scan.fields
            )
            for record in records:
                record_key = record.name if isinstance(record, InteractiveField) else record.unique_key
                if record_key == key:
                    record.value = value or ""
                    return
            raise KeyError(f"Unknown field '{key}'")

    def toggle_radio(self, group: str, option: str) -> None:
        with self._lock:
            self._require_loaded()
            toggle_group(self.radios, group, option)

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------
    def build_output(self) -> bytes:
        with self._lock:
            detection = self._require_loaded()
            return build_output(self.template_bytes, detection, self.settings)

    def suggested_filename(self, today: Optional[dt.date] = None) -> str:
        today = today or dt.date.today()
        first = _UNSAFE_FILENAME_CHARS.sub("_", self.datasets.subject.get("firstName") or "Subject")
        last = _UNSAFE_FILENAME_CHARS.sub("_", self.datasets.subject.get("lastName") or "")
        return f"{first}_{last}_Document_{today.strftime('%m-%d-%Y')}.pdf"

    # ------------------------------------------------------------------
    # Paged preview
    # ------------------------------------------------------------------
    def go_to_page(self, page: int) -> int:
        with self._lock:
            self._require_loaded()
            if not 1 <= page <= self.page_count:
                raise IndexError(f"Page {page} out of range. PDF has {self.page_count} page(s).")
            self.current_page = page
            return page

    def next_page(self) -> int:
        with self._lock:
            self._require_loaded()
            self.current_page = min(self.current_page + 1, self.page_count)
            return self.current_page

    def previous_page(self) -> int:
        with self._lock:
            self._require_loaded()
            self.current_page = max(self.current_page - 1, 1)
            return self.current_page

    def render_preview(self, page: Optional[int] = None, with_values: bool = False) -> bytes:
        """PNG of a page of the template, or of the filled output."""
        with self._lock:
            self._require_loaded()
            page = page or self.current_page
            source = self.build_output() if with_values else self.template_bytes
            return render_page_png(source, page, self.settings.preview_scale)

    def to_dict(self) -> Dict:
        with self._lock:
            return {
                "session_id": self.session_id,
                "mode": self.mode.value if self.mode else None,
                "page_count": self.page_count,
                "current_page": self.current_page,
                "generation": self.loaded_generation,
                "fields": [f.to_dict() for f in self.fields],
                "radios": [r.to_dict() for r in self.radios],
                "selected": selected_by_group(self.radios),
                "interactive_fields": [f.to_dict() for f in self.interactive_fields],
                "suggested_filename": self.suggested_filename(),
            }
