"""Per-authority position nudges for templates with known misalignment."""

from __future__ import annotations

import re
from types import MappingProxyType
from typing import List, Mapping, Optional, Tuple, Union

from .models import DetectedField, DetectedRadioOption, OffsetCorrection, ScanResult

# Normalized authority last name -> (dx, dy) in page units, top-down y.
AUTHORITY_OFFSETS: Mapping[str, Tuple[float, float]] = {
    "fore": (3.0, -4.0),
    "foshee": (0.0, -3.0),
}


def normalize_party_key(last_name: Optional[str]) -> str:
    return re.sub(r"\s+", "", (last_name or "").strip().lower())


class OffsetCorrector:
    def __init__(self, table: Mapping[str, Tuple[float, float]]):
        self._table = MappingProxyType(
            {normalize_party_key(key): (float(dx), float(dy)) for key, (dx, dy) in table.items()}
        )

    def correction_for(self, authority_last_name: Optional[str]) -> OffsetCorrection:
        key = normalize_party_key(authority_last_name)
        dx, dy = self._table.get(key, (0.0, 0.0))
        return OffsetCorrection(party_key=key, dx=dx, dy=dy)

    def apply(self, scan: ScanResult, correction: OffsetCorrection) -> ScanResult:
        """Shift every detected field and radio option by the correction."""
        if not correction.dx and not correction.dy:
            return scan
        items: List[Union[DetectedField, DetectedRadioOption]] = [*scan.fields, *scan.radios]
        for item in items:
            item.x += correction.dx
            item.y += correction.dy
        return scan


def default_offset_corrector() -> OffsetCorrector:
    return OffsetCorrector(AUTHORITY_OFFSETS)
