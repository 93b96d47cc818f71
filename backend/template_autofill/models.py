"""Data model shared by the scanner, resolver, session and output builder."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Dict, List, Union


class DataSource(str, Enum):
    SUBJECT = "subject"
    AUTHORITY = "authority"
    META = "meta"


class DetectionMode(str, Enum):
    INTERACTIVE = "interactive"
    INERT = "inert"


@dataclass(frozen=True)
class FieldMappingEntry:
    normalized_key: str
    source: DataSource
    data_key: str


@dataclass(frozen=True)
class Datasets:
    """The three read-only records a template is filled from."""

    subject: Dict[str, str] = field(default_factory=dict)
    authority: Dict[str, str] = field(default_factory=dict)
    meta: Dict[str, str] = field(default_factory=dict)

    def record(self, source: DataSource) -> Dict[str, str]:
        if source is DataSource.SUBJECT:
            return self.subject
        if source is DataSource.AUTHORITY:
            return self.authority
        return self.meta


@dataclass(frozen=True)
class TextRun:
    """One independently positioned glyph run as reported by the text layer.

    `baseline_y` is in PDF user space (origin bottom-left).
    """

    text: str
    x: float
    baseline_y: float
    width: float
    height: float
    page: int


@dataclass
class DetectedField:
    token: str
    unique_key: str
    source: DataSource
    data_key: str
    x: float
    y: float
    width: float
    page: int
    value: str = ""

    def to_dict(self) -> Dict:
        data = asdict(self)
        data["source"] = self.source.value
        return data


@dataclass
class DetectedRadioOption:
    token: str
    group: str
    option: str
    x: float
    y: float
    page: int
    font_size: float = 12.0
    selected: bool = False

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class InteractiveField:
    name: str
    value: str = ""
    matched: bool = False
    field_type: str = "/Tx"

    @property
    def is_text(self) -> bool:
        return self.field_type == "/Tx"

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass(frozen=True)
class OffsetCorrection:
    party_key: str
    dx: float = 0.0
    dy: float = 0.0


@dataclass
class ScanResult:
    page_count: int
    fields: List[DetectedField] = field(default_factory=list)
    radios: List[DetectedRadioOption] = field(default_factory=list)


@dataclass
class InteractiveDetection:
    page_count: int
    fields: List[InteractiveField] = field(default_factory=list)
    mode: DetectionMode = field(default=DetectionMode.INTERACTIVE, init=False)


@dataclass
class InertDetection:
    scan: ScanResult
    mode: DetectionMode = field(default=DetectionMode.INERT, init=False)

    @property
    def page_count(self) -> int:
        return self.scan.page_count


Detection = Union[InteractiveDetection, InertDetection]
