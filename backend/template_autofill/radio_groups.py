"""
Radio Group Resolver

Turns choice markers found in inert templates into mutually exclusive
radio options.

Two authoring styles are recognised:

* explicit tokens `{radio_<group>_<option>}`, including the numeric
  variant `{radio_id_<N>}` where N is mapped onto a group through
  `NUMERIC_GROUP_RANGES`;
* split fragments, where the text layer broke a marker apart so that one
  run only says "radio" and a nearby run carries "id.N". These are paired
  by bounding-box proximity.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from .models import DataSource, Datasets, DetectedRadioOption, TextRun
from .settings import Settings

logger = logging.getLogger(__name__)

RADIO_TOKEN_PATTERN = re.compile(r"^\{radio_(\w+)_(\w+)\}$")

# Inclusive option-number ranges -> semantic group
NUMERIC_GROUP_RANGES: Tuple[Tuple[int, int, str], ...] = (
    (1, 3, "placard_type"),
    (7, 14, "condition"),
)

NUMERIC_GROUP_MARKER = "id"

_BARE_RADIO = re.compile(r"(?<![A-Za-z0-9])radio(?![A-Za-z0-9]|_[A-Za-z0-9])", re.IGNORECASE)
_DOTTED_ID = re.compile(r"(?<![A-Za-z0-9])id\s*[._\s]\s*(\d+)", re.IGNORECASE)


@dataclass(frozen=True)
class RadioAutoFill:
    """Which dataset field pre-selects an option, and how its values map."""

    source: DataSource
    source_field: str
    value_map: Mapping[str, str] = field(default_factory=dict)


RADIO_AUTO_FILL: Mapping[str, RadioAutoFill] = MappingProxyType(
    {
        "idtype": RadioAutoFill(
            source=DataSource.SUBJECT,
            source_field="idType",
            value_map=MappingProxyType(
                {
                    "drivers_license": "dl",
                    "us_passport_photo_id": "passport",
                    "id_card": "idcard",
                    "tribal_id_card": "tribal",
                }
            ),
        ),
    }
)


class RadioOptionSet:
    """Ordered collection that records each (page, group, option) once."""

    def __init__(self) -> None:
        self._seen: Set[Tuple[int, str, str]] = set()
        self.options: List[DetectedRadioOption] = []

    def add(self, option: DetectedRadioOption) -> bool:
        key = (option.page, option.group, option.option)
        if key in self._seen:
            return False
        self._seen.add(key)
        self.options.append(option)
        return True


class RadioGroupResolver:
    def __init__(
        self,
        settings: Settings,
        numeric_groups: Sequence[Tuple[int, int, str]] = NUMERIC_GROUP_RANGES,
        auto_fill: Mapping[str, RadioAutoFill] = RADIO_AUTO_FILL,
    ):
        self.settings = settings
        self._numeric_groups = tuple(numeric_groups)
        self._auto_fill = MappingProxyType({key.lower(): cfg for key, cfg in auto_fill.items()})

    # ------------------------------------------------------------------
    # Group / option naming
    # ------------------------------------------------------------------
    @staticmethod
    def is_radio_token(token: str) -> bool:
        return RADIO_TOKEN_PATTERN.match(token) is not None

    def group_for_number(self, number: int) -> Optional[str]:
        for low, high, group in self._numeric_groups:
            if low <= number <= high:
                return group
        return None

    def parse_token(self, token: str) -> Optional[Tuple[str, str]]:
        """Return (group, option) for an explicit radio token.

        None means the token is not a radio token, or is a numeric-id token
        whose number has no group.
        """
        match = RADIO_TOKEN_PATTERN.match(token)
        if not match:
            return None
        group, option = match.groups()
        if group.lower() == NUMERIC_GROUP_MARKER and option.isdigit():
            numeric_group = self.group_for_number(int(option))
            if numeric_group is None:
                logger.debug("Radio token %s has no group for option %s", token, option)
                return None
            return numeric_group, option
        return group, option

    # ------------------------------------------------------------------
    # Pre-selection
    # ------------------------------------------------------------------
    def is_preselected(self, group: str, option: str, datasets: Datasets) -> bool:
        config = self._auto_fill.get(group.lower())
        if config is None:
            return False
        record_value = datasets.record(config.source).get(config.source_field) or ""
        expected = config.value_map.get(str(record_value))
        return expected is not None and expected.lower() == option.lower()

    def make_option(
        self,
        token: str,
        group: str,
        option: str,
        x: float,
        y: float,
        page: int,
        font_size: float,
        datasets: Datasets,
    ) -> DetectedRadioOption:
        return DetectedRadioOption(
            token=token,
            group=group,
            option=option,
            x=x,
            y=y,
            page=page,
            font_size=font_size or 12.0,
            selected=self.is_preselected(group, option, datasets),
        )

    # ------------------------------------------------------------------
    # Split-fragment fallback
    # ------------------------------------------------------------------
    def find_split_fragments(
        self,
        runs: Iterable[TextRun],
        page_number: int,
        page_height: float,
        datasets: Datasets,
    ) -> List[DetectedRadioOption]:
        """Pair bare "radio" runs with a nearby "id N" run on the same page."""
        page_runs = [run for run in runs if run.page == page_number and run.text]
        found: List[DetectedRadioOption] = []

        for run in page_runs:
            marker = _BARE_RADIO.search(run.text)
            if not marker:
                continue

            # Marker and id in one run, e.g. "radio id.3"
            inline_id = _DOTTED_ID.search(run.text, marker.end())
            if inline_id:
                partner, id_match = run, inline_id
            else:
                partner, id_match = self._nearest_id_run(run, page_runs)
                if partner is None:
                    logger.warning(
                        "Dropping radio fragment '%s' on page %d: no id fragment nearby",
                        run.text.strip(),
                        page_number,
                    )
                    continue

            number = int(id_match.group(1))
            group = self.group_for_number(number)
            if group is None:
                logger.debug("Radio fragment id %d on page %d has no group", number, page_number)
                continue

            offset = marker.start()
            x = run.x + (offset / max(len(run.text), 1)) * run.width
            token = run.text.strip() if partner is run else f"{run.text.strip()} {partner.text.strip()}"
            found.append(
                self.make_option(
                    token=token,
                    group=group,
                    option=str(number),
                    x=x,
                    y=page_height - run.baseline_y,
                    page=page_number,
                    font_size=run.height,
                    datasets=datasets,
                )
            )
        return found

    def _nearest_id_run(
        self, marker_run: TextRun, candidates: Sequence[TextRun]
    ) -> Tuple[Optional[TextRun], Optional[re.Match]]:
        best: Optional[Tuple[float, float, TextRun, re.Match]] = None
        for other in candidates:
            if other is marker_run:
                continue
            id_match = _DOTTED_ID.search(other.text)
            if not id_match:
                continue
            gap_x = max(
                0.0,
                other.x - (marker_run.x + marker_run.width),
                marker_run.x - (other.x + other.width),
            )
            gap_y = abs(other.baseline_y - marker_run.baseline_y)
            if gap_x > self.settings.radio_pair_max_dx or gap_y > self.settings.radio_pair_max_dy:
                continue
            distance = math.hypot(gap_x, gap_y)
            if best is None or (distance, other.x) < (best[0], best[1]):
                best = (distance, other.x, other, id_match)
        if best is None:
            return None, None
        return best[2], best[3]


def toggle_group(options: List[DetectedRadioOption], group: str, option: str) -> None:
    """Select `option` and clear every sibling in `group` across all pages."""
    if not any(item.group == group and item.option == option for item in options):
        raise KeyError(f"Unknown radio option {group}/{option}")
    for item in options:
        if item.group == group:
            item.selected = item.option == option


def selected_by_group(options: Iterable[DetectedRadioOption]) -> Dict[str, List[str]]:
    result: Dict[str, List[str]] = {}
    for item in options:
        if item.selected:
            result.setdefault(item.group, [])
            if item.option not in result[item.group]:
                result[item.group].append(item.option)
    return result
