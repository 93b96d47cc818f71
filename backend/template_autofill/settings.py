"""
Runtime configuration for the template auto-fill engine.

All heuristic thresholds live here so they can be tuned per deployment
without touching the scanner code. Values are read from the environment;
entry points load `.env.local` / `.env` before calling `Settings.from_env()`.
"""

from __future__ import annotations

import os
from dataclasses import dataclass


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


@dataclass(frozen=True)
class Settings:
    """Heuristic thresholds and output styling."""

    line_tolerance: float = 3.0
    radio_pair_max_dx: float = 60.0
    radio_pair_max_dy: float = 20.0
    field_width: float = 200.0
    field_width_shared_line: float = 150.0
    text_font_size: float = 10.0
    text_baseline_offset: float = 12.0
    mark_shape: str = "circle"  # "circle" or "square"
    preview_scale: float = 1.5
    widget_font_size: float = 11.0
    session_ttl: int = 3600
    fetch_timeout: float = 30.0

    def __post_init__(self) -> None:
        if self.mark_shape not in ("circle", "square"):
            raise ValueError(f"Unsupported mark shape '{self.mark_shape}'")

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            line_tolerance=_env_float("AUTOFILL_LINE_TOLERANCE", cls.line_tolerance),
            radio_pair_max_dx=_env_float("AUTOFILL_RADIO_PAIR_MAX_DX", cls.radio_pair_max_dx),
            radio_pair_max_dy=_env_float("AUTOFILL_RADIO_PAIR_MAX_DY", cls.radio_pair_max_dy),
            field_width=_env_float("AUTOFILL_FIELD_WIDTH", cls.field_width),
            field_width_shared_line=_env_float(
                "AUTOFILL_FIELD_WIDTH_SHARED_LINE", cls.field_width_shared_line
            ),
            text_font_size=_env_float("AUTOFILL_TEXT_FONT_SIZE", cls.text_font_size),
            text_baseline_offset=_env_float(
                "AUTOFILL_TEXT_BASELINE_OFFSET", cls.text_baseline_offset
            ),
            mark_shape=os.getenv("AUTOFILL_MARK_SHAPE", cls.mark_shape).strip().lower(),
            preview_scale=_env_float("AUTOFILL_PREVIEW_SCALE", cls.preview_scale),
            widget_font_size=_env_float("AUTOFILL_WIDGET_FONT_SIZE", cls.widget_font_size),
            session_ttl=_env_int("AUTOFILL_SESSION_TTL", cls.session_ttl),
            fetch_timeout=_env_float("AUTOFILL_FETCH_TIMEOUT", cls.fetch_timeout),
        )
