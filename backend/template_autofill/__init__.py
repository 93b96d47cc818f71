"""
Template auto-fill engine.

This package fills arbitrary PDF templates from flat subject/authority
records. It bundles:
  - mode detection (interactive form fields vs. inert placeholder text)
  - placeholder token scanning and radio-group resolution for inert pages
  - per-authority offset correction
  - output building (fill + flatten, or overlay drawing) and page previews
  - an editable per-template session and the service that hosts sessions
"""

from .errors import AutofillError, OutputBuildError, SessionNotFoundError, TemplateLoadError
from .models import Datasets, DetectionMode
from .service import AutofillService, build_detector
from .session import TemplateSession
from .settings import Settings

__all__ = [
    "AutofillError",
    "AutofillService",
    "Datasets",
    "DetectionMode",
    "OutputBuildError",
    "SessionNotFoundError",
    "Settings",
    "TemplateLoadError",
    "TemplateSession",
    "build_detector",
]
