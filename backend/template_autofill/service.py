"""
High-level service that exposes template auto-fill to the FastAPI layer.

Responsibilities
----------------
* build the static lookup tables once and share them across sessions
* create, look up and expire editing sessions
* fetch template bytes through the configured byte source
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, Mapping, Optional

from cachetools import TTLCache

from .errors import SessionNotFoundError, TemplateLoadError
from .field_mapper import FieldNameMapper, default_field_mapper
from .mode_detector import ModeDetector
from .models import Datasets
from .offsets import OffsetCorrector, default_offset_corrector
from .profiles import AuthorityProfile, default_meta
from .radio_groups import RadioGroupResolver
from .session import TemplateSession
from .settings import Settings
from .sources import Fetch, TemplateFetcher
from .token_scanner import TokenScanner

logger = logging.getLogger(__name__)


def build_detector(
    settings: Settings,
    field_mapper: Optional[FieldNameMapper] = None,
    offset_corrector: Optional[OffsetCorrector] = None,
) -> ModeDetector:
    field_mapper = field_mapper or default_field_mapper()
    scanner = TokenScanner(field_mapper, RadioGroupResolver(settings), settings)
    return ModeDetector(field_mapper, scanner, offset_corrector or default_offset_corrector())


def _flatten_record(record: Optional[Mapping[str, object]]) -> Dict[str, str]:
    return {
        str(key): "" if value is None else str(value)
        for key, value in (record or {}).items()
        if not isinstance(value, (dict, list))
    }


class AutofillService:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        fetch: Optional[Fetch] = None,
        max_sessions: int = 1000,
    ):
        self.settings = settings or Settings.from_env()
        self.detector = build_detector(self.settings)
        self.fetch = fetch or TemplateFetcher(timeout=self.settings.fetch_timeout)
        self._sessions: TTLCache = TTLCache(maxsize=max_sessions, ttl=self.settings.session_ttl)
        self._sessions_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Session registry
    # ------------------------------------------------------------------
    def create_session(
        self,
        subject: Optional[Mapping[str, object]] = None,
        authority: Optional[Mapping[str, object]] = None,
        meta: Optional[Mapping[str, object]] = None,
        template_url: Optional[str] = None,
        template_bytes: Optional[bytes] = None,
    ) -> TemplateSession:
        """Create a session and load its template from bytes or a URL."""
        if template_bytes is None and not template_url:
            raise TemplateLoadError("Either template bytes or a template URL is required")

        merged_meta = default_meta()
        merged_meta.update(_flatten_record(meta))
        datasets = Datasets(
            subject=_flatten_record(subject),
            authority=_flatten_record(authority),
            meta=merged_meta,
        )
        session = TemplateSession(datasets, self.detector, self.settings)
        if template_bytes is not None:
            session.load(template_bytes)
        else:
            session.load_from_source(template_url, self.fetch)

        with self._sessions_lock:
            self._sessions[session.session_id] = session
        logger.info("Created session %s (%s)", session.session_id, session.mode.value)
        return session

    def create_session_for_profile(
        self,
        profile_record: Mapping[str, object],
        subject: Optional[Mapping[str, object]] = None,
        meta: Optional[Mapping[str, object]] = None,
    ) -> TemplateSession:
        profile = AuthorityProfile.from_record(profile_record)
        if not profile.template_url:
            raise TemplateLoadError("Profile has no template assigned")
        return self.create_session(
            subject=subject,
            authority=profile.record,
            meta=meta,
            template_url=profile.template_url,
        )

    def get_session(self, session_id: str) -> TemplateSession:
        with self._sessions_lock:
            session = self._sessions.get(session_id)
            if session is None:
                raise SessionNotFoundError(f"Session '{session_id}' not found")
            # Touch to extend the TTL
            self._sessions[session_id] = session
        return session

    def reload_session(
        self,
        session_id: str,
        template_url: Optional[str] = None,
        template_bytes: Optional[bytes] = None,
    ) -> bool:
        session = self.get_session(session_id)
        if template_bytes is not None:
            return session.load(template_bytes)
        if not template_url:
            raise TemplateLoadError("Either template bytes or a template URL is required")
        return session.load_from_source(template_url, self.fetch)

    def close_session(self, session_id: str) -> bool:
        with self._sessions_lock:
            return self._sessions.pop(session_id, None) is not None
