"""
Template byte sources.

The engine only needs a `fetch(template_url) -> bytes` callable. This module
provides the default one: http(s) URLs go through requests, `s3://` URLs
through boto3, and anything else is treated as a local path.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional, Tuple
from urllib.parse import urlparse

import boto3
import requests

from .errors import TemplateLoadError

logger = logging.getLogger(__name__)

Fetch = Callable[[str], bytes]


def _split_s3_url(url: str) -> Tuple[str, str]:
    parsed = urlparse(url)
    bucket = parsed.netloc
    key = parsed.path.lstrip("/")
    if not bucket or not key:
        raise TemplateLoadError(f"Malformed S3 URL '{url}'")
    return bucket, key


class TemplateFetcher:
    """Callable byte source with lazily created clients."""

    def __init__(self, timeout: float = 30.0, s3_client=None, http_session: Optional[requests.Session] = None):
        self.timeout = timeout
        self._s3 = s3_client
        self._http = http_session or requests.Session()

    def __call__(self, template_url: str) -> bytes:
        if not template_url:
            raise TemplateLoadError("No template URL provided")

        scheme = urlparse(template_url).scheme.lower()
        if scheme in ("http", "https"):
            data = self._fetch_http(template_url)
        elif scheme == "s3":
            data = self._fetch_s3(template_url)
        else:
            data = self._fetch_path(template_url)

        if not data:
            raise TemplateLoadError(f"Template at '{template_url}' is empty")
        logger.info("Fetched %d bytes from %s", len(data), template_url)
        return data

    def _fetch_http(self, url: str) -> bytes:
        try:
            response = self._http.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise TemplateLoadError(f"Failed to fetch template '{url}': {exc}") from exc
        return response.content

    def _fetch_s3(self, url: str) -> bytes:
        bucket, key = _split_s3_url(url)
        if self._s3 is None:
            self._s3 = boto3.client("s3")
        try:
            obj = self._s3.get_object(Bucket=bucket, Key=key)
            return obj["Body"].read()
        except Exception as exc:
            raise TemplateLoadError(f"Failed to fetch template '{url}': {exc}") from exc

    def _fetch_path(self, location: str) -> bytes:
        path = Path(location[len("file://"):] if location.startswith("file://") else location)
        try:
            with path.open("rb") as f:
                return f.read()
        except OSError as exc:
            raise TemplateLoadError(f"Failed to read template '{path}': {exc}") from exc
