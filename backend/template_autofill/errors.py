"""Exception types raised by the auto-fill engine."""

from __future__ import annotations


class AutofillError(RuntimeError):
    """Domain-specific base exception."""


class TemplateLoadError(AutofillError):
    """Template bytes could not be fetched or parsed as a PDF."""


class OutputBuildError(AutofillError):
    """The filled document could not be re-encoded.

    The session that requested the build stays valid, so the caller can
    retry without reloading the template.
    """


class SessionNotFoundError(AutofillError):
    """No live session exists for the given id."""
