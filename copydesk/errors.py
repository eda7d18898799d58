"""Exception hierarchy shared by backends, orchestrator and API layer."""

from __future__ import annotations


class CopydeskError(Exception):
    """Base class for all Copydesk errors."""


class BackendConfigError(CopydeskError):
    """A backend is missing credentials or is otherwise unusable."""


class IngestionError(CopydeskError):
    """A single source could not be turned into text.

    Raised inside extraction backends; the ingestor absorbs it into the
    source's ``error`` status.
    """


class ExtractionParseError(CopydeskError):
    """Structured output from the generator could not be parsed."""


class GenerationError(CopydeskError):
    """The generative backend failed or returned unusable output."""


class RefinementError(GenerationError):
    """A refinement call failed; the previous output is unaffected."""


class InvalidTransitionError(ValueError):
    """A source status change that breaks pending → processing → terminal."""
