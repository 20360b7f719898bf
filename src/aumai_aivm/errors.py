"""Exceptions raised by aumai-aivm."""

from __future__ import annotations

__all__ = [
    "AivmError",
    "ContainerFormatError",
    "ReconciliationError",
    "UnsupportedArchitectureError",
    "ValidationError",
]


class AivmError(Exception):
    """Base class for every error raised by this package."""


class ContainerFormatError(AivmError):
    """The input bytes are not a container of the expected kind."""


class ValidationError(AivmError):
    """
    Metadata failed schema or invariant checks.

    ``stage`` names the metadata entry being checked (``"manifest"``,
    ``"hyper_parameters"`` or ``"style_vectors"``); ``cause`` is a
    human-readable description of the failure.
    """

    def __init__(self, stage: str, cause: str) -> None:
        super().__init__(f"invalid {stage}: {cause}")
        self.stage = stage
        self.cause = cause


class UnsupportedArchitectureError(AivmError):
    """The model architecture has no hyperparameter schema."""

    def __init__(self, architecture: object) -> None:
        value = getattr(architecture, "value", architecture)
        super().__init__(f"unsupported model architecture: {value!r}")
        self.architecture = value


class ReconciliationError(AivmError):
    """An update left the manifest without speakers, or a speaker without styles."""
