"""Exception types raised by trackfit."""

from __future__ import annotations


class TrackFitError(Exception):
    """Base class for every error trackfit raises on purpose."""


class ConfigError(TrackFitError):
    pass


class InputFormatError(TrackFitError):
    """The raw input is not a JSON list of sample objects."""


class FieldTypeError(TrackFitError):
    """A sample field is missing or has the wrong primitive type."""

    def __init__(self, field: str, index: int, expected: str, got: object = None, missing: bool = False):
        self.field = field
        self.index = index
        self.expected = expected
        if missing:
            detail = "missing"
        else:
            detail = f"got {type(got).__name__}"
        super().__init__(f"Sample {index}: field '{field}' expected {expected} ({detail})")


class PreconditionError(TrackFitError):
    """The sample sequence cannot be assembled (empty, unordered, bad repeat count)."""


class EncoderError(TrackFitError):
    """The encoder cannot write a message: unknown message or field, or a value the FIT library rejects."""
