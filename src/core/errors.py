"""Error taxonomy for the upload pipeline."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    INPUT = "input"
    TRANSIENT = "transient"
    RESUME = "resume"


class UploadError(Exception):
    """Base class for failures that end an upload session."""

    kind = ErrorKind.INPUT
    retryable = False


class InputError(UploadError):
    """Bad archive, oversized file, or missing chat entry."""


class WrongFileError(InputError):
    """The uploaded transcript is not the expected chat export."""


class TransientError(UploadError):
    """A verification or extraction call failed; safe to retry."""

    kind = ErrorKind.TRANSIENT
    retryable = True


class ResumeError(UploadError):
    """The stored checkpoint cannot be located in the transcript."""

    kind = ErrorKind.RESUME


class ConfigurationError(RuntimeError):
    """A required secret or setting is missing."""
