"""
Exception taxonomy for the upload and transformation pipeline.

Every recoverable error carries a message suitable for showing to the user.
"""

from __future__ import annotations

from typing import Iterable, Optional


class ImagecraftError(Exception):
    """Base class for all imagecraft errors."""

    default_message = "Something went wrong"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# --------------- Parameter errors ---------------------------------------------
class ValidationError(ImagecraftError, ValueError):
    """A transformation option failed its declared constraint."""

    def __init__(self, field: str, constraint: str):
        self.field = field
        self.constraint = constraint
        super().__init__(f"Invalid value for {field!r}: {constraint}")


class UnknownOptionError(ValidationError):
    """An enumerated option received a value outside its known set."""

    def __init__(self, field: str, value: object, allowed: Iterable[str]):
        self.value = value
        self.allowed = tuple(allowed)
        super().__init__(field, f"{value!r} is not one of {', '.join(self.allowed)}")


# --------------- Input file errors --------------------------------------------
class UnsupportedMediaError(ImagecraftError, ValueError):
    default_message = "Please select an image file"


class FileTooLargeError(ImagecraftError, ValueError):
    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(f"File size should be maximum {limit // (1024 * 1024)} MB")


# --------------- Sequencing errors --------------------------------------------
class UploadInProgressError(ImagecraftError, RuntimeError):
    default_message = "An upload is already in progress"


class PhaseError(ImagecraftError, RuntimeError):
    """An intent was issued in a phase that does not accept it."""

    def __init__(self, action: str, phase: object):
        self.action = action
        self.phase = phase
        super().__init__(f"Cannot {action} while the modal is in phase {getattr(phase, 'value', phase)!r}")


# --------------- Collaborator errors ------------------------------------------
class RemoteUploadError(ImagecraftError, RuntimeError):
    default_message = "Upload failed"


class TransformInProgressError(ImagecraftError, RuntimeError):
    default_message = "Transformations are already being applied"


class RemoteTransformError(ImagecraftError, RuntimeError):
    default_message = "Transformation failed, please try again."


# --------------- Fatal --------------------------------------------------------
class CompileInvariantError(AssertionError):
    """Schema and composer disagree about a validated config. Never user-recoverable."""
