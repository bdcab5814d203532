"""
Error kinds raised by the detection pipeline.

Every error is terminal for the current run: the loop moves to ERROR, releases
the camera and reports `message` (plus the underlying cause) to the status sink.
"""

from __future__ import annotations

from typing import Optional


class DetectorError(Exception):
    """Base class for pipeline failures that stop the loop."""

    kind = "DetectorError"

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        if cause is not None:
            self.__cause__ = cause

    def describe(self) -> str:
        """Human readable '<kind> - <message> (<cause>)' text for the status sink."""
        text = f"{self.kind} - {self.message}"
        cause = self.__cause__
        if cause is not None:
            text += f" ({type(cause).__name__}: {cause})"
        return text


class UnsupportedEnvironment(DetectorError):
    """No usable camera API in this environment."""
    kind = "UnsupportedEnvironment"


class ResourceUnavailable(DetectorError):
    """The camera could not be acquired."""
    kind = "ResourceUnavailable"


class PermissionDenied(ResourceUnavailable):
    """The camera exists but access was refused."""
    kind = "PermissionDenied"


class ModelLoadFailure(DetectorError):
    """The inference session could not be created from the model asset."""
    kind = "ModelLoadFailure"


class InferenceContractViolation(DetectorError):
    """The engine returned an output that does not match the expected layout."""
    kind = "InferenceContractViolation"


class InferenceFailure(DetectorError):
    """The engine call itself failed."""
    kind = "InferenceFailure"


class RenderSurfaceUnavailable(DetectorError):
    """The display surface cannot be drawn to."""
    kind = "RenderSurfaceUnavailable"


def describe_error(exc: BaseException) -> str:
    """Status text for any exception, detector error or not."""
    if isinstance(exc, DetectorError):
        return exc.describe()
    return f"{type(exc).__name__} - {exc}"
