"""Error taxonomy for the preview engine.

Only invariant violations raise out of the package. Degraded conditions
(no robot model loaded, a key missing from a preview-sequence file, no
terrain data) are logged and reported through return values instead.
"""

from __future__ import annotations


class PreviewError(Exception):
    """Base class for preview engine errors."""


class MissingConfigKeyError(PreviewError, KeyError):
    """A required key is absent from a preview-sequence description."""

    def __init__(self, key: str, namespace: str) -> None:
        super().__init__(f"'{key}' not found in '{namespace}'")
        self.key = key
        self.namespace = namespace

    def __str__(self) -> str:
        return f"the {self.key} of {self.namespace} was not found"


class InconsistentBranchStateError(PreviewError):
    """A branch state does not match the DoF of its kinematic branch.

    This signals a model mismatch or a programming error and is never caught
    inside the package.
    """


class UnknownPhaseTypeError(PreviewError):
    """A phase carries a type outside {STANCE, FLIGHT}."""
