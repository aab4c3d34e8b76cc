"""Error types raised by the CV builder core.

Merge conflicts are not errors: the merge engine resolves them by policy
(non-destructive overwrite, first identity wins), so there is no MergeConflict.
"""

from typing import Iterable, List, Optional


class CvBuilderError(Exception):
    """Base class for CV builder errors."""


class RecordValidationError(CvBuilderError):
    """Record data is malformed or incomplete; `paths` lists the failing fields."""

    def __init__(self, message: str, paths: Optional[Iterable[str]] = None) -> None:
        self.paths: List[str] = list(paths or [])
        if self.paths:
            message = f"{message}: {', '.join(self.paths)}"
        super().__init__(message)


class ExternalCallError(CvBuilderError):
    """An external collaborator (LLM service, renderer) timed out or returned garbage."""

    def __init__(self, operation: str, message: str) -> None:
        self.operation = operation
        super().__init__(f"{operation} failed: {message}")


class SessionNotFound(CvBuilderError):
    """Unknown or expired session id."""

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(f"Session not found or expired: {session_id}")


class InvalidTransition(CvBuilderError):
    """Operation is not allowed in the session's current stage."""

    def __init__(self, operation: str, stage: str) -> None:
        self.operation = operation
        self.stage = stage
        super().__init__(f"Cannot {operation} while session is {stage}")
