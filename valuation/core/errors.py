from __future__ import annotations

from typing import List


class NotFoundError(LookupError):
    """Record does not exist or is outside the caller's scope."""


class FormValidationError(ValueError):
    """
    Aggregate of every form violation found before a save.
    Callers present all messages together.
    """

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class UpstreamError(RuntimeError):
    """Attachment storage or report rendering failed; local edits must be kept."""
