"""BuckalError — the single fatal error type raised below the service layer."""

from __future__ import annotations

from typing import Any


class BuckalError(ValueError):
    """A condition that aborts the current run.

    ``code`` is machine-readable (``MISSING_CHECKSUM``, ``MISSING_LIBRARY``...)
    and ends up in ``ServiceError.code``. ``detail`` carries the offending
    identifiers so the CLI can report them in ``--json`` mode.
    """

    def __init__(self, code: str, message: str, **detail: Any) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.detail = detail
