"""ServiceResult and ServiceError — the contract between services and the CLI.

INVARIANT: Every public service operation returns ServiceResult. Fatal
conditions become ``ok=False`` with a machine-readable error code;
recoverable ones are listed in ``warnings``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from buckal.domain.errors import BuckalError


class ServiceError(BaseModel):
    """Structured error payload within a ServiceResult."""

    model_config = {"frozen": True}

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_exception(cls, exc: BuckalError) -> ServiceError:
        return cls(code=exc.code, message=exc.message, detail=exc.detail)


class ServiceResult(BaseModel):
    """Return type of every service operation.

    Attributes:
        ok: Whether the operation succeeded.
        op: Name of the operation (e.g. ``"flush"``).
        data: Operation-specific payload on success.
        actions: Per-package progress entries in processing order, each a
            ``{"verb": ..., "subject": ...}`` mapping.
        warnings: Non-fatal issues encountered during the operation.
        error: Structured error if ``ok`` is False.
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    actions: list[dict[str, str]] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None
