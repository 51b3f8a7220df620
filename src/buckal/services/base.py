"""BaseService — common foundation for buckal services.

Every service receives a :class:`Workspace` at construction time and
converts fatal errors into failed :class:`ServiceResult` objects at its
public boundary.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from buckal.domain.errors import BuckalError
from buckal.services.result import ServiceError, ServiceResult

if TYPE_CHECKING:
    from buckal.infrastructure.workspace import Workspace

logger = logging.getLogger(__name__)


class BaseService:
    """Base for service-layer classes.

    Usage::

        class FlushService(BaseService):
            def flush(self) -> ServiceResult:
                try:
                    ...
                except BuckalError as exc:
                    return self._failure("flush", exc)
    """

    def __init__(self, workspace: Workspace) -> None:
        self._workspace = workspace

    @staticmethod
    def _failure(
        op: str,
        exc: BuckalError | OSError,
        *,
        actions: list[dict[str, str]] | None = None,
        warnings: list[str] | None = None,
    ) -> ServiceResult:
        """Wrap a fatal error. OSErrors become ``IO_ERROR`` naming the path."""
        if isinstance(exc, BuckalError):
            error = ServiceError.from_exception(exc)
        else:
            path = exc.filename if exc.filename is not None else ""
            error = ServiceError(
                code="IO_ERROR",
                message=f"{exc.strerror or exc}: {path}".rstrip(": "),
                detail={"path": str(path)},
            )
        logger.debug("%s failed: %s", op, error.message)
        return ServiceResult(
            ok=False,
            op=op,
            actions=actions or [],
            warnings=warnings or [],
            error=error,
        )
