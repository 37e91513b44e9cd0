"""BaseService — shared foundation for rulebridge services.

Every service receives a :class:`FieldServiceResolver` at construction
time; rule identifiers are resolved through it, never through a global.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from rulebridge.domain.errors import RuleBridgeError, TranslationError
from rulebridge.services.result import ServiceResult

if TYPE_CHECKING:
    from rulebridge.services.field_services import FieldServiceResolver

logger = logging.getLogger(__name__)


class BaseService:
    """Base for service-layer classes.

    Usage::

        class TranslationService(BaseService):
            def encode(self, identifier: str, raw: str) -> ServiceResult:
                service = self._field_services.create_instance(identifier)
                ...
    """

    def __init__(self, field_services: FieldServiceResolver) -> None:
        self._field_services = field_services

    @staticmethod
    def _failure(op: str, exc: RuleBridgeError) -> ServiceResult:
        """Map a domain error onto a failed ServiceResult."""
        detail: dict[str, Any] = {}
        if isinstance(exc, TranslationError):
            if exc.expression is not None:
                detail["expression"] = exc.expression
            if exc.position is not None:
                detail["position"] = exc.position
        logger.debug("%s failed: %s", op, exc)
        return ServiceResult.failure(op, exc.code, str(exc), **detail)
