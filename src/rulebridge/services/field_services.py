"""FieldServiceResolver — rule identifier -> field service.

Injected into the codec, reconciler and provider instead of being looked
up globally. Built-in services come from
:data:`rulebridge.domain.fields.DEFAULT_FIELD_SERVICES`; configured
``[field_services.*]`` sections replace or extend them.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING

from rulebridge.domain.errors import UnknownRuleIdentifierError
from rulebridge.domain.fields import DEFAULT_FIELD_SERVICES, FieldService

if TYPE_CHECKING:
    from rulebridge.config.models import FieldServiceConfig
    from rulebridge.config.settings import RuleSettings

logger = logging.getLogger(__name__)


class FieldServiceResolver:
    """Registry of field services keyed by rule identifier."""

    def __init__(self, services: Iterable[FieldService] = DEFAULT_FIELD_SERVICES) -> None:
        self._services: dict[str, FieldService] = {svc.identifier: svc for svc in services}

    @classmethod
    def from_settings(cls, settings: RuleSettings) -> FieldServiceResolver:
        return cls.with_overrides(settings.field_services)

    @classmethod
    def with_overrides(cls, overrides: Mapping[str, FieldServiceConfig]) -> FieldServiceResolver:
        """Built-in services with configured sections applied on top."""
        resolver = cls()
        for identifier, section in overrides.items():
            resolver.register(resolver._apply(identifier, section))
        return resolver

    def register(self, service: FieldService) -> None:
        if service.identifier in self._services:
            logger.debug("Replacing field service %s", service.identifier)
        self._services[service.identifier] = service

    def create_instance(self, identifier: str) -> FieldService:
        """Return the field service for *identifier*.

        Raises:
            UnknownRuleIdentifierError: If no service is registered.
        """
        service = self._services.get(identifier)
        if service is None:
            raise UnknownRuleIdentifierError(identifier, list(self._services))
        return service

    def entity_key_for(self, identifier: str) -> str:
        """The entity-key namespace expressions for *identifier* use."""
        return self.create_instance(identifier).entity_key

    def identifiers(self) -> list[str]:
        return sorted(self._services)

    def _apply(self, identifier: str, section: FieldServiceConfig) -> FieldService:
        base = self._services.get(identifier)
        if base is not None and section.extend:
            return base.model_copy(
                update={
                    "entity_key": section.entity_key or base.entity_key,
                    "fields": [*base.fields, *section.fields],
                }
            )
        entity_key = section.entity_key or (base.entity_key if base is not None else None)
        if entity_key is None:
            msg = f"Field service {identifier!r} needs an entity_key"
            raise ValueError(msg)
        return FieldService(identifier=identifier, entity_key=entity_key, fields=section.fields)
