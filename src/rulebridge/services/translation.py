"""TranslationService — encode, decode, and inspect rules for the CLI."""

from __future__ import annotations

from typing import Any

from rulebridge.domain.decoder import decode
from rulebridge.domain.encoder import encode
from rulebridge.domain.errors import RuleBridgeError
from rulebridge.domain.fields import FieldService
from rulebridge.domain.snapshot import deserialize
from rulebridge.services.base import BaseService
from rulebridge.services.result import ServiceResult


class TranslationService(BaseService):
    """Translate between rule snapshots and expression text."""

    def encode(self, identifier: str, raw: str | None) -> ServiceResult:
        """Encode every entry of a snapshot into expression text.

        Empty input yields an empty ``expressions`` list, not an error.
        """
        op = "encode"
        try:
            service = self._field_services.create_instance(identifier)
            snapshot = deserialize(raw)
            entries = snapshot.data if snapshot is not None else []
            expressions = [encode(service.entity_key, entry, service) for entry in entries]
        except RuleBridgeError as exc:
            return self._failure(op, exc)
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "identifier": identifier,
                "entity_key": service.entity_key,
                "expressions": expressions,
                "count": len(expressions),
            },
        )

    def decode(self, identifier: str, expression: str | None) -> ServiceResult:
        """Decode expression text into a snapshot."""
        op = "decode"
        try:
            service = self._field_services.create_instance(identifier)
            snapshot = decode(expression, service)
        except RuleBridgeError as exc:
            return self._failure(op, exc)
        warnings: list[str] = []
        if snapshot is None:
            warnings.append("Expression is empty; no rule configured")
            payload: dict[str, Any] = {"data": []}
        else:
            payload = snapshot.model_dump(mode="json", by_alias=True, exclude_none=True)
        return ServiceResult(
            ok=True,
            op=op,
            data={"identifier": identifier, "snapshot": payload},
            warnings=warnings,
        )

    def list_fields(self, identifier: str | None = None) -> ServiceResult:
        """Describe one field service, or all of them."""
        op = "fields"
        try:
            if identifier is None:
                services = [
                    self._field_services.create_instance(name)
                    for name in self._field_services.identifiers()
                ]
            else:
                services = [self._field_services.create_instance(identifier)]
        except RuleBridgeError as exc:
            return self._failure(op, exc)
        return ServiceResult(
            ok=True,
            op=op,
            data={"services": [_describe(service) for service in services]},
        )


def _describe(service: FieldService) -> dict[str, Any]:
    return {
        "identifier": service.identifier,
        "entity_key": service.entity_key,
        "fields": [
            {
                "name": f.name,
                "label": f.label,
                "type": str(f.type),
                "options": list(f.options),
            }
            for f in service.fields
        ],
    }
