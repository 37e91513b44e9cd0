"""Error taxonomy for rule translation and reconciliation.

Every error is fatal to the request-level operation that raised it; nothing
here is retried. The provider wraps whatever escapes a populate call in
:class:`RulePersistenceError` so callers see one failure carrying the cause.
"""

from __future__ import annotations

from typing import Any


class RuleBridgeError(Exception):
    """Base class for all rulebridge errors."""

    code = "RULE_ERROR"


class TranslationError(RuleBridgeError):
    """Expression text and rule DTOs cannot be mapped onto each other."""

    code = "TRANSLATION_FAILED"

    def __init__(self, message: str, *, expression: str | None = None, position: int | None = None):
        self.expression = expression
        self.position = position
        if position is not None:
            message = f"{message} (at position {position})"
        super().__init__(message)


class ReconciliationError(RuleBridgeError):
    """A snapshot cannot be reconciled against the current rule collection."""

    code = "RECONCILIATION_FAILED"


class StaleReferenceError(ReconciliationError):
    """A snapshot entry references an id missing from the current collection."""

    code = "STALE_REFERENCE"

    def __init__(self, rule_id: Any, target_type: str):
        self.rule_id = rule_id
        self.target_type = target_type
        message = (
            f"Unable to update the rule of type ({target_type}) because an update "
            f"was requested for id ({rule_id}), which does not exist."
        )
        super().__init__(message)


class DuplicateReferenceError(ReconciliationError):
    """Two snapshot entries claim the same persisted rule id."""

    code = "DUPLICATE_REFERENCE"

    def __init__(self, rule_id: Any):
        self.rule_id = rule_id
        super().__init__(f"Rule id ({rule_id}) appears more than once in the submitted rules")


class UnsupportedFieldError(RuleBridgeError):
    """The field's shape/type combination cannot hold the requested rule kind."""

    code = "UNSUPPORTED_FIELD"

    def __init__(self, field_name: str, reason: str):
        self.field_name = field_name
        self.reason = reason
        super().__init__(f"Rule field ({field_name}): {reason}")


class FieldNotAvailableError(RuleBridgeError):
    """The target object has no field with the requested name."""

    code = "FIELD_NOT_AVAILABLE"

    def __init__(self, field_name: str, owner: str = ""):
        self.field_name = field_name
        self.owner = owner
        message = f"Field '{field_name}' is not available"
        if owner:
            message += f" on {owner}"
        super().__init__(message)


class UnknownRuleIdentifierError(RuleBridgeError):
    """No field service is configured for a rule identifier."""

    code = "UNKNOWN_RULE_IDENTIFIER"

    def __init__(self, identifier: str, known: list[str] | None = None):
        self.identifier = identifier
        message = f"No field service configured for rule identifier {identifier!r}"
        if known:
            message += f". Known: {sorted(known)}"
        super().__init__(message)


class RulePersistenceError(RuleBridgeError):
    """Request-level wrapper around any failure while populating a rule field."""

    code = "PERSISTENCE_FAILED"

    def __init__(self, field_name: str, cause: BaseException):
        self.field_name = field_name
        self.cause = cause
        super().__init__(f"Unable to populate rule field ({field_name}): {cause}")
