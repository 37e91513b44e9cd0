"""Field access on host objects by name.

The provider never touches host objects directly; it goes through a
:class:`FieldAccessor`. :class:`AttributeFieldAccessor` covers plain Python
objects (dataclasses, ORM-mapped classes, anything with annotated
attributes). ``container.key`` names address one key of a mapping
attribute.
"""

from __future__ import annotations

import types
from collections.abc import Collection, Mapping, MutableMapping
from typing import Any, Protocol, Union, get_args, get_origin, get_type_hints

from rulebridge.domain.errors import FieldNotAvailableError, UnsupportedFieldError
from rulebridge.domain.fields import MAP_FIELD_SEPARATOR

_MISSING = object()


class FieldAccessor(Protocol):
    """Capability for reading, writing, and introspecting named fields."""

    def get(self, instance: Any, name: str) -> Any: ...

    def set(self, instance: Any, name: str, value: Any) -> None: ...

    def resolve_element_type(self, instance: Any, name: str) -> type: ...

    def resolve_value_type(self, instance: Any, name: str) -> type | None: ...


class AttributeFieldAccessor:
    """Attribute-based accessor driven by class annotations."""

    def get(self, instance: Any, name: str) -> Any:
        if MAP_FIELD_SEPARATOR in name:
            container, key = name.split(MAP_FIELD_SEPARATOR, 1)
            return self._mapping(instance, container, name).get(key)
        value = getattr(instance, name, _MISSING)
        if value is _MISSING:
            raise FieldNotAvailableError(name, type(instance).__name__)
        return value

    def set(self, instance: Any, name: str, value: Any) -> None:
        if MAP_FIELD_SEPARATOR in name:
            container, key = name.split(MAP_FIELD_SEPARATOR, 1)
            mapping = self._mapping(instance, container, name)
            if not isinstance(mapping, MutableMapping):
                raise FieldNotAvailableError(name, type(instance).__name__)
            mapping[key] = value
            return
        if not hasattr(instance, name) and name not in _hints(type(instance)):
            raise FieldNotAvailableError(name, type(instance).__name__)
        setattr(instance, name, value)

    def resolve_element_type(self, instance: Any, name: str) -> type:
        """Element type of a collection field, from its declared annotation.

        Raises:
            FieldNotAvailableError: The field does not exist.
            UnsupportedFieldError: The field is not a collection, or its
                element type cannot be determined.
        """
        hint = self._declared(instance, name)
        if hint is None:
            raise UnsupportedFieldError(name, "unable to determine the value type")
        origin = get_origin(hint)
        if (
            origin is None
            or not isinstance(origin, type)
            or not issubclass(origin, Collection)
            or issubclass(origin, (str, bytes, Mapping))
        ):
            raise UnsupportedFieldError(
                name,
                "quantity rules are only supported on collection fields; "
                "a single field with this type is not supported",
            )
        args = get_args(hint)
        element = _strip_optional(args[0]) if args else None
        if not isinstance(element, type):
            raise UnsupportedFieldError(name, "unable to determine the collection element type")
        return element

    def resolve_value_type(self, instance: Any, name: str) -> type | None:
        """Declared type of a scalar field, or None when not annotated."""
        if MAP_FIELD_SEPARATOR in name:
            container, _ = name.split(MAP_FIELD_SEPARATOR, 1)
            hint = self._declared(instance, container)
            args = get_args(hint) if hint is not None else ()
            value_hint = _strip_optional(args[1]) if len(args) == 2 else None
            return value_hint if isinstance(value_hint, type) else None
        hint = self._declared(instance, name)
        if hint is None:
            return None
        origin = get_origin(hint)
        if isinstance(hint, type):
            return hint
        return origin if isinstance(origin, type) else None

    # ------------------------------------------------------------------

    def _mapping(self, instance: Any, container: str, name: str) -> Mapping[str, Any]:
        mapping = getattr(instance, container, _MISSING)
        if mapping is _MISSING or not isinstance(mapping, Mapping):
            raise FieldNotAvailableError(name, type(instance).__name__)
        return mapping

    def _declared(self, instance: Any, name: str) -> Any:
        hints = _hints(type(instance))
        if name not in hints:
            if not hasattr(instance, name):
                raise FieldNotAvailableError(name, type(instance).__name__)
            return None
        return _strip_optional(hints[name])


def _hints(owner: type) -> dict[str, Any]:
    try:
        return get_type_hints(owner)
    except (NameError, TypeError):
        return dict(getattr(owner, "__annotations__", {}))


def _strip_optional(hint: Any) -> Any:
    """``X | None`` -> ``X``; other unions are returned unchanged."""
    origin = get_origin(hint)
    if origin is Union or origin is types.UnionType:
        members = [arg for arg in get_args(hint) if arg is not type(None)]
        if len(members) == 1:
            return members[0]
    return hint

