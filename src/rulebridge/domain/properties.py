"""Outgoing property sets shown by the admin UI."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class Property:
    """One named value in an outgoing entity."""

    name: str
    value: Any = None
    display_value: str | None = None


@dataclass
class Entity:
    """An ordered set of properties sent to the admin UI."""

    properties: list[Property] = field(default_factory=list)

    def find_property(self, name: str) -> Property | None:
        for prop in self.properties:
            if prop.name == name:
                return prop
        return None

    def property_names(self) -> list[str]:
        return [prop.name for prop in self.properties]
