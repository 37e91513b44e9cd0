"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, rulebridge.toml only contains
overrides. With no config file the built-in field services are used.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from rulebridge.domain.fields import FieldDefinition


class FieldServiceConfig(BaseModel):
    """[field_services.<IDENTIFIER>] section.

    A section whose identifier matches a built-in service replaces it,
    unless ``extend`` is set, in which case its fields are appended.
    """

    model_config = {"frozen": True}

    entity_key: str | None = None
    extend: bool = False
    fields: list[FieldDefinition] = Field(default_factory=list)
