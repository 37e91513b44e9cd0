"""Domain layer — rule DTOs, entities, codec, and reconciliation.

This layer depends only on stdlib and pydantic.
It must never import from services, infrastructure, commands, or config.
"""
