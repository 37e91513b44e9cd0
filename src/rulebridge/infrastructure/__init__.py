"""Infrastructure layer — field accessors and rule persistence.

This layer depends on stdlib, the domain layer, and SQLAlchemy.
It must never import from services, commands, or output.
"""
