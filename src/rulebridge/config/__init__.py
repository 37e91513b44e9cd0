"""Configuration layer — settings, config discovery, and logging setup.

Config may import from the domain layer (field definitions) but never
from services, commands, or output.
"""
