"""rulebridge — rule-builder translation and reconciliation."""

__version__ = "0.3.0"
