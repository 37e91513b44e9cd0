"""Text/JSON output helpers.

The CLI renders ServiceResult for humans (plain key-value text) or machines
(--json). The formatter layer adapts ServiceResult to the requested mode.
"""

from __future__ import annotations

import json as _json
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from rulebridge.services.result import ServiceResult


def _format_data_human(data: dict[str, Any]) -> str:
    """Format result data as indented key-value pairs."""
    lines: list[str] = []
    for key, value in data.items():
        if isinstance(value, (dict, list)):
            lines.append(f"  {key}: {_json.dumps(value, separators=(',', ':'))}")
        else:
            lines.append(f"  {key}: {value}")
    return "\n".join(lines)


def _format_expressions(data: dict[str, Any]) -> str:
    lines = [f"  {data.get('entity_key', '')}:"]
    for index, expression in enumerate(data.get("expressions", []), start=1):
        lines.append(f"    [{index}] {expression if expression is not None else '(empty)'}")
    return "\n".join(lines)


def _format_fields(data: dict[str, Any]) -> str:
    lines: list[str] = []
    for service in data.get("services", []):
        lines.append(f"  {service['identifier']} ({service['entity_key']})")
        for f in service["fields"]:
            options = f" [{', '.join(f['options'])}]" if f["options"] else ""
            lines.append(f"    {f['name']}: {f['type']}{options}")
    return "\n".join(lines)


_HUMAN_FORMATTERS = {
    "encode": _format_expressions,
    "fields": _format_fields,
}


def format_result(result: ServiceResult, *, json_output: bool = False) -> str:
    """Format a ServiceResult for display.

    Args:
        result: The service result to format.
        json_output: If True, return JSON; otherwise return human-readable text.
    """
    if json_output:
        return result.model_dump_json(indent=2)
    if result.ok:
        parts = [f"OK: {result.op}"]
        if result.data:
            formatter = _HUMAN_FORMATTERS.get(result.op, _format_data_human)
            parts.append(formatter(result.data))
        return "\n".join(parts)
    error_msg = result.error.message if result.error else "Unknown error"
    return f"ERROR: {result.op}: {error_msg}"
