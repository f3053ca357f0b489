# schema.py
# Compact structural summaries of JSON-shaped values.
#
# The summary keeps keys and replaces leaves by their type name. Arrays are
# summarised by their first element only: heterogeneous arrays are not
# reconciled.

import json
from typing import Any


def infer_schema(value: Any) -> Any:
    """
    Return the structural schema of `value`.

        infer_schema({"status": "ok", "count": 5, "items": ["a"]})
        -> {"status": "string", "count": "number", "items": ["string"]}
    """
    if value is None:
        return "null"
    # bool before int: bool is an int subclass.
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        if not value:
            return []
        return [infer_schema(value[0])]
    if isinstance(value, dict):
        return {str(key): infer_schema(item) for key, item in value.items()}
    return type(value).__name__.lower()


def schema_to_string(schema: Any) -> str:
    """Single-line compact form, used inline in error messages."""
    return json.dumps(schema, separators=(",", ":"), ensure_ascii=False)


def describe_value(value: Any) -> str:
    """Shortcut: the compact schema string of a value."""
    return schema_to_string(infer_schema(value))
