# template.py
# {{step.path}} placeholder resolution against the step output store.
#
# Paths are parsed into explicit segments and walked by a small
# recursive-descent accessor. Every traversal branch has its own error so
# the caller can correct the expression without querying introspection.

import copy
import json
import re
from dataclasses import dataclass
from typing import Any, Mapping

from tool_program.errors import (
    IndexOutOfRangeError,
    NotAnArrayError,
    PrimitiveAccessError,
    PropertyNotFoundError,
    StepNotExecutedError,
    TemplateSyntaxError,
)
from tool_program.schema import describe_value, infer_schema, schema_to_string

PLACEHOLDER = re.compile(r"\{\{([^{}]*)\}\}")

_PART = re.compile(r"^([^\[\]]*)((?:\[\d+\])*)$")
_BRACKET = re.compile(r"\[(\d+)\]")


# ---------------------------------------------------------------------------
# Path parsing
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Segment:
    """One accessor hop. `key` for properties, `index` for array positions."""

    key: str | None = None
    index: int | None = None
    bracket: bool = False

    def __str__(self) -> str:
        if self.key is not None:
            return self.key
        return f"[{self.index}]" if self.bracket else str(self.index)


def parse_path(expression: str) -> tuple[str, list[Segment]]:
    """
    Split `step.a.b[0].1` into ("step", [a, b, [0], 1]).
    Raises TemplateSyntaxError on empty or malformed parts.
    """
    if not expression:
        raise TemplateSyntaxError(expression, "empty placeholder")

    step_id = ""
    segments: list[Segment] = []
    for position, part in enumerate(expression.split(".")):
        match = _PART.match(part)
        if not match or (not match.group(1) and not match.group(2)):
            raise TemplateSyntaxError(expression, f'malformed path segment "{part}"')
        name, brackets = match.group(1), match.group(2)

        if position == 0:
            if not name:
                raise TemplateSyntaxError(expression, "missing step id")
            step_id = name
        elif name.isdigit():
            segments.append(Segment(index=int(name)))
        elif name:
            segments.append(Segment(key=name))

        segments.extend(Segment(index=int(i), bracket=True) for i in _BRACKET.findall(brackets))

    return step_id, segments


# ---------------------------------------------------------------------------
# Traversal
# ---------------------------------------------------------------------------


def _kind(node: Any) -> str:
    schema = infer_schema(node)
    return schema if isinstance(schema, str) else "object"


def _step(expression: str, where: str, node: Any, segment: Segment) -> Any:
    if segment.bracket:
        if not isinstance(node, list):
            raise NotAnArrayError(
                expression,
                f"cannot apply index [{segment.index}] to {where}: it is not an array. "
                f"Actual schema: {describe_value(node)}",
            )
        return _at(expression, node, segment.index)

    if isinstance(node, list):
        if segment.index is None:
            raise PropertyNotFoundError(
                expression,
                f'property "{segment.key}" not found: {where} is an array of length {len(node)}. '
                f"Element schema: {describe_value(node)}",
            )
        return _at(expression, node, segment.index)

    if isinstance(node, dict):
        key = str(segment)
        if key not in node:
            raise PropertyNotFoundError(
                expression,
                f'property "{key}" not found on {where}. '
                f"Available keys and types: {describe_value(node)}",
            )
        return node[key]

    raise PrimitiveAccessError(
        expression,
        f'cannot read "{segment}": {where} is a {_kind(node)} value '
        f"({schema_to_string(infer_schema(node))}) and has no addressable sub-properties",
    )


def _at(expression: str, node: list, index: int) -> Any:
    if index >= len(node):
        raise IndexOutOfRangeError(
            expression,
            f"index {index} is out of bounds for array of length {len(node)}. "
            f"Element schema: {describe_value(node)}",
        )
    return node[index]


def lookup(expression: str, outputs: Mapping[str, Any]) -> Any:
    """Resolve one placeholder expression (without the braces)."""
    expression = expression.strip()
    step_id, segments = parse_path(expression)

    if step_id not in outputs:
        raise StepNotExecutedError(expression, step_id)

    node = outputs[step_id]
    where = step_id
    for position, segment in enumerate(segments):
        # Stored values are already unwrapped; a leading `result` is only a
        # key when the value really has one.
        if position == 0 and segment.key == "result":
            if not (isinstance(node, dict) and "result" in node):
                continue
        node = _step(expression, where, node, segment)
        where = f"{where}[{segment.index}]" if segment.bracket else f"{where}.{segment}"
    return node


# ---------------------------------------------------------------------------
# Substitution
# ---------------------------------------------------------------------------


def stringify(value: Any) -> str:
    """String form used when a placeholder is spliced into a larger string."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, ensure_ascii=False, default=str)
    return str(value)


def _resolve_string(text: str, outputs: Mapping[str, Any]) -> Any:
    whole = PLACEHOLDER.fullmatch(text)
    if whole:
        return copy.deepcopy(lookup(whole.group(1), outputs))
    return PLACEHOLDER.sub(lambda m: stringify(lookup(m.group(1), outputs)), text)


def resolve_template(value: Any, outputs: Mapping[str, Any]) -> Any:
    """
    Return a deep copy of `value` with every placeholder substituted.

    A string that is exactly one placeholder takes the looked-up value with
    its original type; embedded placeholders are stringified. Lists and
    dicts are walked at any depth.
    """
    if isinstance(value, str):
        return _resolve_string(value, outputs)
    if isinstance(value, (list, tuple)):
        return [resolve_template(item, outputs) for item in value]
    if isinstance(value, dict):
        return {key: resolve_template(item, outputs) for key, item in value.items()}
    return value
