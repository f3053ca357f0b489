# adapter.py
# Tool invocation adapter.
#
# Three tool shapes are normalised once, at install time, into a single
# name -> route table:
#
#   Tool       single capability, matched by exact name, gets the args
#   MultiTool  owns a namespace of names, gets {"tool": name, "parameters": args}
#   builtin    the engine's own tools, called directly, never delegated
#
# The hot path never inspects tool types again: it looks a name up and
# awaits the route.

import inspect
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable, Literal, Mapping

from tool_program.models import ToolSpec

logger = logging.getLogger(__name__)

Invoke = Callable[[dict[str, Any], Any], Any]
# Builtins also receive the cancel signal of the run that called them.
BuiltinInvoke = Callable[[dict[str, Any], Any, Any], Any]
Call = Callable[[dict[str, Any], Any, Any], Awaitable[Any]]


# ---------------------------------------------------------------------------
# Registry shapes
# ---------------------------------------------------------------------------


@dataclass
class Tool:
    """A single-capability tool."""

    name: str
    invoke: Invoke
    description: str = ""
    parameters: dict[str, Any] = field(
        default_factory=lambda: {"type": "object", "properties": {}, "required": []}
    )

    def specs(self) -> list[ToolSpec]:
        return [ToolSpec(name=self.name, description=self.description, parameters=self.parameters)]


@dataclass
class MultiTool:
    """A tool that serves several names and is told which one was called."""

    name: str
    tools: list[ToolSpec]
    invoke: Invoke
    description: str = ""

    def specs(self) -> list[ToolSpec]:
        return list(self.tools)


# ---------------------------------------------------------------------------
# Envelope handling
# ---------------------------------------------------------------------------


def _parse_json(text: str) -> Any:
    try:
        return json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return text


def unwrap_result(raw: Any) -> Any:
    """
    Normalise the envelopes tools wrap their values in.

    JSON strings are parsed, then a `result` envelope is stripped, then a
    non-empty `data` envelope. Anything else is returned unchanged.
    """
    value = _parse_json(raw) if isinstance(raw, str) else raw
    if isinstance(value, dict) and "result" in value:
        value = value["result"]
        if isinstance(value, str):
            value = _parse_json(value)
    if isinstance(value, dict) and value.get("data"):
        value = value["data"]
    return value


def extract_error(value: Any) -> str | None:
    """
    Return the error carried by an otherwise successful tool return value:
    an `error` key on an object, or a string starting with "Error".
    """
    if isinstance(value, dict):
        error = value.get("error")
        if not error:
            return None
        return error if isinstance(error, str) else json.dumps(error, default=str)

    if isinstance(value, str) and value.startswith("Error"):
        detail = _parse_json(value[len("Error"):].lstrip(" :"))
        if isinstance(detail, dict):
            return str(detail.get("error") or detail.get("message") or value)
        return value

    return None


# ---------------------------------------------------------------------------
# Adapter
# ---------------------------------------------------------------------------


RouteKind = Literal["tool", "multi", "builtin"]


@dataclass(frozen=True)
class _Route:
    kind: RouteKind
    call: Call
    spec: ToolSpec | None = None


async def _settle(result: Any) -> Any:
    if inspect.isawaitable(result):
        return await result
    return result


def _single(tool: Tool) -> Call:
    async def call(args: dict[str, Any], context: Any, cancel: Any) -> Any:
        return await _settle(tool.invoke(args, context))

    return call


def _namespaced(tool: MultiTool, name: str) -> Call:
    async def call(args: dict[str, Any], context: Any, cancel: Any) -> Any:
        return await _settle(tool.invoke({"tool": name, "parameters": args}, context))

    return call


def _builtin(handler: BuiltinInvoke) -> Call:
    async def call(args: dict[str, Any], context: Any, cancel: Any) -> Any:
        return await _settle(handler(args, context, cancel))

    return call


class ToolAdapter:
    """
    One `invoke(name, args, context)` contract over every registered tool.

    The registry is a snapshot: tools added to the source list after
    construction are not seen.
    """

    def __init__(
        self,
        tools: Iterable[Tool | MultiTool],
        builtins: Mapping[str, BuiltinInvoke] | None = None,
    ) -> None:
        self._routes: dict[str, _Route] = {}

        for name, handler in (builtins or {}).items():
            self._routes[name] = _Route(kind="builtin", call=_builtin(handler))

        for tool in tools:
            if isinstance(tool, MultiTool):
                for spec in tool.specs():
                    self._add(spec.name, _Route(kind="multi", call=_namespaced(tool, spec.name), spec=spec))
            elif isinstance(tool, Tool):
                self._add(tool.name, _Route(kind="tool", call=_single(tool), spec=tool.specs()[0]))
            else:
                raise TypeError(f"Unsupported tool type: {type(tool).__name__}")

    def _add(self, name: str, route: _Route) -> None:
        if name in self._routes:
            logger.warning("Tool %r is already registered; ignoring duplicate", name)
            return
        self._routes[name] = route

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def __contains__(self, name: object) -> bool:
        return name in self._routes

    def kind_of(self, name: str) -> RouteKind | None:
        route = self._routes.get(name)
        return route.kind if route else None

    def tool_specs(self) -> list[ToolSpec]:
        """Static metadata of every delegated tool, in registration order."""
        return [route.spec for route in self._routes.values() if route.spec is not None]

    # ------------------------------------------------------------------
    # Invocation
    # ------------------------------------------------------------------

    async def invoke(self, name: str, args: dict[str, Any], context: Any = None, cancel: Any = None) -> Any:
        """
        Call the tool registered under `name` and return its raw result.

        An unknown name is returned as an error value, not raised, so the
        caller can attribute it to a step. Exceptions raised by the tool
        propagate. `cancel` is only handed to builtins.
        """
        route = self._routes.get(name)
        if route is None:
            logger.warning("Tool %r not found", name)
            return {"error": f'Tool "{name}" not found'}
        return await route.call(args, context, cancel)
