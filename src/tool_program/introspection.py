# introspection.py
# Answers "describe these tools" queries.
#
# Static metadata comes from the registry snapshot. Result schemas are
# learned from real executions: every successful step records the schema of
# its unwrapped output under the tool's name. The history is owned by one
# service instance per host session, append-only, last writer wins.

import logging
from typing import Any, Iterable

from tool_program.models import ToolDescriptor, ToolSpec
from tool_program.schema import infer_schema, schema_to_string

logger = logging.getLogger(__name__)


class IntrospectionService:
    def __init__(self, specs: Iterable[ToolSpec]) -> None:
        self._specs: dict[str, ToolSpec] = {}
        for spec in specs:
            self._specs.setdefault(spec.name, spec)
        self._schemas: dict[str, Any] = {}

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def record(self, tool: str, value: Any) -> None:
        """Store the schema of a tool's latest unwrapped result."""
        self._schemas[tool] = infer_schema(value)
        logger.debug("Recorded result schema for %s", tool)

    def schema_for(self, tool: str) -> Any:
        return self._schemas.get(tool)

    def describe_text(self, tool: str) -> str:
        """Single-line form of the learned schema, for error hints."""
        schema = self._schemas.get(tool)
        if schema is None:
            return "Schema not available"
        return schema_to_string(schema)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def tool_names(self) -> list[str]:
        return list(self._specs)

    def describe(self, names: Iterable[str]) -> list[ToolDescriptor]:
        """One descriptor per requested name, in the order requested."""
        descriptors: list[ToolDescriptor] = []
        for name in names:
            spec = self._specs.get(name)
            if spec is None:
                descriptors.append(ToolDescriptor(name=name, error=f'Tool "{name}" not found'))
                continue
            descriptors.append(
                ToolDescriptor(
                    name=spec.name,
                    description=spec.description,
                    parameters=spec.parameters,
                    result_schema=self.schema_for(name),
                )
            )
        return descriptors
