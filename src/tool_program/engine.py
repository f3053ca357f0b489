# engine.py
# Host-facing facade.
#
# A host (an LLM tool-calling loop) sees exactly two tools:
#
#   <prefix>get_tools_info  describe registered tools, with learned result schemas
#   <prefix>run_program     run a declarative multi-step program
#
# Both return plain data. Failures are payloads with an `error` key, never
# exceptions, so hosts can hand them straight back to the model.

import logging
from typing import Any, AsyncIterator, Iterable

from tool_program.adapter import MultiTool, Tool, ToolAdapter
from tool_program.config import Settings
from tool_program.executor import StepExecutor
from tool_program.introspection import IntrospectionService
from tool_program.models import ProgressEvent, ResultEvent
from tool_program.runner import CancelSignal, ProgramRunner

logger = logging.getLogger(__name__)

RUN_PROGRAM_DESCRIPTION = """\
Execute a multi-step workflow by calling other tools sequentially with variable substitution.

Each step has: id (string), tool (string), args (object). Any string inside args may
reference the output of an earlier step with {{step_id.path}}:
  {{search.items[0].url}}   bracket index
  {{search.items.0.url}}    dotted index
A string that is exactly one placeholder keeps the referenced value's type.
The result of the last step is returned. Execution stops at the first failing step.\
"""

GET_TOOLS_INFO_DESCRIPTION = """\
Get detailed information (description, parameters and, once a tool has run, its result
schema) about specific tools before using them in a program.

Available tools:
{tools}\
"""


def _step_count(args: Any) -> int:
    if isinstance(args, list):
        return len(args)
    if not isinstance(args, dict):
        return 0
    program = args.get("program")
    steps = program.get("steps") if isinstance(program, dict) else args.get("steps")
    return len(steps) if isinstance(steps, list) else 0


class ProgramEngine:
    """
    Installs a tool registry snapshot and serves get_tools_info / run_program.

    Create one engine per host session: its introspection history lives as
    long as the instance.

    Example:
        engine = ProgramEngine([Tool(name="echo", invoke=lambda args, ctx: args)])
        value = await engine.run_program({"steps": [{"id": "a", "tool": "echo", "args": {"x": 1}}]})
    """

    def __init__(self, tools: Iterable[Tool | MultiTool], settings: Settings | None = None) -> None:
        self.settings = settings or Settings()
        self.get_tools_info_name = f"{self.settings.prefix}get_tools_info"
        self.run_program_name = f"{self.settings.prefix}run_program"

        self._adapter = ToolAdapter(
            tools,
            builtins={
                self.get_tools_info_name: self._get_tools_info_builtin,
                self.run_program_name: self._run_program_builtin,
            },
        )
        self.introspection = IntrospectionService(self._adapter.tool_specs())
        self.runner = ProgramRunner(StepExecutor(self._adapter, self.introspection))
        logger.debug("Installed %d tool(s)", len(self.introspection.tool_names))

    # ------------------------------------------------------------------
    # The two operations
    # ------------------------------------------------------------------

    def get_tools_info(self, tools_names: Any) -> dict[str, Any]:
        """Describe each requested tool. Never fails as a whole."""
        if not isinstance(tools_names, list):
            tools_names = []
        descriptors = self.introspection.describe(str(name) for name in tools_names)
        return {"tools_info": [descriptor.to_payload() for descriptor in descriptors]}

    async def run_program(
        self,
        program: Any,
        cancel: CancelSignal | None = None,
        context: Any = None,
    ) -> Any:
        """
        Run a program and return the last step's value, or an error payload:
        {"error", "failedStep"} on failure, {"error", "canceled"} on cancel.
        """
        outcome = await self.runner.run(program, cancel=cancel, context=context)
        return outcome.to_payload()

    def run_program_with_updates(
        self,
        program: Any,
        cancel: CancelSignal | None = None,
        context: Any = None,
    ) -> AsyncIterator[ProgressEvent]:
        return self.runner.stream(program, cancel=cancel, context=context)

    # Builtins, reachable from inside a program as ordinary steps.

    def _get_tools_info_builtin(self, args: dict[str, Any], context: Any, cancel: Any) -> dict[str, Any]:
        return self.get_tools_info(args.get("tools_names"))

    async def _run_program_builtin(self, args: dict[str, Any], context: Any, cancel: CancelSignal | None) -> Any:
        # A nested program stops with the run that started it.
        return await self.run_program(args, cancel=cancel, context=context)

    # ------------------------------------------------------------------
    # Host dispatch
    # ------------------------------------------------------------------

    def handles_tool(self, name: str) -> bool:
        return name.startswith(self.settings.prefix)

    async def execute(
        self,
        name: str,
        parameters: Any,
        cancel: CancelSignal | None = None,
        context: Any = None,
    ) -> Any:
        """Non-streaming dispatch: the payload of the final result event."""
        result: Any = None
        async for event in self.execute_with_updates(name, parameters, cancel=cancel, context=context):
            if isinstance(event, ResultEvent):
                result = event.result
        return result

    async def execute_with_updates(
        self,
        name: str,
        parameters: Any,
        cancel: CancelSignal | None = None,
        context: Any = None,
    ) -> AsyncIterator[ProgressEvent]:
        parameters = parameters if parameters is not None else {}
        if name == self.get_tools_info_name:
            tools_names = parameters.get("tools_names") if isinstance(parameters, dict) else None
            yield ResultEvent(result=self.get_tools_info(tools_names))
            return
        if name != self.run_program_name:
            logger.warning("Host requested unknown tool %r", name)
            yield ResultEvent(result={"error": f'Tool "{name}" not found'})
            return
        async for event in self.runner.stream(parameters, cancel=cancel, context=context):
            yield event

    # ------------------------------------------------------------------
    # Host metadata
    # ------------------------------------------------------------------

    def tool_definitions(self) -> list[dict[str, Any]]:
        """OpenAI function-calling definitions of the two tools."""
        listing = "\n".join(f"- {name}" for name in self.introspection.tool_names)
        return [
            {
                "type": "function",
                "function": {
                    "name": self.get_tools_info_name,
                    "description": GET_TOOLS_INFO_DESCRIPTION.format(tools=listing),
                    "parameters": {
                        "type": "object",
                        "properties": {
                            "tools_names": {
                                "type": "array",
                                "description": "The name of the tools to get information about",
                                "items": {"type": "string"},
                            }
                        },
                        "required": ["tools_names"],
                    },
                },
            },
            {
                "type": "function",
                "function": {
                    "name": self.run_program_name,
                    "description": RUN_PROGRAM_DESCRIPTION,
                    "parameters": {
                        "type": "object",
                        "properties": {
                            "program": {
                                "type": "object",
                                "description": (
                                    "The program to execute with a steps array. Each step has: id (string), "
                                    "tool (string), args (object with {{step_id.path}} for variable substitution)"
                                ),
                            }
                        },
                        "required": ["program"],
                    },
                },
            },
        ]

    def running_description(self, tool: str, args: Any) -> str | None:
        if tool == self.get_tools_info_name:
            names = args.get("tools_names") if isinstance(args, dict) else None
            return f"Getting info for {len(names) if isinstance(names, list) else 0} tools…"
        if tool == self.run_program_name:
            return f"Executing workflow with {_step_count(args)} steps…"
        return None

    def completed_description(self, tool: str, args: Any, result: Any) -> str | None:
        error = result.get("error") if isinstance(result, dict) else None
        if tool == self.get_tools_info_name:
            if error:
                return f"Error getting tools info: {error}"
            names = args.get("tools_names") if isinstance(args, dict) else None
            return f"Retrieved info for {len(names) if isinstance(names, list) else 0} tools"
        if tool == self.run_program_name:
            if error:
                return f"Workflow failed: {error}"
            return f"Completed workflow with {_step_count(args)} steps"
        return None
