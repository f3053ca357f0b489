# executor.py
# Executes one program step: resolve args, invoke, classify, unwrap, store.
#
# Nothing raised while handling a step escapes: resolution errors, unknown
# tools, tool exceptions, error-shaped results and unreadable result values
# all come back as a StepResult attributed to the step.

import logging
from typing import Any, Mapping

from tool_program.adapter import ToolAdapter, extract_error, unwrap_result
from tool_program.errors import ResolutionError, TemplateSyntaxError
from tool_program.introspection import IntrospectionService
from tool_program.models import Step, StepResult
from tool_program.template import parse_path, resolve_template

logger = logging.getLogger(__name__)


def _describe_exception(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


class StepExecutor:
    def __init__(self, adapter: ToolAdapter, introspection: IntrospectionService | None = None) -> None:
        self._adapter = adapter
        self._introspection = introspection

    def _failure(self, step: Step, message: str) -> StepResult:
        logger.warning("Step %s (%s) failed: %s", step.id, step.tool, message)
        return StepResult(error=message, failed_step=step.id)

    def _schema_hint(self, exc: ResolutionError, producers: Mapping[str, str]) -> str:
        """Point at the learned result schema of the tool the placeholder reads from."""
        if self._introspection is None or isinstance(exc, TemplateSyntaxError):
            return ""
        tool = producers.get(parse_path(exc.expression)[0])
        if tool is None or self._introspection.schema_for(tool) is None:
            return ""
        return f' Expected schema for "{tool}": {self._introspection.describe_text(tool)}'

    async def execute_step(
        self,
        step: Step,
        outputs: dict[str, Any],
        context: Any = None,
        cancel: Any = None,
        producers: Mapping[str, str] | None = None,
    ) -> StepResult:
        """
        Run `step` against `outputs` and, on success, write its unwrapped
        result to `outputs[step.id]`.

        `producers` maps earlier step ids to the tool that produced them and
        is only used to enrich resolution errors.
        """
        prefix = f'Failed to resolve variables for step "{step.id}": '
        try:
            args = resolve_template(step.args, outputs)
        except ResolutionError as exc:
            return self._failure(step, f"{prefix}{exc}{self._schema_hint(exc, producers or {})}")
        except Exception as exc:
            # e.g. a stored value that cannot be deep-copied
            return self._failure(step, f"{prefix}{_describe_exception(exc)}")

        logger.debug("Invoking %s for step %s", step.tool, step.id)
        try:
            raw = await self._adapter.invoke(step.tool, args, context, cancel)
        except Exception as exc:
            return self._failure(step, _describe_exception(exc))

        error = extract_error(raw)
        if error is None:
            value = unwrap_result(raw)
            error = extract_error(value)
        if error is not None:
            return self._failure(step, error)

        if self._introspection is not None and self._adapter.kind_of(step.tool) != "builtin":
            try:
                self._introspection.record(step.tool, value)
            except Exception as exc:
                # RecursionError for self-referencing values
                return self._failure(step, f"Unreadable result from {step.tool}: {_describe_exception(exc)}")

        outputs[step.id] = value
        logger.debug("Step %s completed", step.id)
        return StepResult(value=value)
