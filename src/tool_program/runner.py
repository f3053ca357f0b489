# runner.py
# Program runner: validation, sequential step loop, cancellation, outcome.
#
# A run is idle until the program validates and running while the step loop
# is live; it ends in exactly one terminal RunState: SUCCESS, FAILED or
# CANCELED. A program that fails validation never starts running.
#
# Cancellation is cooperative. The signal is only read before each step
# starts; a tool call already in flight is always allowed to settle.

import json
import logging
from typing import Any, AsyncIterator, Protocol

from pydantic import ValidationError

from tool_program.errors import ProgramValidationError
from tool_program.executor import StepExecutor
from tool_program.models import (
    Program,
    ProgressEvent,
    ResultEvent,
    RunOutcome,
    RunState,
    StatusEvent,
)

logger = logging.getLogger(__name__)

INVALID_PROGRAM = "Invalid program: must have a steps array"
CANCELLED = "Workflow cancelled"


class CancelSignal(Protocol):
    """Anything with an `is_set()`: asyncio.Event, threading.Event."""

    def is_set(self) -> bool: ...


def _cancelled(cancel: CancelSignal | None) -> bool:
    return cancel is not None and cancel.is_set()


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def _format_validation(exc: ValidationError) -> str:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"])
        problems.append(f"{location}: {error['msg']}" if location else error["msg"])
    return "; ".join(problems)


def coerce_program(raw: Any) -> Program:
    """
    Accept every program shape hosts send and return a validated Program:
    a Program, {"steps": [...]}, {"program": {"steps": [...]}}, a bare list
    of steps, or any of those encoded as a JSON string.
    """
    if isinstance(raw, Program):
        return raw
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ProgramValidationError(INVALID_PROGRAM) from exc

    steps = None
    if isinstance(raw, list):
        steps = raw
    elif isinstance(raw, dict):
        inner = raw.get("program")
        if isinstance(inner, dict):
            steps = inner.get("steps")
        elif isinstance(inner, list):
            steps = inner
        if steps is None:
            steps = raw.get("steps")

    if not isinstance(steps, list) or not steps:
        raise ProgramValidationError(INVALID_PROGRAM)

    try:
        return Program(steps=steps)
    except ValidationError as exc:
        raise ProgramValidationError(f"Invalid program: {_format_validation(exc)}") from exc


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------


class ProgramRunner:
    """
    Drives the step executor over a program.

    Each call owns its own output store. The only state shared between runs
    is the introspection schema history, which the executor writes to.
    """

    def __init__(self, executor: StepExecutor) -> None:
        self._executor = executor

    async def _drive(
        self,
        raw: Any,
        cancel: CancelSignal | None,
        context: Any,
    ) -> AsyncIterator[StatusEvent | RunOutcome]:
        try:
            program = coerce_program(raw)
        except ProgramValidationError as exc:
            logger.warning("Rejected program: %s", exc)
            yield RunOutcome(state=RunState.FAILED, error=str(exc))
            return

        outputs: dict[str, Any] = {}
        producers: dict[str, str] = {}
        value: Any = None
        logger.debug("Running program with %d step(s)", len(program.steps))

        for step in program.steps:
            if _cancelled(cancel):
                logger.info("Program cancelled before step %s", step.id)
                yield RunOutcome(state=RunState.CANCELED, error=CANCELLED, outputs=dict(outputs))
                return

            yield StatusEvent(
                step_id=step.id,
                phase="started",
                status=step.description or f"Executing step {step.id}: {step.tool}",
            )

            result = await self._executor.execute_step(step, outputs, context, cancel=cancel, producers=producers)
            if not result.ok:
                yield StatusEvent(step_id=step.id, phase="failed", status=f"Failed step {step.id}: {result.error}")
                yield RunOutcome(
                    state=RunState.FAILED,
                    error=result.error,
                    failed_step=result.failed_step,
                    outputs=dict(outputs),
                )
                return

            producers[step.id] = step.tool
            value = result.value
            yield StatusEvent(step_id=step.id, phase="completed", status=f"Completed step {step.id}")

        yield RunOutcome(state=RunState.SUCCESS, value=value, outputs=dict(outputs))

    async def stream(
        self,
        program: Any,
        cancel: CancelSignal | None = None,
        context: Any = None,
    ) -> AsyncIterator[ProgressEvent]:
        """
        Yield a status event when each step starts and when it settles,
        then exactly one ResultEvent.
        """
        async for item in self._drive(program, cancel, context):
            if isinstance(item, RunOutcome):
                yield ResultEvent(result=item.to_payload(), canceled=item.canceled)
            else:
                yield item

    async def run(
        self,
        program: Any,
        cancel: CancelSignal | None = None,
        context: Any = None,
    ) -> RunOutcome:
        """Execute `program` to completion and return its terminal outcome."""
        outcome = None
        async for item in self._drive(program, cancel, context):
            if isinstance(item, RunOutcome):
                outcome = item
        return outcome
