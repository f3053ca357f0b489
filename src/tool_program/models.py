# models.py
# Data contracts for the tool-program engine.
# No business logic lives here: pure schema and validation.

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Step(BaseModel):
    """A single tool invocation inside a program."""

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    id: str = Field(..., min_length=1, description="Caller-chosen step id, unique within the program.")
    tool: str = Field(..., min_length=1, description="Tool name, must exist in the registry.")
    args: dict[str, Any] = Field(default_factory=dict, description="Tool arguments, may embed {{step.path}} placeholders.")
    description: str | None = Field(default=None, description="Status line shown when the step starts.")
    expert: str | None = Field(default=None, description="Optional expert identifier, passed through untouched.")


class Program(BaseModel):
    """An ordered, non-empty list of steps."""

    model_config = ConfigDict(frozen=True)

    steps: list[Step] = Field(..., min_length=1)

    @model_validator(mode="after")
    def _unique_ids(self) -> "Program":
        seen: set[str] = set()
        for step in self.steps:
            if step.id in seen:
                raise ValueError(f'duplicate step id "{step.id}"')
            seen.add(step.id)
        return self


class ToolSpec(BaseModel):
    """Static metadata a tool exposes to the engine and to introspection."""

    name: str
    description: str = ""
    parameters: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}, "required": []}
    )


class ToolDescriptor(BaseModel):
    """One entry of a get_tools_info answer."""

    name: str
    description: str | None = None
    parameters: dict[str, Any] | None = None
    result_schema: Any = None
    error: str | None = None

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class StepResult(BaseModel):
    """Outcome of one step: either a value or an error attributed to a step."""

    value: Any = None
    error: str | None = None
    failed_step: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class RunState(str, Enum):
    """Terminal state of a run."""

    SUCCESS = "success"
    FAILED = "failed"
    CANCELED = "canceled"


class RunOutcome(BaseModel):
    """Terminal result of a program run."""

    state: RunState
    value: Any = None
    error: str | None = None
    failed_step: str | None = None
    outputs: dict[str, Any] = Field(default_factory=dict, description="Step outputs collected before the run ended.")

    @property
    def canceled(self) -> bool:
        return self.state is RunState.CANCELED

    def to_payload(self) -> Any:
        """Shape the outcome the way a host hands it back to the model."""
        if self.state is RunState.SUCCESS:
            return self.value
        payload: dict[str, Any] = {"error": self.error}
        if self.failed_step is not None:
            payload["failedStep"] = self.failed_step
        if self.canceled:
            payload["canceled"] = True
        return payload


# ---------------------------------------------------------------------------
# Progress events (streaming variant)
# ---------------------------------------------------------------------------


class StatusEvent(BaseModel):
    type: Literal["status"] = "status"
    step_id: str
    phase: Literal["started", "completed", "failed"]
    status: str


class ResultEvent(BaseModel):
    type: Literal["result"] = "result"
    result: Any = None
    canceled: bool = False


ProgressEvent = StatusEvent | ResultEvent
