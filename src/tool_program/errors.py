# errors.py
# Exception hierarchy for the tool-program engine.
#
# These never cross the runner's public boundary: the step executor and the
# runner turn them into outcome values. They exist so each failure mode has
# its own class and message.


class ProgramError(Exception):
    """Base class for every engine error."""


class ProgramValidationError(ProgramError):
    """Raised when a submitted program is malformed. No step is executed."""


class ResolutionError(ProgramError):
    """A {{...}} placeholder could not be resolved against the step outputs."""

    def __init__(self, expression: str, detail: str) -> None:
        self.expression = expression
        self.detail = detail
        super().__init__(f"{{{{{expression}}}}}: {detail}")


class TemplateSyntaxError(ResolutionError):
    """The placeholder expression itself is malformed."""


class StepNotExecutedError(ResolutionError):
    """The referenced step has no output yet (misspelled or forward reference)."""

    def __init__(self, expression: str, step_id: str) -> None:
        self.step_id = step_id
        super().__init__(expression, f'Step "{step_id}" has not been executed yet')


class PropertyNotFoundError(ResolutionError):
    """A property is missing on an object node."""


class IndexOutOfRangeError(ResolutionError):
    """An index is beyond the end of an array node."""


class PrimitiveAccessError(ResolutionError):
    """A property or index was applied to a string, number, boolean or null."""


class NotAnArrayError(ResolutionError):
    """An index was applied to a node that is not an array."""
