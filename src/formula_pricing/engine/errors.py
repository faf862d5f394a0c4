"""
Error types shared by the formula pricing engine.

DefinitionError is raised at design time and rejects a formula save.
ResolutionError and CoercionError are non-fatal: the engine falls back
(condition false / value 0) and reports them as warnings.
EvaluationError subclasses are fatal to a single price computation only.
"""
from enum import Enum
from typing import Any, Optional


class DefinitionErrorCode(Enum):
    """Structural problems found while validating a formula definition."""
    EMPTY_NAME = "empty_name"
    EMPTY_ID = "empty_id"
    DUPLICATE_VARIABLE_ID = "duplicate_variable_id"
    PREFIX_COLLISION_ID = "prefix_collision_id"
    INVALID_RANGE = "invalid_range"
    EMPTY_OPTIONS = "empty_options"
    DUPLICATE_OPTION_ID = "duplicate_option_id"
    UNIT_TOO_LONG = "unit_too_long"
    UNKNOWN_DEPENDENCY = "unknown_dependency"
    FORWARD_DEPENDENCY = "forward_dependency"
    INVALID_DEFAULT_VALUE = "invalid_default_value"
    INVALID_PRICE_RANGE = "invalid_price_range"


class FormulaEngineError(Exception):
    """Base class for all engine errors."""


class DefinitionError(FormulaEngineError):
    """A formula or variable definition violates a structural invariant."""

    def __init__(self, code: DefinitionErrorCode, message: str, variable_id: Optional[str] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.variable_id = variable_id

    def __str__(self) -> str:
        if self.variable_id:
            return f"[{self.code.value}] {self.variable_id}: {self.message}"
        return f"[{self.code.value}] {self.message}"


class ResolutionError(FormulaEngineError):
    """A condition references a variable that is unknown or not earlier in the list."""

    def __init__(self, variable_id: str, depends_on: str):
        super().__init__(
            f"Condition on '{variable_id}' references unknown or later variable '{depends_on}'"
        )
        self.variable_id = variable_id
        self.depends_on = depends_on


class CoercionError(FormulaEngineError):
    """A raw input could not be coerced; the contribution falls back to 0."""

    def __init__(self, variable_id: str, raw_value: Any, reason: str):
        super().__init__(f"Could not coerce {raw_value!r} for '{variable_id}': {reason}")
        self.variable_id = variable_id
        self.raw_value = raw_value
        self.reason = reason


class EvaluationError(FormulaEngineError):
    """The substituted expression could not be evaluated."""


class FormulaSyntaxError(EvaluationError):
    """Invalid characters, unbalanced parentheses or malformed arithmetic."""

    def __init__(self, message: str, position: Optional[int] = None):
        if position is not None:
            message = f"{message} (at position {position})"
        super().__init__(message)
        self.position = position


class DivisionByZeroError(EvaluationError):
    """The expression divides by zero."""
