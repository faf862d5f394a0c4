"""
Variable & Formula Validator - structural checks run before a formula is saved.

Errors (DefinitionError) reject the definition; warnings are advisory and
cover things the runtime tolerates (unknown tokens evaluate as 0, etc.).
The runtime assumes a definition has passed validation.
"""
from dataclasses import dataclass, field
from typing import Any

from .coercer import parse_number
from .errors import DefinitionError, DefinitionErrorCode, EvaluationError
from .expression import evaluate_expression, substitute_tokens
from .models import (
    Formula,
    NUMERIC_KINDS,
    OPTION_KINDS,
    RANGE_KINDS,
    Variable,
    VariableKind,
)
from .resolver import available_conditions, condition_label

DEFAULT_UNIT_MAX_LENGTH = 15


@dataclass
class ValidationReport:
    """Result of formula validation."""
    valid: bool = True
    errors: list[DefinitionError] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def add_error(self, error: DefinitionError):
        if str(error) not in self.error_messages:
            self.errors.append(error)
        self.valid = False

    def add_warning(self, warning: str):
        if warning not in self.warnings:
            self.warnings.append(warning)

    @property
    def error_messages(self) -> list[str]:
        return [str(e) for e in self.errors]

    def raise_for_errors(self):
        """Raise the first DefinitionError, if any."""
        if self.errors:
            raise self.errors[0]


def validate_variable(variable: Variable, siblings=(),
                      unit_max_length: int = DEFAULT_UNIT_MAX_LENGTH) -> list[DefinitionError]:
    """
    Validate one variable against its own invariants and its siblings' ids.

    `siblings` may include the variable itself; it is skipped by identity.
    """
    errors = []

    def error(code: DefinitionErrorCode, message: str):
        errors.append(DefinitionError(code, message, variable.id or None))

    if not variable.name.strip():
        error(DefinitionErrorCode.EMPTY_NAME, "Name is required")

    if not variable.id.strip():
        error(DefinitionErrorCode.EMPTY_ID, "Id is required")
    else:
        for other in siblings:
            if other is variable or not other.id:
                continue
            if other.id == variable.id:
                error(DefinitionErrorCode.DUPLICATE_VARIABLE_ID, f"Id '{variable.id}' is used by more than one variable")
            elif other.id.startswith(variable.id) or variable.id.startswith(other.id):
                error(DefinitionErrorCode.PREFIX_COLLISION_ID, f"Id '{variable.id}' collides with '{other.id}' (one is a prefix of the other)")

    if variable.unit and len(variable.unit) > unit_max_length:
        error(DefinitionErrorCode.UNIT_TOO_LONG, f"Unit must be at most {unit_max_length} characters")

    if variable.kind in RANGE_KINDS:
        if variable.min is not None and variable.max is not None and variable.min > variable.max:
            error(DefinitionErrorCode.INVALID_RANGE, f"min ({variable.min}) is greater than max ({variable.max})")
        if variable.kind == VariableKind.SLIDER and variable.step is not None and variable.step <= 0:
            error(DefinitionErrorCode.INVALID_RANGE, f"step must be positive, got {variable.step}")

    if variable.kind in OPTION_KINDS:
        if not variable.options:
            error(DefinitionErrorCode.EMPTY_OPTIONS, f"{variable.kind.value} needs at least one option")

        seen_ids, seen_values = set(), set()
        for option in variable.options:
            value = str(option.value)
            if option.id in seen_ids or value in seen_values:
                error(DefinitionErrorCode.DUPLICATE_OPTION_ID, f"Option '{option.id}' ({value}) is not unique")
            seen_ids.add(option.id)
            seen_values.add(value)

    return errors


def _default_matches(variable: Variable, value: Any) -> bool:
    """Does a conditional default fit the variable's coercion domain?"""
    if value is None:
        return True
    if variable.kind in NUMERIC_KINDS:
        return not isinstance(value, bool) and parse_number(value) is not None
    if variable.kind == VariableKind.CHECKBOX:
        return isinstance(value, bool)
    if variable.kind == VariableKind.TEXT:
        return isinstance(value, str)
    if variable.is_multi_select and isinstance(value, list):
        return all(isinstance(v, (str, int, float)) and not isinstance(v, bool) for v in value)
    return isinstance(value, (str, int, float)) and not isinstance(value, bool)


def _check_conditional_logic(formula: Formula, index: int, variable: Variable, report: ValidationReport):
    logic = variable.conditional_logic
    positions = {v.id: i for i, v in enumerate(formula.variables)}

    for condition in logic.conditions:
        dep_id = condition.depends_on_variable_id
        if dep_id not in positions:
            report.add_error(DefinitionError(
                DefinitionErrorCode.UNKNOWN_DEPENDENCY,
                f"Condition references unknown variable '{dep_id}'",
                variable.id,
            ))
            continue
        if positions[dep_id] >= index:
            report.add_error(DefinitionError(
                DefinitionErrorCode.FORWARD_DEPENDENCY,
                f"Condition references '{dep_id}', which does not come before this variable",
                variable.id,
            ))
            continue
        dependency = formula.variables[positions[dep_id]]
        if condition.kind not in available_conditions(dependency.kind):
            report.add_warning(
                f"{variable.id}: '{condition_label(condition.kind)}' is not a usual condition "
                f"for {dependency.kind.value} variable '{dep_id}'"
            )

    if not _default_matches(variable, logic.default_value):
        report.add_error(DefinitionError(
            DefinitionErrorCode.INVALID_DEFAULT_VALUE,
            f"Default value {logic.default_value!r} does not fit a {variable.kind.value} variable",
            variable.id,
        ))
    elif variable.kind in OPTION_KINDS and logic.default_value not in (None, '', []):
        defaults = logic.default_value if isinstance(logic.default_value, list) else [logic.default_value]
        for value in defaults:
            if variable.find_option(value) is None:
                report.add_warning(f"{variable.id}: default value {value!r} matches no option")


def _check_expression(formula: Formula, report: ValidationReport):
    if not formula.expression.strip():
        report.add_warning("Formula expression is empty")
        return

    sample_tokens = {}
    for variable in formula.variables:
        for token in variable.tokens():
            sample_tokens[token] = variable.checked_value if variable.kind == VariableKind.CHECKBOX else 1

    substituted, unknown = substitute_tokens(formula.expression, sample_tokens)
    multi_select_ids = {v.id for v in formula.variables if v.is_multi_select}
    for name in unknown:
        if name in multi_select_ids:
            report.add_warning(
                f"'{name}' allows multiple selections; reference its option tokens "
                f"({name}_<option>) instead of the variable id"
            )
        else:
            report.add_warning(f"Unknown token '{name}' will evaluate as 0")

    try:
        evaluate_expression(substituted)
    except EvaluationError as e:
        report.add_warning(f"Expression may not evaluate: {e}")


def validate_formula(formula: Formula, unit_max_length: int = DEFAULT_UNIT_MAX_LENGTH) -> ValidationReport:
    """Validate a whole formula: every variable, conditional logic, prices and expression."""
    report = ValidationReport()

    for index, variable in enumerate(formula.variables):
        for error in validate_variable(variable, formula.variables, unit_max_length):
            report.add_error(error)
        if variable.has_conditions:
            _check_conditional_logic(formula, index, variable, report)

    if (formula.min_price is not None and formula.max_price is not None
            and formula.min_price > formula.max_price):
        report.add_error(DefinitionError(
            DefinitionErrorCode.INVALID_PRICE_RANGE,
            f"minPrice ({formula.min_price}) is greater than maxPrice ({formula.max_price})",
        ))

    _check_expression(formula, report)
    return report
