"""
Conditional Dependency Resolver - decides each variable's effective value.

Variables are processed strictly in list order. A variable with enabled
conditional logic is visible only if its conditions pass against the
already-resolved effective values of earlier variables; a hidden variable
takes its configured default instead of the user's input. A condition that
names an unknown (or not-earlier) variable is false.
"""
import logging
from typing import Any, Optional

from .coercer import coerce, is_checked, is_empty, parse_number, selection_set
from .errors import ResolutionError
from .models import (
    ConditionKind,
    LogicOperator,
    NUMERIC_KINDS,
    OPTION_KINDS,
    Variable,
    VariableKind,
)

logger = logging.getLogger(__name__)

NUMERIC_CONDITIONS = (
    ConditionKind.GREATER_THAN,
    ConditionKind.LESS_THAN,
    ConditionKind.GREATER_OR_EQUAL,
    ConditionKind.LESS_OR_EQUAL,
)

_NUMBER_CONDITIONS = [
    ConditionKind.EQUALS, ConditionKind.NOT_EQUALS,
    ConditionKind.GREATER_THAN, ConditionKind.LESS_THAN,
    ConditionKind.GREATER_OR_EQUAL, ConditionKind.LESS_OR_EQUAL,
    ConditionKind.IS_EMPTY, ConditionKind.IS_NOT_EMPTY,
]
_CHOICE_CONDITIONS = [
    ConditionKind.EQUALS, ConditionKind.NOT_EQUALS, ConditionKind.CONTAINS,
    ConditionKind.IS_EMPTY, ConditionKind.IS_NOT_EMPTY,
]

AVAILABLE_CONDITIONS: dict[VariableKind, list[ConditionKind]] = {
    VariableKind.NUMBER: _NUMBER_CONDITIONS,
    VariableKind.STEPPER: _NUMBER_CONDITIONS,
    VariableKind.SLIDER: _NUMBER_CONDITIONS,
    VariableKind.DROPDOWN: _CHOICE_CONDITIONS,
    VariableKind.SELECT_LEGACY: _CHOICE_CONDITIONS,
    VariableKind.MULTIPLE_CHOICE: _CHOICE_CONDITIONS,
    VariableKind.TEXT: _CHOICE_CONDITIONS,
    VariableKind.CHECKBOX: [ConditionKind.EQUALS, ConditionKind.NOT_EQUALS],
}

CONDITION_LABELS = {
    ConditionKind.EQUALS: "Equals",
    ConditionKind.NOT_EQUALS: "Does not equal",
    ConditionKind.GREATER_THAN: "Greater than",
    ConditionKind.LESS_THAN: "Less than",
    ConditionKind.GREATER_OR_EQUAL: "Greater than or equal to",
    ConditionKind.LESS_OR_EQUAL: "Less than or equal to",
    ConditionKind.CONTAINS: "Contains/Is one of",
    ConditionKind.IS_EMPTY: "Is empty",
    ConditionKind.IS_NOT_EMPTY: "Is not empty",
}


def available_conditions(kind: VariableKind) -> list[ConditionKind]:
    """Condition kinds offered when depending on a variable of this kind."""
    return list(AVAILABLE_CONDITIONS[kind])


def condition_label(kind: ConditionKind) -> str:
    """User-facing label for a condition kind."""
    return CONDITION_LABELS.get(kind, kind.value)


def available_dependencies(variable: Variable, variables) -> list[Variable]:
    """
    Variables offered as dependencies for `variable` in the builder.

    Only variables that appear before it and carry no enabled logic of their
    own are offered.
    """
    ids = [v.id for v in variables]
    if variable.id not in ids:
        return []
    index = ids.index(variable.id)
    return [v for v in list(variables)[:index] if not v.has_conditions]


def _canonical_selection(dependency: Variable, values: Any) -> set[str]:
    """Map selected values to option ids where they match an option."""
    canonical = set()
    for value in selection_set(values):
        option = dependency.find_option(value)
        canonical.add(option.id if option else value)
    return canonical


def _numeric_value(dependency: Variable, actual: Any) -> Optional[float]:
    if dependency.kind in NUMERIC_KINDS or dependency.kind == VariableKind.TEXT:
        return parse_number(actual)
    if dependency.is_multi_select:
        return None
    return parse_number(coerce(dependency, actual).get(dependency.id))


def _values_equal(dependency: Variable, actual: Any, expected: Any) -> bool:
    if dependency.kind == VariableKind.CHECKBOX:
        return is_checked(actual) == is_checked(expected)

    if dependency.kind in NUMERIC_KINDS:
        left, right = parse_number(actual), parse_number(expected)
        if left is not None and right is not None:
            return left == right
        return str(actual) == str(expected)

    if dependency.is_multi_select:
        return _canonical_selection(dependency, actual) == _canonical_selection(dependency, expected)

    if isinstance(actual, (list, tuple)):
        actual = actual[0] if actual else None
        if actual is None:
            return False

    if dependency.kind in OPTION_KINDS:
        option = dependency.find_option(actual)
        if option is not None:
            return str(expected) in (str(option.value), option.id)

    return str(actual) == str(expected)


def _contains(dependency: Variable, actual: Any, expected: Any) -> bool:
    if expected is None:
        return False

    if isinstance(actual, (list, tuple, set)):
        selected = _canonical_selection(dependency, actual)
        wanted = _canonical_selection(dependency, expected)
        return bool(selected & wanted)

    if isinstance(expected, (list, tuple, set)):
        # "Is one of"
        return bool(_canonical_selection(dependency, actual) & _canonical_selection(dependency, expected))

    return str(expected).lower() in str(actual).lower()


def check_condition(dependency: Variable, actual: Any, kind: ConditionKind, expected: Any) -> bool:
    """Test one condition against a dependency's effective value."""
    if kind == ConditionKind.IS_EMPTY:
        return is_empty(actual)
    if kind == ConditionKind.IS_NOT_EMPTY:
        return not is_empty(actual)

    # A dependency without a value fails every comparison
    if actual is None:
        return False

    if kind == ConditionKind.EQUALS:
        return _values_equal(dependency, actual, expected)
    if kind == ConditionKind.NOT_EQUALS:
        return not _values_equal(dependency, actual, expected)
    if kind == ConditionKind.CONTAINS:
        return _contains(dependency, actual, expected)

    left = _numeric_value(dependency, actual)
    right = parse_number(expected)
    if left is None or right is None:
        return False

    if kind == ConditionKind.GREATER_THAN:
        return left > right
    if kind == ConditionKind.LESS_THAN:
        return left < right
    if kind == ConditionKind.GREATER_OR_EQUAL:
        return left >= right
    if kind == ConditionKind.LESS_OR_EQUAL:
        return left <= right
    return False


def is_visible(variable: Variable, resolved: dict[str, tuple[Variable, Any]],
               issues: Optional[list] = None) -> bool:
    """
    Combine a variable's conditions against already-resolved dependencies.

    `resolved` maps variable id → (variable, effective value) for every
    variable earlier in the list.
    """
    if not variable.has_conditions:
        return True

    logic = variable.conditional_logic
    if not logic.conditions:
        return True

    results = []
    for condition in logic.conditions:
        entry = resolved.get(condition.depends_on_variable_id)
        if entry is None:
            error = ResolutionError(variable.id, condition.depends_on_variable_id)
            logger.warning(str(error))
            if issues is not None:
                issues.append(error)
            results.append(False)
            continue
        dependency, actual = entry
        results.append(check_condition(dependency, actual, condition.kind, condition.expected_value))

    if len(results) == 1:
        return results[0]
    if logic.operator == LogicOperator.OR:
        return any(results)
    return all(results)


def resolve_with_trace(variables, raw_inputs: dict[str, Any]) -> tuple[dict[str, Any], dict[str, bool], list, list]:
    """
    Resolve effective values with visibility, trace steps and issues.

    Returns (effective_values, visibility, trace, issues) where trace is a
    list of (step, description, value) tuples and issues holds the
    ResolutionErrors met on the way.
    """
    effective: dict[str, Any] = {}
    visibility: dict[str, bool] = {}
    resolved: dict[str, tuple[Variable, Any]] = {}
    trace = []
    issues: list[ResolutionError] = []

    for variable in variables:
        raw = raw_inputs[variable.id] if variable.id in raw_inputs else variable.default_value

        visible = is_visible(variable, resolved, issues)
        visibility[variable.id] = visible

        if visible:
            value = raw
            if variable.has_conditions:
                trace.append(("Visibility", f"{variable.id} conditions met, using input", repr(raw)))
        else:
            value = variable.conditional_logic.default_value
            trace.append(("Visibility", f"{variable.id} hidden, using default", repr(value)))

        effective[variable.id] = value
        resolved[variable.id] = (variable, value)

    hidden = sum(1 for v in visibility.values() if not v)
    trace.append(("Resolution", f"Resolved {len(effective)} variables", f"{hidden} hidden"))
    return effective, visibility, trace, issues


def resolve(variables, raw_inputs: dict[str, Any]) -> dict[str, Any]:
    """Resolve {variable id: effective raw value} for an ordered variable list."""
    effective, _, _, _ = resolve_with_trace(variables, raw_inputs)
    return effective
