"""
Value Coercer - maps one variable's raw input to its formula contributions.

Every variable kind has exactly one coercion function, registered in
_COERCERS; the module refuses to import if a kind is missing. Coercion is
lenient: unparseable or unmatched input contributes 0 and is reported as a
non-fatal CoercionError.
"""
import logging
import math
import re
from typing import Any, Callable, Optional, Union

from .errors import CoercionError
from .models import Variable, VariableKind

logger = logging.getLogger(__name__)

Contribution = Union[int, float, str]

TRUE_STRINGS = ('true', '1', 'yes', 'on')

# Plain decimal notation with an optional exponent
_NUMBER_TEXT = re.compile(r'[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?')


def parse_number(raw: Any) -> Optional[float]:
    """Parse a raw input as a finite number. Returns None if not possible."""
    if raw is None or isinstance(raw, (list, tuple, set, dict)):
        return None
    if isinstance(raw, bool):
        return int(raw)
    if isinstance(raw, (int, float)):
        value = raw
    else:
        text = str(raw).strip()
        if not text:
            return None
        if not _NUMBER_TEXT.fullmatch(text):
            return None
        value = float(text)
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


def is_empty(raw: Any) -> bool:
    """None, blank strings and empty selections count as no value."""
    if raw is None:
        return True
    if isinstance(raw, str):
        return raw.strip() == ''
    if isinstance(raw, (list, tuple, set)):
        return len(raw) == 0
    return False


def is_checked(raw: Any) -> bool:
    """Checkbox truthiness; strings use the usual true/1/yes/on spellings."""
    if isinstance(raw, str):
        return raw.strip().lower() in TRUE_STRINGS
    if isinstance(raw, (list, tuple, set)):
        return len(raw) > 0
    return bool(raw)


def selection_set(raw: Any) -> set[str]:
    """Normalize a multi-select raw value to a set of strings."""
    if is_empty(raw):
        return set()
    if isinstance(raw, (list, tuple, set)):
        return {str(item) for item in raw if not is_empty(item)}
    return {str(raw)}


def _report(issues: Optional[list], error: CoercionError):
    logger.debug(str(error))
    if issues is not None:
        issues.append(error)


def _coerce_numeric(variable: Variable, raw: Any, issues: Optional[list]) -> dict[str, Contribution]:
    # Number parses; Slider/Stepper values arrive range-checked by the form
    if is_empty(raw):
        return {variable.id: 0}
    value = parse_number(raw)
    if value is None:
        _report(issues, CoercionError(variable.id, raw, "not a number"))
        return {variable.id: 0}
    return {variable.id: value}


def _coerce_text(variable: Variable, raw: Any, issues: Optional[list]) -> dict[str, Contribution]:
    return {variable.id: 0}


def _coerce_checkbox(variable: Variable, raw: Any, issues: Optional[list]) -> dict[str, Contribution]:
    if is_checked(raw):
        return {variable.id: variable.checked_value}
    return {variable.id: variable.unchecked_value}


def _selected_option(variable: Variable, raw: Any, issues: Optional[list]):
    if is_empty(raw):
        return None
    option = variable.find_option(raw)
    if option is None:
        _report(issues, CoercionError(variable.id, raw, "no matching option"))
    return option


def _coerce_dropdown(variable: Variable, raw: Any, issues: Optional[list]) -> dict[str, Contribution]:
    option = _selected_option(variable, raw, issues)
    return {variable.id: option.numeric_value if option else 0}


def _coerce_select_legacy(variable: Variable, raw: Any, issues: Optional[list]) -> dict[str, Contribution]:
    option = _selected_option(variable, raw, issues)
    if option is None:
        return {variable.id: 0}
    # Legacy definitions priced through "multiplier"; a 0/None multiplier falls through
    return {variable.id: option.multiplier if option.multiplier else option.numeric_value}


def _coerce_multiple_choice(variable: Variable, raw: Any, issues: Optional[list]) -> dict[str, Contribution]:
    if variable.allow_multiple_selection:
        return _coerce_multi_select(variable, raw, issues)

    if isinstance(raw, (list, tuple)):
        if len(raw) > 1:
            _report(issues, CoercionError(variable.id, raw, "several selections for a single-select question, using the first"))
        raw = raw[0] if raw else None
    option = _selected_option(variable, raw, issues)
    return {variable.id: option.numeric_value if option else 0}


def _coerce_multi_select(variable: Variable, raw: Any, issues: Optional[list]) -> dict[str, Contribution]:
    selected = selection_set(raw)
    contributions: dict[str, Contribution] = {}
    matched: set[str] = set()

    for option in variable.options:
        keys = {str(option.value), option.id}
        if keys & selected:
            matched |= keys & selected
            contributions[variable.option_token(option)] = option.numeric_value
        else:
            contributions[variable.option_token(option)] = option.default_unselected_value

    unknown = selected - matched
    if unknown:
        _report(issues, CoercionError(variable.id, sorted(unknown), "no matching option"))

    return contributions


_COERCERS: dict[VariableKind, Callable[[Variable, Any, Optional[list]], dict[str, Contribution]]] = {
    VariableKind.NUMBER: _coerce_numeric,
    VariableKind.STEPPER: _coerce_numeric,
    VariableKind.SLIDER: _coerce_numeric,
    VariableKind.TEXT: _coerce_text,
    VariableKind.CHECKBOX: _coerce_checkbox,
    VariableKind.DROPDOWN: _coerce_dropdown,
    VariableKind.SELECT_LEGACY: _coerce_select_legacy,
    VariableKind.MULTIPLE_CHOICE: _coerce_multiple_choice,
}

_missing_kinds = set(VariableKind) - set(_COERCERS)
if _missing_kinds:
    raise RuntimeError(f"No coercion registered for: {sorted(k.value for k in _missing_kinds)}")


def coerce(variable: Variable, raw: Any, issues: Optional[list] = None) -> dict[str, Contribution]:
    """
    Coerce one variable's raw input into {token: contribution}.

    Numbers come back as int/float; Checkbox contributions are the configured
    substitution strings. Non-fatal CoercionErrors are appended to issues.
    """
    return _COERCERS[variable.kind](variable, raw, issues)


def build_token_map(variables, effective_values: dict[str, Any], issues: Optional[list] = None) -> dict[str, Contribution]:
    """Coerce every variable's effective value into one token map."""
    token_map: dict[str, Contribution] = {}
    for variable in variables:
        token_map.update(coerce(variable, effective_values.get(variable.id), issues))
    return token_map
