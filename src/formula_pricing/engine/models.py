"""
Data models for the formula pricing engine.

Definitions (Formula, Variable, Option, ConditionalLogic, Condition) are
frozen dataclasses: the engine treats them as immutable value objects for the
duration of one computation. Results are plain dataclasses with trace helpers.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class VariableKind(Enum):
    """Input kinds a designer can configure."""
    NUMBER = "number"
    STEPPER = "stepper"
    TEXT = "text"
    CHECKBOX = "checkbox"
    SLIDER = "slider"
    DROPDOWN = "dropdown"
    MULTIPLE_CHOICE = "multiple-choice"
    SELECT_LEGACY = "select"

    @classmethod
    def parse(cls, value: str) -> 'VariableKind':
        """Parse a kind from its stored name ("multiple-choice", "multiple_choice", ...)."""
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower().replace('_', '-')
        for kind in cls:
            if kind.value == normalized or kind.name.lower().replace('_', '-') == normalized:
                return kind
        raise ValueError(f"Unknown variable type '{value}'")


NUMERIC_KINDS = frozenset({VariableKind.NUMBER, VariableKind.STEPPER, VariableKind.SLIDER})
OPTION_KINDS = frozenset({VariableKind.DROPDOWN, VariableKind.MULTIPLE_CHOICE, VariableKind.SELECT_LEGACY})
RANGE_KINDS = frozenset({VariableKind.STEPPER, VariableKind.SLIDER})


class ConditionKind(Enum):
    """Comparison applied to a dependency's effective value."""
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    GREATER_OR_EQUAL = "greater_or_equal"
    LESS_OR_EQUAL = "less_or_equal"
    CONTAINS = "contains"
    IS_EMPTY = "is_empty"
    IS_NOT_EMPTY = "is_not_empty"


class LogicOperator(Enum):
    AND = "AND"
    OR = "OR"


def _number(value: Any, default: float = 0) -> float:
    """Parse a stored numeric field (empty = default)."""
    if value is None or value == '':
        return default
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    return float(str(value).strip())


def _optional_number(value: Any) -> Optional[float]:
    if value is None or value == '':
        return None
    return _number(value)


def _optional_int(value: Any) -> Optional[int]:
    if value is None or value == '':
        return None
    return int(value)


@dataclass(frozen=True)
class Option:
    """One choice of a Dropdown, MultipleChoice or SelectLegacy variable."""
    id: str
    label: str
    value: Any
    numeric_value: float = 0
    default_unselected_value: float = 0  # multi-select only
    multiplier: Optional[float] = None  # SelectLegacy only
    image: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict, index: int = 0) -> 'Option':
        """Create an Option from its stored JSON shape."""
        label = str(data.get('label', '')).strip()
        value = data.get('value')
        if value is None or value == '':
            value = label
        option_id = data.get('id') or (str(value) if value != '' else '') or f"option_{index}"
        return cls(
            id=str(option_id),
            label=label,
            value=value,
            numeric_value=_number(data.get('numericValue')),
            default_unselected_value=_number(data.get('defaultUnselectedValue')),
            multiplier=_optional_number(data.get('multiplier')),
            image=data.get('image') or None,
        )


@dataclass(frozen=True)
class Condition:
    """A single visibility test against an earlier variable."""
    depends_on_variable_id: str
    kind: ConditionKind
    expected_value: Any = None

    @classmethod
    def from_dict(cls, data: dict) -> 'Condition':
        """Create a Condition; accepts both current and legacy key names."""
        kind = data.get('kind') or data.get('condition') or 'equals'
        expected = data.get('expectedValue')
        expected_values = data.get('expectedValues')
        if isinstance(expected_values, list) and expected_values:
            expected = expected_values
        return cls(
            depends_on_variable_id=str(data.get('dependsOnVariableId') or data.get('dependsOnVariable') or ''),
            kind=ConditionKind(kind),
            expected_value=expected,
        )


@dataclass(frozen=True)
class ConditionalLogic:
    """Rules deciding whether a variable's input or its default applies."""
    enabled: bool = False
    operator: LogicOperator = LogicOperator.AND
    conditions: tuple[Condition, ...] = ()
    default_value: Any = None

    @classmethod
    def from_dict(cls, data: dict) -> 'ConditionalLogic':
        """
        Create ConditionalLogic from its stored shape.

        The legacy single-condition shape ({dependsOnVariable, condition,
        expectedValue}) is converted to a one-element condition list.
        """
        raw_conditions = data.get('conditions')
        if raw_conditions is None and data.get('dependsOnVariable'):
            raw_conditions = [data]
        return cls(
            enabled=bool(data.get('enabled', False)),
            operator=LogicOperator(str(data.get('operator') or 'AND').upper()),
            conditions=tuple(Condition.from_dict(c) for c in (raw_conditions or [])),
            default_value=data.get('defaultValue'),
        )


@dataclass(frozen=True)
class Variable:
    """One designer-defined question contributing to a price formula."""
    id: str
    name: str
    kind: VariableKind
    unit: Optional[str] = None
    options: tuple[Option, ...] = ()
    min: Optional[float] = None
    max: Optional[float] = None
    step: Optional[float] = None
    checked_value: str = "1"
    unchecked_value: str = "0"
    allow_multiple_selection: bool = False
    conditional_logic: Optional[ConditionalLogic] = None
    default_value: Any = None  # prefilled input when the snapshot has none
    connection_key: Optional[str] = None  # shares one answer across formulas

    @classmethod
    def from_dict(cls, data: dict) -> 'Variable':
        """Create a Variable from its stored JSON shape (camelCase keys)."""
        logic = data.get('conditionalLogic')
        return cls(
            id=str(data.get('id', '')),
            name=str(data.get('name', '')),
            kind=VariableKind.parse(data.get('type') or data.get('kind') or 'number'),
            unit=data.get('unit') or None,
            options=tuple(Option.from_dict(o, i) for i, o in enumerate(data.get('options') or [])),
            min=_optional_number(data.get('min')),
            max=_optional_number(data.get('max')),
            step=_optional_number(data.get('step')),
            checked_value=str(data.get('checkedValue') or "1"),
            unchecked_value=str(data.get('uncheckedValue') or "0"),
            allow_multiple_selection=bool(data.get('allowMultipleSelection', False)),
            conditional_logic=ConditionalLogic.from_dict(logic) if logic else None,
            default_value=data.get('defaultValue'),
            connection_key=data.get('connectionKey') or None,
        )

    @property
    def is_multi_select(self) -> bool:
        return self.kind == VariableKind.MULTIPLE_CHOICE and self.allow_multiple_selection

    @property
    def has_conditions(self) -> bool:
        return bool(self.conditional_logic and self.conditional_logic.enabled)

    def option_token(self, option: Option) -> str:
        """Composite formula token for one option of a multi-select variable."""
        return f"{self.id}_{option.id}"

    def tokens(self) -> list[str]:
        """Formula tokens this variable contributes."""
        if self.is_multi_select:
            return [self.option_token(o) for o in self.options]
        return [self.id]

    def find_option(self, raw: Any) -> Optional[Option]:
        """Find the option selected by a raw value (matched on value, then id)."""
        if raw is None:
            return None
        needle = str(raw)
        for option in self.options:
            if str(option.value) == needle:
                return option
        for option in self.options:
            if option.id == needle:
                return option
        return None


@dataclass(frozen=True)
class Formula:
    """An arithmetic expression over an ordered list of variables."""
    id: str
    expression: str
    variables: tuple[Variable, ...] = ()
    min_price: Optional[int] = None
    max_price: Optional[int] = None
    name: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> 'Formula':
        """Create a Formula from its stored JSON shape."""
        return cls(
            id=str(data.get('id', '')),
            name=str(data.get('name') or data.get('title') or ''),
            expression=str(data.get('expression') or data.get('formula') or ''),
            variables=tuple(Variable.from_dict(v) for v in data.get('variables') or []),
            min_price=_optional_int(data.get('minPrice')),
            max_price=_optional_int(data.get('maxPrice')),
        )

    def get_variable(self, variable_id: str) -> Optional[Variable]:
        for variable in self.variables:
            if variable.id == variable_id:
                return variable
        return None

    def tokens(self) -> list[str]:
        """Insertable formula tokens, in variable order."""
        tokens = []
        for variable in self.variables:
            tokens.extend(variable.tokens())
        return tokens


@dataclass
class TraceStep:
    """A single step in the price computation trace."""
    step: str
    description: str
    value: Optional[str] = None


@dataclass
class Request:
    """A price computation request: one formula and a raw-input snapshot."""
    formula: Formula
    inputs: dict[str, Any] = field(default_factory=dict)


@dataclass
class PriceResult:
    """Complete result of one price computation."""
    formula_id: str
    price: int
    effective_values: dict[str, Any] = field(default_factory=dict)
    visibility: dict[str, bool] = field(default_factory=dict)
    token_map: dict[str, Any] = field(default_factory=dict)
    substituted_expression: str = ""
    unrounded: Optional[float] = None
    rounded: Optional[int] = None
    clamped: Optional[str] = None  # "min" or "max"
    warnings: list[str] = field(default_factory=list)
    trace: list[TraceStep] = field(default_factory=list)

    def add_trace(self, step: str, description: str, value: str = None):
        """Add a step to the trace."""
        self.trace.append(TraceStep(step=step, description=description, value=value))

    def add_warning(self, warning: str):
        """Add a warning once."""
        if warning not in self.warnings:
            self.warnings.append(warning)

    def get_trace_text(self) -> str:
        """Get human-readable trace as formatted text."""
        lines = []
        for t in self.trace:
            if t.value:
                lines.append(f"→ {t.step}: {t.description} = {t.value}")
            else:
                lines.append(f"→ {t.step}: {t.description}")
        return "\n".join(lines)


@dataclass
class QuoteRequest:
    """Several formulas priced together, sharing answers by connection key."""
    formulas: list[Formula]
    inputs: dict[str, dict[str, Any]] = field(default_factory=dict)  # formula id → snapshot
    shared_inputs: dict[str, Any] = field(default_factory=dict)  # connection key → value


@dataclass
class Quote:
    """Result of a multi-formula quote."""
    total: int
    lines: list[PriceResult] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def add_warning(self, warning: str):
        if warning not in self.warnings:
            self.warnings.append(warning)
