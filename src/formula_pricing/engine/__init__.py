"""Engine subpackage - core price computation and definition checks."""
from .pricing_engine import PricingEngine, formula_tokens
from .models import (
    Condition,
    ConditionalLogic,
    ConditionKind,
    Formula,
    LogicOperator,
    Option,
    PriceResult,
    Quote,
    QuoteRequest,
    Request,
    Variable,
    VariableKind,
)
from .errors import (
    CoercionError,
    DefinitionError,
    DivisionByZeroError,
    EvaluationError,
    FormulaEngineError,
    FormulaSyntaxError,
    ResolutionError,
)
from .validator import ValidationReport, validate_formula, validate_variable

__all__ = [
    'PricingEngine', 'formula_tokens',
    'Condition', 'ConditionalLogic', 'ConditionKind', 'Formula', 'LogicOperator', 'Option',
    'PriceResult', 'Quote', 'QuoteRequest', 'Request', 'Variable', 'VariableKind',
    'CoercionError', 'DefinitionError', 'DivisionByZeroError', 'EvaluationError',
    'FormulaEngineError', 'FormulaSyntaxError', 'ResolutionError',
    'ValidationReport', 'validate_formula', 'validate_variable',
]
