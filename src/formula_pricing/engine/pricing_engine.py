"""
Pricing Engine - Core price computation with traceability.

Composes the resolver, coercer and expression evaluator into one pure,
synchronous computation:
- Structured PriceResult output
- Execution trace for every resolution step
- Warning collection for fail-closed conditions, coercion fallbacks and unknown tokens
- Multi-formula quotes sharing answers through connection keys
"""
import logging
from typing import Any, Optional

from ..config.settings import get_settings, Settings
from .coercer import build_token_map
from .errors import EvaluationError
from .expression import (
    clamp_price,
    evaluate_expression,
    format_contribution,
    round_half_away_from_zero,
    substitute_tokens,
)
from .models import Formula, PriceResult, Quote, QuoteRequest, Request
from .resolver import resolve_with_trace
from .validator import ValidationReport, validate_formula

logger = logging.getLogger(__name__)


def formula_tokens(formula: Formula) -> list[str]:
    """
    Tokens a designer can insert into the formula expression.

    The bare id for every variable, except multi-select MultipleChoice
    variables, which expose one "{variableId}_{optionId}" token per option.
    """
    return formula.tokens()


class PricingEngine:
    """
    Core pricing engine that resolves a price using Inputs → Effective Values → Tokens → Price.

    Resolution order:
    1. Walk variables in order; hidden variables take their conditional default
    2. Coerce each effective value into its formula tokens
    3. Substitute tokens into the expression (longest first, whole words only)
    4. Evaluate the arithmetic and round half away from zero
    5. Clamp to the formula's min/max price
    """

    def __init__(self, settings: Optional[Settings] = None):
        """Initialize engine with settings."""
        self.settings = settings or get_settings()

    def validate(self, formula: Formula) -> ValidationReport:
        """Design-time validation report for a formula."""
        return validate_formula(formula, unit_max_length=self.settings.unit_max_length)

    def tokens(self, formula: Formula) -> list[str]:
        return formula_tokens(formula)

    def calculate_price(self, formula: Formula, inputs: dict[str, Any]) -> int:
        """
        Calculate the price only.

        Args:
            formula: Formula definition
            inputs: Dict of {variable id: raw value}

        Returns:
            Clamped integer price
        """
        return self.calculate(Request(formula=formula, inputs=inputs)).price

    def calculate(self, request: Request) -> PriceResult:
        """
        Calculate a price with full traceability.

        Args:
            request: Request dataclass with formula and raw inputs

        Returns:
            PriceResult dataclass with price, trace and warnings

        Raises:
            EvaluationError: the expression cannot be evaluated
        """
        formula = request.formula
        result = PriceResult(formula_id=formula.id, price=0)
        result.add_trace("Formula", f"Pricing '{formula.name or formula.id}'", formula.expression)

        # Resolve effective values with trace
        effective, visibility, resolve_trace, resolve_issues = resolve_with_trace(
            formula.variables, request.inputs
        )
        result.effective_values = effective
        result.visibility = visibility
        for step, desc, val in resolve_trace:
            result.add_trace(step, desc, val)
        for issue in resolve_issues:
            result.add_warning(str(issue))

        # Coerce into tokens
        coercion_issues = []
        result.token_map = build_token_map(formula.variables, effective, coercion_issues)
        for issue in coercion_issues:
            result.add_warning(str(issue))
        result.add_trace(
            "Token Map",
            f"Coerced {len(result.token_map)} tokens",
            ", ".join(f"{t}={format_contribution(v)}" for t, v in result.token_map.items()),
        )

        # Substitute
        substituted, unknown = substitute_tokens(formula.expression, result.token_map)
        result.substituted_expression = substituted
        for name in unknown:
            logger.warning("Formula %s references unknown token '%s'", formula.id, name)
            result.add_warning(f"Unknown token '{name}' evaluated as 0")
        result.add_trace("Substitution", "Expression after substitution", substituted)

        # Evaluate
        try:
            value = evaluate_expression(substituted, self.settings.max_nesting_depth)
        except EvaluationError as e:
            logger.warning("Unable to calculate price for formula %s: %s", formula.id, e)
            raise

        result.unrounded = float(value)
        result.rounded = round_half_away_from_zero(value)
        result.add_trace("Evaluation", "Raw result", format_contribution(value))
        result.add_trace("Rounding", "Rounded half away from zero", str(result.rounded))

        # Clamp
        result.price, result.clamped = clamp_price(result.rounded, formula.min_price, formula.max_price)
        if result.clamped == "min":
            result.add_trace("Clamp", f"Below minimum price {formula.min_price}", str(result.price))
        elif result.clamped == "max":
            result.add_trace("Clamp", f"Above maximum price {formula.max_price}", str(result.price))

        result.add_trace("Price", "Final price", str(result.price))
        logger.debug("Formula %s priced at %s", formula.id, result.price)
        return result

    def quote(self, request: QuoteRequest) -> Quote:
        """
        Price several formulas together.

        Variables sharing a connection key share one answer: an explicit
        shared input wins, otherwise the first formula that answers the
        connected question supplies it to the others. A formula that cannot
        be evaluated is skipped and reported as a quote warning.
        """
        shared = dict(request.shared_inputs)
        for formula in request.formulas:
            inputs = request.inputs.get(formula.id, {})
            for variable in formula.variables:
                if variable.connection_key and variable.id in inputs:
                    shared.setdefault(variable.connection_key, inputs[variable.id])

        quote = Quote(total=0)
        for formula in request.formulas:
            inputs = dict(request.inputs.get(formula.id, {}))
            connected = []
            for variable in formula.variables:
                key = variable.connection_key
                if key and variable.id not in inputs and key in shared:
                    inputs[variable.id] = shared[key]
                    connected.append(variable.id)

            try:
                line = self.calculate(Request(formula=formula, inputs=inputs))
            except EvaluationError as e:
                quote.add_warning(f"{formula.id}: unable to calculate price ({e})")
                continue

            if connected:
                line.add_trace("Connected", "Answers shared from other services", ", ".join(connected))

            quote.lines.append(line)
            quote.total += line.price

            # Bubble up line warnings
            for warning in line.warnings:
                quote.add_warning(f"{formula.id}: {warning}")

        return quote
