"""
Batch Pricing - prices every row of a DataFrame of raw inputs.

Columns are matched to variable ids; extra columns are carried through
untouched. Multi-select cells hold option values joined by "|".
"""
import logging
from typing import Any, Optional

import pandas as pd

from ..engine.errors import EvaluationError
from ..engine.models import Formula, Request, Variable
from ..engine.pricing_engine import PricingEngine

logger = logging.getLogger(__name__)

MULTI_SELECT_SEPARATOR = '|'

# Bounds of the nullable Int64 price column
INT64_MIN, INT64_MAX = -2 ** 63, 2 ** 63 - 1


def _cell_value(variable: Variable, value: Any, separator: str) -> Any:
    """Convert a DataFrame cell into a raw input (None = no answer)."""
    if isinstance(value, (list, tuple)):
        return list(value)
    if pd.isna(value):
        return None
    if hasattr(value, 'item'):
        value = value.item()  # numpy scalar
    if variable.is_multi_select:
        return [part.strip() for part in str(value).split(separator) if part.strip()]
    return value


def row_inputs(formula: Formula, row: pd.Series, separator: str = MULTI_SELECT_SEPARATOR) -> dict[str, Any]:
    """Build a raw-input snapshot from one DataFrame row."""
    inputs = {}
    for variable in formula.variables:
        if variable.id not in row.index:
            continue
        value = _cell_value(variable, row[variable.id], separator)
        if value is not None:
            inputs[variable.id] = value
    return inputs


def price_frame(formula: Formula, frame: pd.DataFrame, engine: Optional[PricingEngine] = None,
                separator: str = MULTI_SELECT_SEPARATOR) -> pd.DataFrame:
    """
    Price each row of `frame` with `formula`.

    Returns a copy with "price" (nullable Int64), "error" and "warnings"
    columns. A row that cannot be evaluated gets a null price and its error
    message; the other rows are unaffected.
    """
    engine = engine or PricingEngine()
    prices, errors, warnings = [], [], []

    for _, row in frame.iterrows():
        try:
            result = engine.calculate(Request(formula=formula, inputs=row_inputs(formula, row, separator)))
        except EvaluationError as e:
            prices.append(None)
            errors.append(str(e))
            warnings.append(None)
            continue
        if not INT64_MIN <= result.price <= INT64_MAX:
            prices.append(None)
            errors.append(f"Price {result.price} is out of range")
            warnings.append(None)
            continue
        prices.append(result.price)
        errors.append(None)
        warnings.append("; ".join(result.warnings) or None)

    failed = sum(1 for e in errors if e)
    if failed:
        logger.warning("%d of %d rows could not be priced with %s", failed, len(frame), formula.id)

    priced = frame.copy()
    priced['price'] = pd.array(prices, dtype='Int64')
    priced['error'] = errors
    priced['warnings'] = warnings
    return priced
