"""
Print the full resolution trace for one stored formula.

Usage:
    python scripts/debug_formula.py house_painting '{"house_sqft": 2000, "property_height": "two"}'
"""
import json
import logging
import sys
from pathlib import Path

# Add src to path
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from formula_pricing.config.settings import get_settings
from formula_pricing.engine import EvaluationError, PricingEngine, Request
from formula_pricing.services.formula_service import FormulaService


def debug():
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)

    settings = get_settings()
    logging.basicConfig(level=logging.DEBUG, format='%(levelname)s %(name)s: %(message)s')

    service = FormulaService(settings.formulas_dir)
    formula = service.get_formula(sys.argv[1])
    if formula is None:
        print(f"❌ Formula '{sys.argv[1]}' not found in {settings.formulas_dir}")
        sys.exit(1)

    inputs = json.loads(sys.argv[2]) if len(sys.argv) > 2 else {}

    print("Insertable tokens:")
    print(f"  {', '.join(formula.tokens())}")

    report = service.validate(formula)
    print(f"\nValidation: {'valid' if report.valid else 'INVALID'}")
    for message in report.error_messages:
        print(f"  ❌ {message}")
    for warning in report.warnings:
        print(f"  ⚠️  {warning}")

    print(f"\n--- Pricing {formula.id} with {inputs} ---")
    engine = PricingEngine(settings)
    try:
        result = engine.calculate(Request(formula=formula, inputs=inputs))
    except EvaluationError as e:
        print(f"❌ Unable to calculate price: {e}")
        sys.exit(1)

    print(result.get_trace_text())
    print("\nWarnings:")
    for warning in result.warnings or ["(none)"]:
        print(f"  {warning}")
    print(f"\nFinal price: {result.price}")

if __name__ == "__main__":
    debug()
