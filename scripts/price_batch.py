#!/usr/bin/env python
"""
Price a CSV of customer inputs against one stored formula.

Columns named after variable ids are used as inputs; multi-select columns
hold option values joined by "|".

Usage:
    python scripts/price_batch.py <formula_id> <inputs.csv> [output.csv]
"""
import logging
import sys
from pathlib import Path

import pandas as pd

# Add src to path
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from formula_pricing.config.settings import get_settings
from formula_pricing.engine import PricingEngine
from formula_pricing.services.batch_pricing import price_frame
from formula_pricing.services.formula_service import FormulaService


def main():
    if len(sys.argv) < 3:
        print(__doc__)
        sys.exit(1)

    settings = get_settings()
    logging.basicConfig(level=settings.log_level, format='%(asctime)s - [%(levelname)s] - %(message)s')

    formula_id = sys.argv[1]
    input_path = Path(sys.argv[2])
    output_path = Path(sys.argv[3]) if len(sys.argv) > 3 else input_path.with_name(f"{input_path.stem}_priced.csv")

    formula = FormulaService(settings.formulas_dir).get_formula(formula_id)
    if formula is None:
        print(f"❌ Formula '{formula_id}' not found in {settings.formulas_dir}")
        sys.exit(1)

    # Raw strings; coercion happens in the engine
    frame = pd.read_csv(input_path, dtype=str, keep_default_na=False, na_values=[''])
    print(f"Pricing {len(frame)} rows with {formula.id}...")

    priced = price_frame(formula, frame, PricingEngine(settings))
    priced.to_csv(output_path, index=False)

    failed = int(priced['error'].notna().sum())
    print(f"✅ Wrote {output_path}")
    print(f"  Priced: {len(priced) - failed}")
    if failed:
        print(f"  ❌ Failed: {failed}")
    print(f"  Total: {int(priced['price'].sum())}")


if __name__ == "__main__":
    main()
