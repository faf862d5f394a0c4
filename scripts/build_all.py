#!/usr/bin/env python
"""
Check pipeline - validates formula definitions and runs the regression suite.

Usage:
    python scripts/build_all.py
"""
import subprocess
import sys
from pathlib import Path

# Add src to path
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from formula_pricing.config.settings import get_settings
from formula_pricing.definitions.check_formulas import check_formulas


def main():
    settings = get_settings()

    print("=" * 60)
    print("FORMULA PRICING CHECK PIPELINE")
    print("=" * 60)
    print()

    print("[1/2] Checking formula definitions...")
    success, formulas, errors = check_formulas(settings.formulas_dir, verbose=True)

    if not success:
        print("\n❌ CHECK FAILED")
        for error in errors:
            print(f"  ERROR: {error}")
        sys.exit(1)

    print()
    print("[2/2] Running golden tests...")

    test_result = subprocess.run(
        [sys.executable, '-m', 'pytest', 'tests/test_golden_cases.py', '-v', '--tb=short'],
        cwd=settings.project_root
    )

    if test_result.returncode != 0:
        print("\n❌ TESTS FAILED")
        sys.exit(1)

    print()
    print("=" * 60)
    print("✅ CHECK COMPLETE")
    print("=" * 60)
    print()
    print("Summary:")
    print(f"  Formulas: {len(formulas)}")
    print(f"  Variables: {sum(len(f.variables) for f in formulas)}")
    for formula in formulas:
        print(f"  {formula.id}: {', '.join(formula.tokens())}")


if __name__ == "__main__":
    main()
