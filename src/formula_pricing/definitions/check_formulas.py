"""
Definition Checker - Validates every formula definition in the formulas directory.

Reads *.json definitions, runs design-time validation and reports errors
and warnings per file.
"""
import sys
from pathlib import Path

from ..engine.models import Formula
from ..services.formula_service import FormulaService


def check_formulas(
    formulas_dir: Path,
    verbose: bool = True
) -> tuple[bool, list[Formula], list[str]]:
    """
    Validate all formula definitions.

    Returns (success, formulas, errors).
    """
    all_errors = []

    if not formulas_dir.exists():
        all_errors.append(f"Formulas directory not found: {formulas_dir}")
        return False, [], all_errors

    service = FormulaService(formulas_dir)
    formulas = service.list_formulas()

    for filename, message in service.load_errors.items():
        all_errors.append(f"{filename}: {message}")

    seen_ids = set()
    for formula in formulas:
        if formula.id in seen_ids:
            all_errors.append(f"{formula.id}: formula id is used by more than one file")
        seen_ids.add(formula.id)

        report = service.validate(formula)
        all_errors.extend(f"{formula.id}: {message}" for message in report.error_messages)

        if verbose:
            status = "✅" if report.valid else "❌"
            print(f"{status} {formula.id} ({len(formula.variables)} variables)")
            for warning in report.warnings:
                print(f"   ⚠️  {warning}")

    if all_errors:
        if verbose:
            print("Validation errors:")
            for err in all_errors:
                print(f"  ❌ {err}")
        return False, formulas, all_errors

    if verbose:
        print(f"✅ Checked {len(formulas)} formulas")
        print(f"   Source: {formulas_dir}")

    return True, formulas, []


def main():
    """CLI entry point."""
    from ..config.settings import get_settings

    settings = get_settings()

    print("Checking formula definitions...")
    success, formulas, errors = check_formulas(settings.formulas_dir)

    if not success:
        print(f"\n❌ Check failed with {len(errors)} errors")
        sys.exit(1)


if __name__ == "__main__":
    main()
