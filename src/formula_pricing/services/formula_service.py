"""
Formula Service - read-only catalog of formula definitions.

Loads JSON definitions from the formulas directory and exposes the
design-time helpers (validation report, insertable tokens, id suggestions).
"""
import json
import logging
from collections import Counter
from pathlib import Path
from typing import Optional

from ..engine.identifiers import DEFAULT_MAX_LENGTH, generate_option_ids, generate_variable_id
from ..engine.models import Formula
from ..engine.pricing_engine import formula_tokens
from ..engine.validator import DEFAULT_UNIT_MAX_LENGTH, ValidationReport, validate_formula

logger = logging.getLogger(__name__)


def load_formula(path: Path) -> Formula:
    """Load one formula definition from a JSON file."""
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    if not data.get('id'):
        data['id'] = path.stem
    return Formula.from_dict(data)


class FormulaService:
    """Service for browsing and checking formula definitions."""

    def __init__(self, formulas_dir: Path, slug_max_length: int = DEFAULT_MAX_LENGTH,
                 unit_max_length: int = DEFAULT_UNIT_MAX_LENGTH):
        self.formulas_dir = formulas_dir
        self.slug_max_length = slug_max_length
        self.unit_max_length = unit_max_length
        self.load_errors: dict[str, str] = {}

    def list_formulas(self) -> list[Formula]:
        """Load every *.json definition; unreadable files are skipped and recorded."""
        formulas = []
        self.load_errors = {}
        if not self.formulas_dir.exists():
            return formulas

        for path in sorted(self.formulas_dir.glob('*.json')):
            try:
                formulas.append(load_formula(path))
            except (OSError, ValueError, KeyError, TypeError) as e:
                logger.error("Could not load formula %s: %s", path.name, e)
                self.load_errors[path.name] = str(e)
        return formulas

    def get_formula(self, formula_id: str) -> Optional[Formula]:
        """Get a single formula by id."""
        for formula in self.list_formulas():
            if formula.id == formula_id:
                return formula
        return None

    def validate(self, formula: Formula) -> ValidationReport:
        return validate_formula(formula, unit_max_length=self.unit_max_length)

    def tokens(self, formula_id: str) -> list[str]:
        """Insertable tokens for a stored formula."""
        formula = self.get_formula(formula_id)
        if formula is None:
            raise ValueError(f"Formula '{formula_id}' not found")
        return formula_tokens(formula)

    def suggest_variable_id(self, name: str, formula: Optional[Formula] = None) -> str:
        """Suggest an id for a new variable, unique within the formula."""
        existing = [v.id for v in formula.variables] if formula else []
        return generate_variable_id(name, len(existing), existing, self.slug_max_length)

    def suggest_option_ids(self, labels: list[str]) -> list[str]:
        """Suggest unique option ids for a list of option labels."""
        return generate_option_ids(labels, self.slug_max_length)

    def get_stats(self) -> dict:
        """Get statistics about the stored formulas."""
        formulas = self.list_formulas()
        by_kind = Counter(v.kind.value for f in formulas for v in f.variables)
        invalid = [f.id for f in formulas if not self.validate(f).valid]

        return {
            'total': len(formulas),
            'variables': sum(len(f.variables) for f in formulas),
            'by_kind': dict(by_kind),
            'conditional': sum(1 for f in formulas for v in f.variables if v.has_conditions),
            'invalid': invalid,
            'load_errors': dict(self.load_errors),
        }
