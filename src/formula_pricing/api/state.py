"""Shared API state: one stateless engine and the formula catalog."""
from ..config.settings import get_settings
from ..engine import PricingEngine
from ..services.formula_service import FormulaService

settings = get_settings()

engine = PricingEngine(settings)

formula_service = FormulaService(
    formulas_dir=settings.formulas_dir,
    slug_max_length=settings.slug_max_length,
    unit_max_length=settings.unit_max_length,
)
