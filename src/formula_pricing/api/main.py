import logging
from typing import Any, Optional, Union

from fastapi import FastAPI, HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from formula_pricing import __version__
from formula_pricing.engine import EvaluationError, Formula, QuoteRequest, Request
from formula_pricing.api.formulas_api import router as formulas_router
from formula_pricing.api.state import engine, formula_service, settings

logging.basicConfig(level=settings.log_level, format='%(asctime)s - [%(levelname)s] - %(name)s - %(message)s')

app = FastAPI(
    title="Formula Pricing API",
    description="Computes prices from designer-configured variables and formulas",
    version=__version__
)

# Enable CORS for embedded calculators
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Stored formula endpoints
app.include_router(formulas_router)


# Inline definition models (stored JSON shape, camelCase keys)
class OptionModel(BaseModel):
    id: Optional[str] = None
    label: str = ""
    value: Optional[Union[str, int, float]] = None
    numericValue: Optional[float] = None
    defaultUnselectedValue: Optional[float] = None
    multiplier: Optional[float] = None
    image: Optional[str] = None


class ConditionModel(BaseModel):
    dependsOnVariableId: Optional[str] = None
    kind: Optional[str] = None
    expectedValue: Any = None
    expectedValues: Optional[list] = None


class ConditionalLogicModel(BaseModel):
    enabled: bool = False
    operator: str = "AND"
    conditions: Optional[list[ConditionModel]] = None
    defaultValue: Any = None
    # legacy single-condition shape
    dependsOnVariable: Optional[str] = None
    condition: Optional[str] = None
    expectedValue: Any = None
    expectedValues: Optional[list] = None


class VariableModel(BaseModel):
    id: str
    name: str
    type: str
    unit: Optional[str] = None
    options: Optional[list[OptionModel]] = None
    min: Optional[float] = None
    max: Optional[float] = None
    step: Optional[float] = None
    checkedValue: Optional[Union[str, int, float]] = None
    uncheckedValue: Optional[Union[str, int, float]] = None
    allowMultipleSelection: bool = False
    conditionalLogic: Optional[ConditionalLogicModel] = None
    defaultValue: Any = None
    connectionKey: Optional[str] = None


class FormulaModel(BaseModel):
    id: str = "inline"
    name: str = ""
    formula: str
    variables: list[VariableModel] = []
    minPrice: Optional[int] = None
    maxPrice: Optional[int] = None

    def to_formula(self) -> Formula:
        try:
            return Formula.from_dict(self.model_dump(exclude_none=True))
        except ValueError as e:
            raise HTTPException(status_code=422, detail={"message": "Invalid formula definition", "error": str(e)})


class InlineCalcRequest(BaseModel):
    formula: FormulaModel
    inputs: dict[str, Any] = {}


class ValidationResponse(BaseModel):
    """Response model for validation."""
    valid: bool
    errors: list[str]
    warnings: list[str]
    tokens: list[str]


class QuoteRequestModel(BaseModel):
    formula_ids: list[str]
    inputs: dict[str, dict[str, Any]] = {}
    shared_inputs: dict[str, Any] = {}


@app.get("/")
async def root():
    return {"status": "online", "message": "Formula Pricing API Active"}


@app.post("/calculate")
async def calculate_price(req: InlineCalcRequest):
    formula = req.formula.to_formula()
    try:
        result = engine.calculate(Request(formula=formula, inputs=req.inputs))
    except EvaluationError as e:
        raise HTTPException(status_code=422, detail={"message": "Unable to calculate price", "error": str(e)})
    return jsonable_encoder(result)


@app.post("/validate", response_model=ValidationResponse)
async def validate_formula(req: FormulaModel):
    """Validate a formula definition without saving."""
    formula = req.to_formula()
    report = engine.validate(formula)
    return ValidationResponse(
        valid=report.valid,
        errors=report.error_messages,
        warnings=report.warnings,
        tokens=engine.tokens(formula),
    )


@app.post("/quote")
async def quote(req: QuoteRequestModel):
    formulas = []
    for formula_id in req.formula_ids:
        formula = formula_service.get_formula(formula_id)
        if formula is None:
            raise HTTPException(status_code=404, detail=f"Formula '{formula_id}' not found")
        formulas.append(formula)

    result = engine.quote(QuoteRequest(
        formulas=formulas,
        inputs=req.inputs,
        shared_inputs=req.shared_inputs,
    ))
    return jsonable_encoder(result)


@app.get("/system/status")
async def get_status():
    formulas = formula_service.list_formulas()
    return {
        "engine_active": True,
        "formulas_dir": str(settings.formulas_dir),
        "formulas_count": len(formulas),
        "load_errors": formula_service.load_errors,
        "max_nesting_depth": settings.max_nesting_depth,
    }
