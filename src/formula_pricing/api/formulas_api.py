"""
Formulas API - FastAPI router for stored formula definitions.
"""
from typing import Any, Literal

from fastapi import APIRouter, HTTPException
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel

from ..engine import EvaluationError, Request
from ..engine.identifiers import generate_variable_id
from .state import engine, formula_service

router = APIRouter(prefix="/api/formulas", tags=["formulas"])


# Pydantic models for API
class CalcRequest(BaseModel):
    """Request model for pricing a stored formula."""
    inputs: dict[str, Any] = {}


class FormulaSummary(BaseModel):
    """Response model for a formula listing entry."""
    id: str
    name: str
    expression: str
    variables: int
    tokens: list[str]
    valid: bool


class SlugifyRequest(BaseModel):
    """Request model for id suggestions."""
    labels: list[str]
    kind: Literal["option", "variable"] = "option"
    existing: list[str] = []


class SlugifyResponse(BaseModel):
    ids: list[str]


def _get_or_404(formula_id: str):
    formula = formula_service.get_formula(formula_id)
    if formula is None:
        raise HTTPException(status_code=404, detail=f"Formula '{formula_id}' not found")
    return formula


# Endpoints

@router.get("", response_model=list[FormulaSummary])
async def list_formulas():
    """List all stored formulas."""
    return [
        FormulaSummary(
            id=f.id,
            name=f.name,
            expression=f.expression,
            variables=len(f.variables),
            tokens=f.tokens(),
            valid=formula_service.validate(f).valid,
        )
        for f in formula_service.list_formulas()
    ]


@router.get("/stats")
async def get_stats():
    """Get formula statistics."""
    return formula_service.get_stats()


@router.post("/identifiers", response_model=SlugifyResponse)
async def suggest_identifiers(req: SlugifyRequest):
    """Suggest unique ids for option or variable labels."""
    if req.kind == "option":
        return SlugifyResponse(ids=formula_service.suggest_option_ids(req.labels))

    ids = list(req.existing)
    suggested = []
    for label in req.labels:
        new_id = generate_variable_id(label, len(ids), ids, formula_service.slug_max_length)
        ids.append(new_id)
        suggested.append(new_id)
    return SlugifyResponse(ids=suggested)


@router.get("/{formula_id}")
async def get_formula(formula_id: str):
    """Get a single formula definition."""
    return jsonable_encoder(_get_or_404(formula_id))


@router.get("/{formula_id}/tokens", response_model=list[str])
async def get_tokens(formula_id: str):
    """Tokens a designer can insert into the formula expression."""
    return _get_or_404(formula_id).tokens()


@router.get("/{formula_id}/validate")
async def validate_formula(formula_id: str):
    """Validation report for a stored formula."""
    report = formula_service.validate(_get_or_404(formula_id))
    return {
        "valid": report.valid,
        "errors": report.error_messages,
        "warnings": report.warnings,
    }


@router.post("/{formula_id}/calculate")
async def calculate(formula_id: str, req: CalcRequest):
    """Price a stored formula for one input snapshot."""
    formula = _get_or_404(formula_id)
    try:
        result = engine.calculate(Request(formula=formula, inputs=req.inputs))
    except EvaluationError as e:
        raise HTTPException(status_code=422, detail={"message": "Unable to calculate price", "error": str(e)})
    return jsonable_encoder(result)
