"""
Streamlit UI for the Formula Pricing Engine.

Features:
- Live price preview for a stored formula
- One input widget per variable kind, hidden variables greyed out
- Resolution trace, token map and warnings
- Catalog and validation overview of every stored definition
"""
import streamlit as st
import pandas as pd
import sys
from pathlib import Path

# Add src to path for imports
src_path = Path(__file__).parent.parent.parent
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from formula_pricing.engine import EvaluationError, PricingEngine, Request, VariableKind
from formula_pricing.config.settings import get_settings
from formula_pricing.services.formula_service import FormulaService


st.set_page_config(
    page_title="Formula Pricing Preview",
    layout="wide",
    initial_sidebar_state="expanded"
)


@st.cache_resource
def get_engine():
    """Get cached engine instance."""
    return PricingEngine()


@st.cache_resource
def get_service():
    """Get cached formula service."""
    settings = get_settings()
    return FormulaService(settings.formulas_dir, settings.slug_max_length, settings.unit_max_length)


try:
    engine = get_engine()
    service = get_service()
    formulas = service.list_formulas()
except (OSError, ValueError) as e:
    st.error(f"System Error: {e}")
    st.stop()


def _number(value, default=0.0):
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def input_widget(variable, key_prefix: str, disabled: bool):
    """Render the input for one variable and return its raw value."""
    key = f"{key_prefix}_{variable.id}"
    label = f"{variable.name} ({variable.unit})" if variable.unit else variable.name

    if variable.kind == VariableKind.CHECKBOX:
        return st.checkbox(label, value=bool(variable.default_value), key=key, disabled=disabled)

    if variable.kind == VariableKind.SLIDER:
        low = _number(variable.min, 0.0)
        high = _number(variable.max, 100.0)
        start = min(max(_number(variable.default_value, low), low), high)
        return st.slider(label, min_value=low, max_value=high, value=start,
                         step=_number(variable.step, 1.0) or 1.0, key=key, disabled=disabled)

    if variable.kind in (VariableKind.NUMBER, VariableKind.STEPPER):
        kwargs = {}
        if variable.kind == VariableKind.STEPPER:
            kwargs = {'min_value': variable.min, 'max_value': variable.max, 'step': variable.step or 1.0}
            kwargs = {k: float(v) for k, v in kwargs.items() if v is not None}
        start = _number(variable.default_value, kwargs.get('min_value', 0.0))
        start = min(max(start, kwargs.get('min_value', start)), kwargs.get('max_value', start))
        return st.number_input(label, value=start, key=key, disabled=disabled, **kwargs)

    if variable.kind == VariableKind.TEXT:
        return st.text_input(label, value=str(variable.default_value or ''), key=key, disabled=disabled)

    values = [str(o.value) for o in variable.options]
    labels = {str(o.value): o.label or str(o.value) for o in variable.options}

    if variable.is_multi_select:
        return st.multiselect(label, values, format_func=labels.get, key=key, disabled=disabled)

    # Dropdown, single MultipleChoice and SelectLegacy
    choice = st.selectbox(label, [""] + values, format_func=lambda v: labels.get(v, "— select —"),
                          key=key, disabled=disabled)
    return choice or None


# ============================================================================
# HEADER & SIDEBAR
# ============================================================================
st.title("🧮 Formula Pricing Preview")

if service.load_errors:
    for filename, message in service.load_errors.items():
        st.warning(f"Could not load {filename}: {message}")

if not formulas:
    st.info(f"No formula definitions found in {service.formulas_dir}")
    st.stop()

with st.sidebar:
    st.header("Formula")
    formula_id = st.selectbox(
        "Service",
        [f.id for f in formulas],
        format_func=lambda fid: next((f.name or f.id) for f in formulas if f.id == fid)
    )
    formula = next(f for f in formulas if f.id == formula_id)

    st.code(formula.expression, language=None)
    st.caption(f"Min: {formula.min_price if formula.min_price is not None else '—'} | "
               f"Max: {formula.max_price if formula.max_price is not None else '—'}")

    report = service.validate(formula)
    if report.valid:
        st.success("Definition valid")
    else:
        for message in report.error_messages:
            st.error(message)
    for warning in report.warnings:
        st.warning(warning)

tab1, tab2 = st.tabs(["💲 Preview", "📚 Catalog"])


# ============================================================================
# TAB 1: LIVE PREVIEW
# ============================================================================
with tab1:
    col1, col2 = st.columns([3, 2])

    with col1:
        st.subheader("Customer Inputs")
        inputs = {}
        visibility = st.session_state.get(f"visibility_{formula.id}", {})
        for variable in formula.variables:
            hidden = visibility.get(variable.id) is False
            inputs[variable.id] = input_widget(variable, formula.id, disabled=hidden)
            if hidden:
                st.caption(f"Hidden by conditional logic, using default "
                           f"{variable.conditional_logic.default_value!r}")

    with col2:
        st.subheader("Price")

        with st.container(border=True):
            try:
                result = engine.calculate(Request(formula=formula, inputs=inputs))
            except EvaluationError as e:
                st.error(f"Unable to calculate price: {e}")
                st.stop()

            # Re-render once when visibility changes so hidden inputs grey out
            if st.session_state.get(f"visibility_{formula.id}") != result.visibility:
                st.session_state[f"visibility_{formula.id}"] = result.visibility
                st.rerun()

            m1, m2 = st.columns(2)
            m1.metric("Price", f"${result.price:,}")
            m2.metric("Unrounded", f"{result.unrounded:,.2f}")

            if result.clamped:
                st.caption(f"**Clamped to {result.clamped} price**")

            for warning in result.warnings:
                st.warning(warning)

            st.divider()
            st.caption("Substituted expression")
            st.code(result.substituted_expression, language=None)

    with st.expander("📊 View Token Map"):
        token_df = pd.DataFrame([
            {'Token': token, 'Contribution': str(value)}
            for token, value in result.token_map.items()
        ])
        st.dataframe(token_df, use_container_width=True, hide_index=True)

    with st.expander("🔍 View Resolution Trace"):
        st.text(result.get_trace_text())


# ============================================================================
# TAB 2: CATALOG
# ============================================================================
with tab2:
    st.subheader("📚 Stored Formulas")

    catalog_df = pd.DataFrame([
        {
            'ID': f.id,
            'Name': f.name,
            'Variables': len(f.variables),
            'Tokens': ", ".join(f.tokens()),
            'Valid': service.validate(f).valid,
        }
        for f in formulas
    ])
    st.dataframe(catalog_df, use_container_width=True, hide_index=True)

    stats = service.get_stats()
    c1, c2, c3 = st.columns(3)
    c1.metric("Formulas", stats['total'])
    c2.metric("Variables", stats['variables'])
    c3.metric("Conditional", stats['conditional'])
    st.caption(f"Source: {service.formulas_dir}")
