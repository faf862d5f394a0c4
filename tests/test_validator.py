"""
Design-time validation of variables and formulas.
"""
import sys
import os
import pytest

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from formula_pricing.engine import DefinitionError, Formula, Variable, validate_formula, validate_variable
from formula_pricing.engine.errors import DefinitionErrorCode


def make(kind='number', id='v', name='V', **kwargs):
    data = {'id': id, 'name': name, 'type': kind}
    data.update(kwargs)
    return Variable.from_dict(data)


def codes(errors):
    return {e.code for e in errors}


def formula(expression, *variables, **kwargs):
    return Formula(id='f', expression=expression, variables=tuple(variables), **kwargs)


def test_valid_variable_has_no_errors():
    assert validate_variable(make()) == []


def test_empty_name():
    assert codes(validate_variable(make(name='  '))) == {DefinitionErrorCode.EMPTY_NAME}


def test_empty_id():
    assert DefinitionErrorCode.EMPTY_ID in codes(validate_variable(make(id='')))


def test_duplicate_variable_id():
    a, b = make(id='sqft'), make(id='sqft', name='Other')
    assert codes(validate_variable(a, [a, b])) == {DefinitionErrorCode.DUPLICATE_VARIABLE_ID}


def test_prefix_collision():
    a, b = make(id='sqft'), make(id='sqft2')
    assert codes(validate_variable(a, [a, b])) == {DefinitionErrorCode.PREFIX_COLLISION_ID}
    assert codes(validate_variable(b, [a, b])) == {DefinitionErrorCode.PREFIX_COLLISION_ID}


def test_shared_suffix_is_allowed():
    a, b = make(id='height'), make(id='property_height')
    assert validate_variable(a, [a, b]) == []


@pytest.mark.parametrize("kind", ['slider', 'stepper'])
def test_min_above_max(kind):
    assert codes(validate_variable(make(kind, min=10, max=1))) == {DefinitionErrorCode.INVALID_RANGE}


def test_min_above_max_ignored_for_number():
    assert validate_variable(make('number', min=10, max=1)) == []


def test_slider_step_must_be_positive():
    assert codes(validate_variable(make('slider', min=0, max=10, step=0))) == {DefinitionErrorCode.INVALID_RANGE}
    assert validate_variable(make('stepper', min=0, max=10, step=0)) == []


@pytest.mark.parametrize("kind", ['dropdown', 'multiple-choice', 'select'])
def test_option_kinds_need_options(kind):
    assert codes(validate_variable(make(kind))) == {DefinitionErrorCode.EMPTY_OPTIONS}


def test_duplicate_option_value():
    variable = make('dropdown', options=[
        {'id': 'a', 'label': 'A', 'value': 'same'},
        {'id': 'b', 'label': 'B', 'value': 'same'},
    ])
    assert codes(validate_variable(variable)) == {DefinitionErrorCode.DUPLICATE_OPTION_ID}


def test_duplicate_option_id():
    variable = make('dropdown', options=[
        {'id': 'a', 'label': 'A', 'value': 'x'},
        {'id': 'a', 'label': 'B', 'value': 'y'},
    ])
    assert codes(validate_variable(variable)) == {DefinitionErrorCode.DUPLICATE_OPTION_ID}


def test_unit_length():
    assert codes(validate_variable(make(unit='x' * 16))) == {DefinitionErrorCode.UNIT_TOO_LONG}
    assert validate_variable(make(unit='x' * 15)) == []


def test_definition_error_message():
    error = validate_variable(make(name=''))[0]
    assert isinstance(error, DefinitionError)
    assert str(error) == "[empty_name] v: Name is required"


class TestFormulaValidation:

    def test_valid_formula(self):
        report = validate_formula(formula("base * rate", make(id='base'), make(id='rate')))
        assert report.valid, report.error_messages
        assert report.warnings == []

    def test_forward_dependency(self):
        first = make(id='first', conditionalLogic={
            'enabled': True,
            'conditions': [{'dependsOnVariableId': 'second', 'kind': 'equals', 'expectedValue': 1}],
        })
        report = validate_formula(formula("first + second", first, make(id='second')))
        assert not report.valid
        assert codes(report.errors) == {DefinitionErrorCode.FORWARD_DEPENDENCY}

    def test_self_dependency(self):
        me = make(id='me', conditionalLogic={
            'enabled': True,
            'conditions': [{'dependsOnVariableId': 'me', 'kind': 'is_empty'}],
        })
        assert codes(validate_formula(formula("me", me)).errors) == {DefinitionErrorCode.FORWARD_DEPENDENCY}

    def test_unknown_dependency(self):
        orphan = make(id='orphan', conditionalLogic={
            'enabled': True,
            'conditions': [{'dependsOnVariableId': 'deleted', 'kind': 'equals', 'expectedValue': 1}],
        })
        assert codes(validate_formula(formula("orphan", orphan)).errors) == {DefinitionErrorCode.UNKNOWN_DEPENDENCY}

    def test_disabled_logic_is_not_checked(self):
        orphan = make(id='orphan', conditionalLogic={
            'enabled': False,
            'conditions': [{'dependsOnVariableId': 'deleted', 'kind': 'equals', 'expectedValue': 1}],
        })
        assert validate_formula(formula("orphan", orphan)).valid

    def test_default_value_shape(self):
        flag = make('checkbox', id='flag')
        size = make(id='size', conditionalLogic={
            'enabled': True,
            'conditions': [{'dependsOnVariableId': 'flag', 'kind': 'equals', 'expectedValue': True}],
            'defaultValue': "lots",
        })
        report = validate_formula(formula("flag + size", flag, size))
        assert codes(report.errors) == {DefinitionErrorCode.INVALID_DEFAULT_VALUE}

    def test_checkbox_default_must_be_boolean(self):
        flag = make('checkbox', id='flag')
        other = make('checkbox', id='other', conditionalLogic={
            'enabled': True,
            'conditions': [{'dependsOnVariableId': 'flag', 'kind': 'equals', 'expectedValue': True}],
            'defaultValue': 0,
        })
        report = validate_formula(formula("flag + other", flag, other))
        assert codes(report.errors) == {DefinitionErrorCode.INVALID_DEFAULT_VALUE}

    def test_unusual_condition_kind_warns(self):
        flag = make('checkbox', id='flag')
        size = make(id='size', conditionalLogic={
            'enabled': True,
            'conditions': [{'dependsOnVariableId': 'flag', 'kind': 'greater_than', 'expectedValue': 1}],
            'defaultValue': 0,
        })
        report = validate_formula(formula("flag + size", flag, size))
        assert report.valid
        assert any("not a usual condition" in w for w in report.warnings)

    def test_price_range(self):
        report = validate_formula(formula("1", min_price=500, max_price=100))
        assert codes(report.errors) == {DefinitionErrorCode.INVALID_PRICE_RANGE}

    def test_unknown_token_warns(self):
        report = validate_formula(formula("base * typo", make(id='base')))
        assert report.valid
        assert report.warnings == ["Unknown token 'typo' will evaluate as 0"]

    def test_bare_multi_select_id_warns(self):
        addons = make('multiple-choice', id='addons', allowMultipleSelection=True,
                      options=[{'id': 'a', 'label': 'A'}])
        report = validate_formula(formula("addons * 2", addons))
        assert len(report.warnings) == 1
        assert "addons_<option>" in report.warnings[0]

    def test_broken_expression_warns(self):
        report = validate_formula(formula("(base * 2", make(id='base')))
        assert any(w.startswith("Expression may not evaluate") for w in report.warnings)

    def test_empty_expression_warns(self):
        assert validate_formula(formula("  ")).warnings == ["Formula expression is empty"]

    def test_raise_for_errors(self):
        report = validate_formula(formula("1", make(id='a'), make(id='a', name='Dup')))
        with pytest.raises(DefinitionError):
            report.raise_for_errors()
        assert len(report.errors) == 1, "Identical errors are reported once"
