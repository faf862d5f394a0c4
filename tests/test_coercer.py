"""
Value coercion: one variable's raw input to its formula contributions.
"""
import sys
import os
import pytest

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from formula_pricing.engine import CoercionError, Variable, VariableKind
from formula_pricing.engine.coercer import build_token_map, coerce, is_checked, parse_number


def make(kind, **kwargs):
    data = {'id': kwargs.pop('id', 'v'), 'name': 'V', 'type': kind}
    data.update(kwargs)
    return Variable.from_dict(data)


@pytest.fixture(scope="module")
def tier():
    return make('dropdown', id='tier', options=[
        {'label': 'A', 'value': 'a', 'numericValue': 1},
        {'label': 'B', 'value': 'b', 'numericValue': 2},
    ])


@pytest.fixture(scope="module")
def addons():
    return make('multiple-choice', id='addons', allowMultipleSelection=True, options=[
        {'id': 'o1', 'label': 'One', 'value': 'o1', 'numericValue': 50},
        {'id': 'o2', 'label': 'Two', 'value': 'o2', 'numericValue': 75, 'defaultUnselectedValue': 0},
        {'id': 'o3', 'label': 'Three', 'value': 'o3', 'numericValue': 1.2, 'defaultUnselectedValue': 1},
    ])


def test_every_kind_has_a_coercion():
    for kind in VariableKind:
        variable = Variable(id='v', name='V', kind=kind)
        assert isinstance(coerce(variable, None), dict), f"{kind} returned no token map"


@pytest.mark.parametrize("raw,expected", [
    (10, 10), ("2.5", 2.5), (" 7 ", 7.0), ("", 0), (None, 0), (True, 1),
])
def test_number_parses(raw, expected):
    assert coerce(make('number'), raw) == {'v': expected}


def test_number_unparseable_is_zero_and_reported():
    issues = []
    assert coerce(make('number'), "abc", issues) == {'v': 0}
    assert len(issues) == 1
    assert isinstance(issues[0], CoercionError)
    assert issues[0].variable_id == 'v'


def test_number_rejects_non_finite():
    assert parse_number("nan") is None
    assert parse_number(float('inf')) is None
    assert coerce(make('number'), "inf") == {'v': 0}


@pytest.mark.parametrize("raw", ["1_000", "1,000", "0x10", "12abc", "infinity", "1e5e2"])
def test_number_requires_plain_decimal_text(raw):
    issues = []
    assert coerce(make('number'), raw, issues) == {'v': 0}
    assert len(issues) == 1


@pytest.mark.parametrize("raw,expected", [("-3", -3.0), ("+.5", 0.5), ("4.", 4.0), ("1e20", 1e20), ("2E-2", 0.02)])
def test_number_accepts_signs_and_exponents(raw, expected):
    assert parse_number(raw) == expected


def test_slider_and_stepper_pass_through():
    assert coerce(make('slider', min=0, max=1000), 250) == {'v': 250}
    assert coerce(make('stepper', min=1, max=4), "3") == {'v': 3.0}


def test_text_contributes_zero():
    assert coerce(make('text'), "please call first") == {'v': 0}


@pytest.mark.parametrize("raw", [True, "true", "TRUE", "1", "yes", "on", 1])
def test_checkbox_checked(raw):
    variable = make('checkbox', checkedValue="500", uncheckedValue="0")
    assert coerce(variable, raw) == {'v': "500"}


@pytest.mark.parametrize("raw", [False, "false", "0", "", None, 0, "no"])
def test_checkbox_unchecked(raw):
    variable = make('checkbox', checkedValue="500", uncheckedValue="0")
    assert coerce(variable, raw) == {'v': "0"}


def test_checkbox_defaults_to_one_and_zero():
    variable = make('checkbox')
    assert coerce(variable, True) == {'v': "1"}
    assert coerce(variable, False) == {'v': "0"}


def test_dropdown_matches_value_then_id(tier):
    assert coerce(tier, "b") == {'tier': 2}
    assert coerce(tier, None) == {'tier': 0}


def test_dropdown_unknown_option_is_zero(tier):
    issues = []
    assert coerce(tier, "z", issues) == {'tier': 0}
    assert issues and issues[0].reason == "no matching option"


def test_select_legacy_prefers_multiplier():
    variable = make('select', options=[
        {'label': 'Old', 'value': 'old', 'numericValue': 3, 'multiplier': 1.5},
        {'label': 'Plain', 'value': 'plain', 'numericValue': 4},
        {'label': 'Zero', 'value': 'zero', 'numericValue': 5, 'multiplier': 0},
    ])
    assert coerce(variable, "old") == {'v': 1.5}
    assert coerce(variable, "plain") == {'v': 4}
    assert coerce(variable, "zero") == {'v': 5}


def test_single_select_multiple_choice_uses_bare_token():
    variable = make('multiple-choice', options=[
        {'label': 'X', 'value': 'x', 'numericValue': 9},
    ])
    assert coerce(variable, "x") == {'v': 9}
    assert coerce(variable, []) == {'v': 0}


def test_single_select_multiple_choice_list_uses_first():
    variable = make('multiple-choice', options=[
        {'label': 'X', 'value': 'x', 'numericValue': 9},
        {'label': 'Y', 'value': 'y', 'numericValue': 4},
    ])
    issues = []
    assert coerce(variable, ["y", "x"], issues) == {'v': 4}
    assert len(issues) == 1


def test_multi_select_emits_every_option_token(addons):
    result = coerce(addons, ["o1"])
    assert result == {'addons_o1': 50, 'addons_o2': 0, 'addons_o3': 1}
    assert 'addons' not in result, "Bare token must not be emitted for multi-select"


def test_multi_select_accepts_single_string(addons):
    assert coerce(addons, "o2") == {'addons_o1': 0, 'addons_o2': 75, 'addons_o3': 1}


def test_multi_select_nothing_selected_uses_unselected_defaults(addons):
    assert coerce(addons, None) == {'addons_o1': 0, 'addons_o2': 0, 'addons_o3': 1}


def test_multi_select_reports_unknown_selection(addons):
    issues = []
    coerce(addons, ["o1", "bogus"], issues)
    assert len(issues) == 1
    assert issues[0].raw_value == ["bogus"]


def test_is_checked_on_lists():
    assert is_checked(["x"]) is True
    assert is_checked([]) is False


def test_build_token_map(tier, addons):
    token_map = build_token_map([tier, addons], {'tier': 'a', 'addons': ['o1', 'o3']})
    assert token_map == {'tier': 1, 'addons_o1': 50, 'addons_o2': 0, 'addons_o3': 1.2}
