"""
Expression evaluation: substitution, restricted arithmetic, rounding, clamping.
"""
import sys
import os
from decimal import Decimal
import pytest

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from formula_pricing.engine import DivisionByZeroError, EvaluationError, FormulaSyntaxError
from formula_pricing.engine.expression import (
    Add,
    Literal,
    Mul,
    Neg,
    Paren,
    clamp_price,
    evaluate,
    evaluate_expression,
    format_contribution,
    parse,
    round_half_away_from_zero,
    substitute_tokens,
)


class TestSubstitution:

    def test_longer_token_is_not_contaminated(self):
        text, unknown = substitute_tokens("sqft + sqft2", {'sqft': 10, 'sqft2': 20})
        assert text == "10 + 20"
        assert unknown == []

    def test_token_inside_word_is_not_replaced(self):
        text, unknown = substitute_tokens("rate * base_rate", {'rate': 2})
        assert text == "2 * 0"
        assert unknown == ['base_rate']

    def test_longest_token_wins_at_same_position(self):
        text, _ = substitute_tokens("addons_sealing + addons", {'addons': 1, 'addons_sealing': 120})
        assert text == "120 + 1"

    def test_unknown_tokens_become_zero(self):
        text, unknown = substitute_tokens("x * missing + missing", {'x': 2})
        assert text == "2 * 0 + 0"
        assert unknown == ['missing']

    def test_checkbox_strings_are_parenthesised(self):
        text, _ = substitute_tokens("10 * extra", {'extra': "1 + 1"})
        assert text == "10 * (1 + 1)"
        assert evaluate_expression(text) == Decimal(20)


@pytest.mark.parametrize("value,expected", [
    (3, "3"), (2.5, "2.5"), (2.0, "2"), (-4, "(-4)"), (True, "1"),
    ("", "0"), ("75", "(75)"), (1e-7, "0.0000001"),
])
def test_format_contribution(value, expected):
    assert format_contribution(value) == expected


class TestArithmetic:

    @pytest.mark.parametrize("text,expected", [
        ("1 + 2 * 3", 7),
        ("(1 + 2) * 3", 9),
        ("10 / 4", Decimal("2.5")),
        ("10 - 2 - 3", 5),
        ("-3 + 5", 2),
        ("--2", 2),
        ("2 * -3", -6),
        ("0.1 + 0.2", Decimal("0.3")),
        (".5 * 4", 2),
    ])
    def test_evaluates(self, text, expected):
        assert evaluate_expression(text) == Decimal(expected)

    def test_ast_shape(self):
        assert parse("-(1 + 2) * 3") == Mul(Neg(Paren(Add(Literal(Decimal(1)), Literal(Decimal(2))))), Literal(Decimal(3)))

    @pytest.mark.parametrize("text", ["(1 + 2", "1 + 2)", ")(", "((3)"])
    def test_unbalanced_parentheses(self, text):
        with pytest.raises(FormulaSyntaxError):
            evaluate_expression(text)

    @pytest.mark.parametrize("text", ["1 +", "* 2", "1 2", "", "   ", "1..2"])
    def test_malformed(self, text):
        with pytest.raises(FormulaSyntaxError):
            evaluate_expression(text)

    def test_rejects_anything_but_arithmetic(self):
        with pytest.raises(FormulaSyntaxError) as exc:
            evaluate_expression("2 ** 3 % 2")
        assert "position" in str(exc.value)
        with pytest.raises(FormulaSyntaxError):
            evaluate_expression("__import__('os')")

    def test_division_by_zero(self):
        with pytest.raises(DivisionByZeroError):
            evaluate_expression("5 / (2 - 2)")

    def test_errors_share_a_base_class(self):
        assert issubclass(FormulaSyntaxError, EvaluationError)
        assert issubclass(DivisionByZeroError, EvaluationError)

    def test_nesting_depth_is_bounded(self):
        deep = "(" * 50 + "1" + ")" * 50
        assert evaluate_expression(deep, max_depth=50) == 1
        with pytest.raises(FormulaSyntaxError):
            evaluate_expression(deep, max_depth=49)
        with pytest.raises(FormulaSyntaxError):
            evaluate_expression("-" * 200 + "1")


@pytest.mark.parametrize("value,expected", [
    (Decimal("2.5"), 3), (Decimal("-2.5"), -3), (Decimal("2.4"), 2),
    (Decimal("-2.4"), -2), (Decimal("1417.5"), 1418), (0.5, 1), (7, 7),
])
def test_round_half_away_from_zero(value, expected):
    assert round_half_away_from_zero(value) == expected


def test_clamp_price():
    assert clamp_price(300, 500, None) == (500, "min")
    assert clamp_price(3000, None, 1500) == (1500, "max")
    assert clamp_price(700, 500, 1500) == (700, None)
    assert clamp_price(500, 500, 500) == (500, None)
    assert clamp_price(-5) == (-5, None)


def test_evaluate_rounds_then_clamps():
    # 149.5 rounds to 150, which is not below the minimum
    assert evaluate("x", {'x': 149.5}, min_price=150) == 150
    assert evaluate("x", {'x': 149.4}, min_price=150) == 150
    assert evaluate("x", {'x': 1500.4}, max_price=1500) == 1500
    assert evaluate("x * 3", {'x': 100}) == 300


def test_evaluate_is_deterministic():
    token_map = {'base': 10, 'rate': 2.5}
    results = {evaluate("base * rate", token_map) for _ in range(20)}
    assert results == {25}


def test_results_beyond_default_precision_round_exactly():
    assert round_half_away_from_zero(Decimal("123456789012345678901234567890.5")) == 123456789012345678901234567891
    assert evaluate("sqft", {'sqft': 10 ** 30}) == 10 ** 30


def test_large_results_clamp_to_maximum():
    assert evaluate("sqft", {'sqft': 10 ** 30}, max_price=100) == 100
    assert evaluate("sqft * rate", {'sqft': 1e20, 'rate': 1e15}, max_price=100000) == 100000
    assert evaluate("0 - sqft", {'sqft': 10 ** 30}, min_price=0) == 0


def test_non_finite_result_is_an_evaluation_error():
    with pytest.raises(EvaluationError):
        round_half_away_from_zero(Decimal("Infinity"))
