import logging
import math
import pytest
from eonchar.engine.expr import (
    ARITHMETIC, APPARENT_AGE, LITTER_SIZE, PARENT_AGE, PARENT_STATUS, SIBLING,
    FormulaError, evaluate_arithmetic, evaluate_formula, evaluate_strict,
    round_half_up, clamp_age, floor_non_negative, substitute_variables,
)
from eonchar.engine.siblings import evaluate_litter_size
from eonchar.engine.trace import TraceSession

@pytest.mark.parametrize("roll,expected", [(1, 2), (2, 2), (3, 3), (4, 3), (5, 4), (6, 4)])
def test_litter_size_rounds_up(scripted, roll, expected):
    raw = evaluate_formula("1T6/2+1", {}, scripted(ints=[roll]), LITTER_SIZE)
    assert raw.value == pytest.approx(roll / 2 + 1)
    assert math.ceil(raw.value) == expected
    assert evaluate_litter_size("1T6/2+1", {}, scripted(ints=[roll])) == expected

def test_longest_variable_name_first():
    expr = substitute_variables("characterApparentAge + characterAge",
                                {"characterAge": 1, "characterApparentAge": 10})
    assert expr == "10 + 1"

def test_negative_variable_is_parenthesised(fixed_dice):
    res = evaluate_strict("2 - characterAge", {"characterAge": -3}, fixed_dice(), SIBLING)
    assert res.expression == "2 - (-3)"
    assert res.value == 5

def test_open_ended_token_is_rolled_and_kept(fixed_dice):
    res = evaluate_formula("characterAge + Ob1T6", {"characterAge": 45}, fixed_dice(3), SIBLING)
    assert res.ok
    assert res.value == 48
    assert res.expression == "45 + 3"
    assert res.dice == [("Ob1T6", 3)]
    assert res.open_ended is not None and res.open_ended.initial_rolls == [3]

def test_every_evaluation_rolls_again(scripted):
    rng = scripted(ints=[2, 5])
    assert evaluate_formula("1T6", {}, rng, SIBLING).value == 2
    assert evaluate_formula("1T6", {}, rng, SIBLING).value == 5

def test_parent_status_t100(scripted):
    # d10 faces 5 and 3 -> 42
    res = evaluate_formula("1T100 + characterApparentAge", {"characterApparentAge": 20}, scripted(ints=[5, 3]),
                           PARENT_STATUS)
    assert res.value == 62

def test_parent_age_grammar_knows_t10(fixed_dice):
    res = evaluate_formula("oldestSiblingOrCharacterApparentAge + 1T10", {"oldestSiblingOrCharacterApparentAge": 30},
                           fixed_dice(7), PARENT_AGE)
    assert res.value == 37

def test_dice_outside_grammar_fail(fixed_dice):
    res = evaluate_formula("1T100", {}, fixed_dice(), SIBLING)
    assert not res.ok and res.value == 0

def test_unbound_variable_fails(fixed_dice):
    # characterAge is not part of the parent-age grammar
    res = evaluate_formula("characterAge + 14", {"characterAge": 30}, fixed_dice(), PARENT_AGE)
    assert not res.ok and res.value == 0

@pytest.mark.parametrize("bad", ["2 +* 3", "foo + 1", "1/0", "max(1, 2)", "2 ^ 3", "3 % 2", "'a'", "(1 + 2", ""])
def test_broken_formula_degrades_to_zero(fixed_dice, caplog, bad):
    trace = TraceSession()
    with caplog.at_level(logging.WARNING, logger="eonchar.engine.expr"):
        res = evaluate_formula(bad, {}, fixed_dice(), SIBLING, trace)
    assert res.ok is False
    assert res.value == 0
    assert res.error
    assert any(line.startswith("[Formula]") for line in trace.dump())
    assert any("failed" in r.getMessage() for r in caplog.records)

def test_strict_raises(fixed_dice):
    with pytest.raises(FormulaError):
        evaluate_strict("1 +", {}, fixed_dice(), SIBLING)
    with pytest.raises(FormulaError):
        evaluate_arithmetic("__import__('os')")

def test_arithmetic_precedence():
    assert evaluate_arithmetic("2 + 3 * 4 - 6 / 3") == 12
    assert evaluate_arithmetic("-(2 + 3)") == -5

def test_age_formula_functions_and_math_prefix(fixed_dice):
    res = evaluate_strict("Math.floor(actualAge / 2)", {"actualAge": 45}, fixed_dice(), APPARENT_AGE)
    assert res.value == 22
    res = evaluate_strict("2.5 * Math.pow(actualAge, 0.5) - 1", {"actualAge": 16}, fixed_dice(), APPARENT_AGE)
    assert res.value == pytest.approx(9.0)
    res = evaluate_strict("max(actualAge - 10, 0)", {"actualAge": 4}, fixed_dice(), APPARENT_AGE)
    assert res.value == 0

def test_math_prefix_only_for_age_formulas(fixed_dice):
    with pytest.raises(FormulaError):
        evaluate_strict("Math.floor(3.5)", {}, fixed_dice(), ARITHMETIC)

def test_rounding_helpers():
    assert round_half_up(2.5) == 3
    assert round_half_up(-2.5) == -2
    assert clamp_age(-4.2) == 0
    assert clamp_age(12.49) == 12
    assert floor_non_negative(3.99) == 3
    assert floor_non_negative(-0.5) == 0
