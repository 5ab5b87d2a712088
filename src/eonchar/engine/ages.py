from __future__ import annotations
import logging
from typing import List, Optional
from pydantic import BaseModel
from .dice import OpenEndedRoll, roll_open_ended
from .expr import APPARENT_AGE, ACTUAL_AGE, FormulaError, evaluate_strict, clamp_age
from .rng import RandomSource
from .schema_models import AgeMapping, AgeRange
from .trace import TraceSession, note

logger = logging.getLogger(__name__)

# (min age, bonus); ages under 30 give nothing
AGE_BONUS_TABLE = [(100, 45), (90, 40), (80, 35), (70, 30), (60, 25), (50, 20), (40, 15), (30, 10)]

def age_bonus(age: int) -> int:
    for lo, bonus in AGE_BONUS_TABLE:
        if age >= lo:
            return bonus
    return 0

def _formula_age(formula: str, var: str, value: int, rng: RandomSource, grammar,
                 trace: Optional[TraceSession]) -> Optional[int]:
    try:
        res = evaluate_strict(formula, {var: value}, rng, grammar)
    except FormulaError as e:
        logger.warning("%s formula %r failed for %s=%s: %s", grammar.name, formula, var, value, e)
        note(trace, "Age", f"{grammar.name} formula failed ({e}); falling back")
        return None
    return clamp_age(res.value)

def actual_to_apparent(actual_age: int, mapping: Optional[AgeMapping], rng: RandomSource,
                       trace: Optional[TraceSession] = None) -> int:
    """Formula first, then the first table bracket holding the age, else the age itself."""
    if mapping is not None:
        if mapping.apparent_age_formula:
            age = _formula_age(mapping.apparent_age_formula, "actualAge", actual_age, rng, APPARENT_AGE, trace)
            if age is not None:
                return age
        for r in mapping.apparent_age_table:
            if r.contains(actual_age):
                return max(0, r.apparent_age)
    return clamp_age(actual_age)

def _sample_range(r: AgeRange, rng: RandomSource) -> int:
    lo = max(0, r.min_actual_age)
    hi = max(lo, r.max_actual_age)
    return rng.randint(lo, hi)

def apparent_to_actual(apparent_age: int, mapping: Optional[AgeMapping], rng: RandomSource,
                       trace: Optional[TraceSession] = None) -> int:
    """
    Reverse lookup. Several brackets may share one apparent age, so the answer is
    drawn at random: one matching bracket uniformly, then a uniform age inside it.
    actual_to_apparent(apparent_to_actual(x)) need not give x back.
    """
    if mapping is not None:
        if mapping.actual_age_from_apparent_formula:
            age = _formula_age(mapping.actual_age_from_apparent_formula, "apparentAge", apparent_age, rng,
                               ACTUAL_AGE, trace)
            if age is not None:
                return age
        matches: List[AgeRange] = [r for r in mapping.apparent_age_table if r.apparent_age == apparent_age]
        if matches:
            chosen = matches[rng.randint(0, len(matches) - 1)]
            return _sample_range(chosen, rng)
    return max(0, apparent_age)

class CharacterAgeResult(BaseModel):
    bil: int
    roll: OpenEndedRoll
    age: int
    apparent_age: int
    bonus: int

def roll_character_age(rng: RandomSource, bil: int, mapping: Optional[AgeMapping] = None,
                       trace: Optional[TraceSession] = None) -> CharacterAgeResult:
    # Age = BIL + Ob3T6
    roll = roll_open_ended(rng, 3)
    age = max(0, bil + roll.total)
    apparent = actual_to_apparent(age, mapping, rng, trace)
    res = CharacterAgeResult(bil=bil, roll=roll, age=age, apparent_age=apparent, bonus=age_bonus(age))
    note(trace, "Age", f"BIL {bil} + Ob3T6 {roll.all_rolls} = {age} (looks {apparent}), bonus {res.bonus}")
    return res
