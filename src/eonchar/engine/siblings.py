from __future__ import annotations
import math
import re
from typing import List, Literal, Optional, Tuple
from pydantic import BaseModel, ConfigDict
from .ages import apparent_to_actual
from .dice import OpenEndedRoll, roll_dice, roll_open_ended
from .expr import SIBLING, LITTER_SIZE, evaluate_formula, floor_non_negative
from .rng import RandomSource
from .schema_models import AgeMapping, SiblingFormula
from .trace import TraceSession, note

Side = Literal["older", "younger"]

RELATIONSHIP = {"older": "Äldre syskon", "younger": "Yngre syskon"}

class Sibling(BaseModel):
    model_config = ConfigDict(frozen=True)
    litter: int
    position: int
    age: int                 # actual age, shared by the whole litter
    gender: str              # "male" / "female" or a label from a dice-range gender formula
    is_older: bool
    age_formula: str = ""
    relationship: str = ""

class LitterRollData(BaseModel):
    model_config = ConfigDict(frozen=True)
    type: Literal["Ob", "T6"]
    dice_count: int
    roll: Optional[OpenEndedRoll] = None
    rolls: Optional[List[int]] = None
    base_result: int
    modifier: Optional[str] = None
    modifier_value: float = 0
    final_result: float
    formula: str

class LitterRollResult(BaseModel):
    count: int
    roll_data: Optional[LitterRollData] = None

class SiblingSideResult(BaseModel):
    side: Side
    siblings: List[Sibling]
    litters: int
    roll_data: Optional[LitterRollData] = None

_OB_LEAD = re.compile(r"^\s*Ob(\d+)T6(.*)$", re.IGNORECASE | re.DOTALL)
_T6_LEAD = re.compile(r"^\s*(\d+)T6(.*)$", re.IGNORECASE | re.DOTALL)

def _modifier_value(modifier: str, variables: dict, rng: RandomSource, trace: Optional[TraceSession]) -> float:
    if not modifier.strip():
        return 0
    # "-2" / "+1" are read as 0-2 / 0+1
    return evaluate_formula("0" + modifier, variables, rng, SIBLING, trace).value

def roll_litter_count(formula: str, variables: dict, rng: RandomSource,
                      trace: Optional[TraceSession] = None) -> LitterRollResult:
    """
    Number of litters on one side. A leading ObNT6 or NT6 with an optional modifier
    keeps the dice for display; anything else is a plain sibling formula.
    """
    formula = formula or ""
    m = _OB_LEAD.match(formula)
    if m:
        n, modifier = int(m.group(1)), m.group(2)
        roll = roll_open_ended(rng, n)
        mod = _modifier_value(modifier, variables, rng, trace)
        final = roll.total + mod
        data = LitterRollData(type="Ob", dice_count=n, roll=roll, base_result=roll.total,
                              modifier=modifier.strip() or None, modifier_value=mod,
                              final_result=max(0, final), formula=formula)
        return LitterRollResult(count=floor_non_negative(final), roll_data=data)
    m = _T6_LEAD.match(formula)
    if m:
        n, modifier = int(m.group(1)), m.group(2)
        rolls = roll_dice(rng, n, 6)
        mod = _modifier_value(modifier, variables, rng, trace)
        final = sum(rolls) + mod
        data = LitterRollData(type="T6", dice_count=n, rolls=rolls, base_result=sum(rolls),
                              modifier=modifier.strip() or None, modifier_value=mod,
                              final_result=final, formula=formula)
        return LitterRollResult(count=floor_non_negative(final), roll_data=data)
    res = evaluate_formula(formula, variables, rng, SIBLING, trace)
    return LitterRollResult(count=floor_non_negative(res.value))

_PLAIN_INT = re.compile(r"^\d+$")

def evaluate_litter_size(formula: str, variables: dict, rng: RandomSource,
                         trace: Optional[TraceSession] = None) -> int:
    if not isinstance(formula, str) or not formula.strip():
        return 1
    f = formula.strip()
    if "/" not in f and _PLAIN_INT.match(f):
        return int(f)
    # anything computed is rounded up
    value = evaluate_formula(f, variables, rng, LITTER_SIZE, trace).value
    return max(0, math.ceil(value))

_DECIMAL = re.compile(r"^(0(\.\d+)?|1(\.0+)?)$")
_LEGACY_SPLIT = re.compile(r"^(\d+)-(\d+)$")
_DICE_MAP = re.compile(r"^(\d+)T(\d+):(.+)$", re.IGNORECASE)
_RANGE = re.compile(r"(\d+)-(\d+)=(.+)")

def _by_chance(rng: RandomSource, male_chance: float) -> str:
    return "male" if rng.random() < male_chance else "female"

def determine_gender(formula: str, rng: RandomSource) -> str:
    """
    Gender formulas, tried in order:
      "0.6"                       chance of male
      "60-40"                     male/female percentages (only the male share is used)
      "1T10:1-6=male,7-10=female" roll once, return the matching label as written
    Anything else is an even split.
    """
    f = formula.strip() if isinstance(formula, str) else ""
    if _DECIMAL.match(f):
        return _by_chance(rng, float(f))
    m = _LEGACY_SPLIT.match(f)
    if m:
        return _by_chance(rng, int(m.group(1)) / 100)
    m = _DICE_MAP.match(f)
    if m:
        count, sides = int(m.group(1)), int(m.group(2))
        if sides in (6, 10, 100):
            roll = sum(roll_dice(rng, count, sides))
            for part in m.group(3).split(","):
                rm = _RANGE.search(part)
                if rm and int(rm.group(1)) <= roll <= int(rm.group(2)):
                    return rm.group(3).strip()
    return _by_chance(rng, 0.5)

def generate_side(side: Side, formula: SiblingFormula, character_apparent_age: int,
                  mapping: Optional[AgeMapping], rng: RandomSource, start_litter: int = 1,
                  trace: Optional[TraceSession] = None) -> SiblingSideResult:
    variables = {"characterAge": character_apparent_age, "characterApparentAge": character_apparent_age}
    age_formula = formula.older_sibling_age_formula if side == "older" else formula.younger_sibling_age_formula

    count = roll_litter_count(formula.number_of_litters, variables, rng, trace)
    note(trace, "Fam", f"{side} litters: {formula.number_of_litters} -> {count.count}")

    siblings: List[Sibling] = []
    for i in range(count.count):
        litter = start_litter + i
        size = evaluate_litter_size(formula.litter_size, variables, rng, trace)
        apparent = floor_non_negative(evaluate_formula(age_formula, variables, rng, SIBLING, trace).value)
        actual = max(0, apparent_to_actual(apparent, mapping, rng, trace))
        for pos in range(size):
            siblings.append(Sibling(
                litter=litter,
                position=pos + 1,
                age=actual,
                gender=determine_gender(formula.gender_formula, rng),
                is_older=(side == "older"),
                age_formula=age_formula,
                relationship=RELATIONSHIP[side],
            ))
        note(trace, "Fam", f"litter {litter}: {size} sibling(s), looks {apparent}, age {actual}")
    return SiblingSideResult(side=side, siblings=siblings, litters=count.count, roll_data=count.roll_data)

def max_litter(siblings: List[Sibling]) -> int:
    return max((s.litter for s in siblings), default=0)

def roll_all_siblings(formula: SiblingFormula, character_apparent_age: int, mapping: Optional[AgeMapping],
                      rng: RandomSource, trace: Optional[TraceSession] = None) -> Tuple[SiblingSideResult, SiblingSideResult]:
    """Both sides in one go: older litters from 1, younger ones numbered after them."""
    older = generate_side("older", formula, character_apparent_age, mapping, rng, 1, trace)
    younger = generate_side("younger", formula, character_apparent_age, mapping, rng,
                            max_litter(older.siblings) + 1, trace)
    return older, younger
