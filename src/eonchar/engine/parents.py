from __future__ import annotations
import math
from typing import List, Literal, Optional, Sequence
from pydantic import BaseModel, ConfigDict
from .ages import actual_to_apparent, apparent_to_actual
from .dice import OpenEndedRoll
from .expr import PARENT_STATUS, PARENT_AGE, evaluate_formula, floor_non_negative
from .rng import RandomSource
from .schema_models import AgeMapping, ParentFormula, ParentStatusRange, BOTH_ALIVE
from .siblings import Sibling
from .trace import TraceSession, note

Parent = Literal["mother", "father"]

class ParentRoll(BaseModel):
    model_config = ConfigDict(frozen=True)
    formula: str
    apparent_age: int      # the character's apparent age the formula was rolled with
    result: int
    status: str

class ParentAgeResult(BaseModel):
    model_config = ConfigDict(frozen=True)
    formula: str
    base_age: int          # oldest sibling's (or the character's) apparent age
    apparent_age: int
    actual_age: int
    roll_details: Optional[OpenEndedRoll] = None

def determine_parent_status(roll: int, table: Sequence[ParentStatusRange]) -> str:
    # highest ranges win on overlap; no hit means the last row
    for row in sorted(table, key=lambda r: r.max, reverse=True):
        if row.contains(roll):
            return row.result
    return table[-1].result if table else BOTH_ALIVE

def roll_parent_status(parent_formula: ParentFormula, character_apparent_age: int, rng: RandomSource,
                       trace: Optional[TraceSession] = None) -> ParentRoll:
    res = evaluate_formula(parent_formula.formula, {"characterApparentAge": character_apparent_age},
                           rng, PARENT_STATUS, trace)
    value = int(math.floor(res.value))
    status = determine_parent_status(value, parent_formula.table)
    note(trace, "Fam", f"parents: {res.expression or parent_formula.formula} = {value} -> {status}")
    return ParentRoll(formula=parent_formula.formula, apparent_age=character_apparent_age, result=value, status=status)

def is_eligible(parent: Parent, status: str, parent_formula: ParentFormula) -> bool:
    mother, father = parent_formula.eligibility(status)
    return mother if parent == "mother" else father

def oldest_sibling_or_character_apparent_age(siblings: List[Sibling], character_apparent_age: int,
                                             mapping: Optional[AgeMapping], rng: RandomSource) -> int:
    if not siblings:
        return character_apparent_age
    oldest = max(siblings, key=lambda s: s.age)
    return actual_to_apparent(oldest.age, mapping, rng)

def roll_parent_age(parent_age_formula: str, siblings: List[Sibling], character_apparent_age: int,
                    mapping: Optional[AgeMapping], rng: RandomSource,
                    trace: Optional[TraceSession] = None) -> ParentAgeResult:
    base = oldest_sibling_or_character_apparent_age(siblings, character_apparent_age, mapping, rng)
    res = evaluate_formula(parent_age_formula, {"oldestSiblingOrCharacterApparentAge": base}, rng, PARENT_AGE, trace)
    apparent = floor_non_negative(res.value)
    actual = max(0, apparent_to_actual(apparent, mapping, rng, trace))
    note(trace, "Fam", f"parent age: {res.expression or parent_age_formula} -> looks {apparent}, age {actual}")
    return ParentAgeResult(formula=parent_age_formula, base_age=base, apparent_age=apparent,
                           actual_age=actual, roll_details=res.open_ended)
