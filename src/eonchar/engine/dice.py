from __future__ import annotations
import re
from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field
from .rng import RandomSource

class DiceNotationError(ValueError):
    pass

class T100Roll(BaseModel):
    model_config = ConfigDict(frozen=True)
    tens_die: int
    ones_die: int
    value: int

class OpenEndedRoll(BaseModel):
    model_config = ConfigDict(frozen=True)
    initial_rolls: List[int]
    extra_rolls: List[int] = Field(default_factory=list)
    total: int
    potential_perfect: bool = False
    potential_fumble: bool = False

    @property
    def all_rolls(self) -> List[int]:
        return [*self.initial_rolls, *self.extra_rolls]

class DiceRollDetail(BaseModel):
    model_config = ConfigDict(frozen=True)
    notation: str
    kind: Literal["T100", "T10", "T6", "Ob"]
    results: List[int]
    total: int
    t100: Optional[List[T100Roll]] = None
    open_ended: Optional[OpenEndedRoll] = None

def roll_die(rng: RandomSource, sides: int) -> int:
    return rng.randint(1, sides)

def d6(rng: RandomSource) -> int:
    return roll_die(rng, 6)

def d10(rng: RandomSource) -> int:
    return roll_die(rng, 10)

def roll_t100_details(rng: RandomSource) -> T100Roll:
    # two d10 read as 0-9 digits; "00" is 100, never 0
    tens = d10(rng) - 1
    ones = d10(rng) - 1
    value = 100 if tens == 0 and ones == 0 else tens * 10 + ones
    return T100Roll(tens_die=tens, ones_die=ones, value=value)

def roll_t100(rng: RandomSource) -> int:
    return roll_t100_details(rng).value

def roll_dice(rng: RandomSource, count: int, sides: int) -> List[int]:
    if sides == 100:
        return [roll_t100(rng) for _ in range(count)]
    return [roll_die(rng, sides) for _ in range(count)]

def roll_open_ended(rng: RandomSource, count: int = 1) -> OpenEndedRoll:
    """
    ObNT6: roll `count` d6 in one throw; every 6 in that throw adds another d6,
    and each extra 6 keeps the chain going. Total is the sum of every die.
    """
    initial = [d6(rng) for _ in range(count)]
    extra: List[int] = []
    for r in initial:
        if r != 6:
            continue
        nxt = d6(rng)
        extra.append(nxt)
        while nxt == 6:
            nxt = d6(rng)
            extra.append(nxt)

    sixes = sum(1 for r in initial if r == 6)
    if len(initial) == 1:
        perfect = initial[0] in (1, 2, 3)
    else:
        perfect = sum(1 for r in initial if r == 1) == len(initial) - 1
    return OpenEndedRoll(
        initial_rolls=initial,
        extra_rolls=extra,
        total=sum(initial) + sum(extra),
        potential_perfect=perfect,
        potential_fumble=sixes >= 2,
    )

_BARE_DICE = re.compile(r"\s*(?:(?P<ob>OB)(?P<obn>\d+)T6|(?P<n>\d+)T(?P<sides>100|10|6))\s*", re.IGNORECASE)

def roll_dice_str(rng: RandomSource, s: str) -> DiceRollDetail:  # e.g., "3T6", "Ob2T6", "1T100"
    m = _BARE_DICE.fullmatch(s or "")
    if not m:
        raise DiceNotationError(f"Unsupported dice notation: {s!r}")
    notation = s.strip()
    if m.group("ob"):
        ob = roll_open_ended(rng, int(m.group("obn")))
        return DiceRollDetail(notation=notation, kind="Ob", results=[ob.total], total=ob.total, open_ended=ob)
    n, sides = int(m.group("n")), int(m.group("sides"))
    if sides == 100:
        parts = [roll_t100_details(rng) for _ in range(n)]
        results = [p.value for p in parts]
        return DiceRollDetail(notation=notation, kind="T100", results=results, total=sum(results), t100=parts)
    results = roll_dice(rng, n, sides)
    return DiceRollDetail(notation=notation, kind=f"T{sides}", results=results, total=sum(results))
