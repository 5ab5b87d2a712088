from __future__ import annotations
import logging
import math
import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import FrozenSet, List, Mapping, Optional, Tuple

from py_expression_eval import Parser, TNUMBER, TOP1, TOP2, TVAR, TFUNCALL

from .dice import OpenEndedRoll, roll_dice, roll_open_ended
from .rng import RandomSource
from .trace import TraceSession, note

logger = logging.getLogger(__name__)

class FormulaError(ValueError):
    pass

@dataclass(frozen=True)
class FormulaGrammar:
    """
    One formula dialect: which variable names it binds, which dice forms it rolls
    (subset of "Ob", "T100", "T10", "T6") and whether math helpers are allowed.
    """
    name: str
    variables: Tuple[str, ...] = ()
    dice: FrozenSet[str] = frozenset()
    functions: bool = False

SIBLING = FormulaGrammar("sibling", ("characterApparentAge", "characterAge"), frozenset({"Ob", "T6"}))
LITTER_SIZE = FormulaGrammar("litter-size", ("characterApparentAge", "characterAge"), frozenset({"Ob", "T6"}))
PARENT_STATUS = FormulaGrammar("parent-status", ("characterApparentAge",), frozenset({"T100", "T6"}))
PARENT_AGE = FormulaGrammar("parent-age", ("oldestSiblingOrCharacterApparentAge",), frozenset({"Ob", "T100", "T10", "T6"}))
APPARENT_AGE = FormulaGrammar("apparent-age", ("actualAge",), functions=True)
ACTUAL_AGE = FormulaGrammar("actual-age", ("apparentAge",), functions=True)
ARITHMETIC = FormulaGrammar("arithmetic")

GRAMMARS = {g.name: g for g in (SIBLING, LITTER_SIZE, PARENT_STATUS, PARENT_AGE, APPARENT_AGE, ACTUAL_AGE, ARITHMETIC)}

# Allowed parse tokens
_ARITH_OPS2 = {"+", "-", "*", "/"}
_FUNC_OPS1 = {"-", "sqrt", "abs", "floor", "ceil", "round", "exp"}
_FUNC_OPS2 = _ARITH_OPS2 | {"^", ","}
_FUNC_NAMES = {"pow", "min", "max", "log"}

_DICE_TOKEN = re.compile(r"(?<![\w.])(?:Ob(?P<obn>\d+)T6|(?P<n>\d+)T(?P<sides>100|10|6))(?!\d)", re.IGNORECASE)
_JS_MATH = re.compile(r"\bMath\.")

_parser = Parser()

@dataclass
class FormulaResult:
    formula: str
    value: float = 0
    expression: str = ""
    ok: bool = True
    error: Optional[str] = None
    dice: List[Tuple[str, int]] = field(default_factory=list)  # (token, rolled total) in roll order
    open_ended: Optional[OpenEndedRoll] = None                 # first Ob roll of the formula

def _fmt_number(v: float | int) -> str:
    if isinstance(v, float) and v.is_integer():
        v = int(v)
    if isinstance(v, int):
        s = str(v)
    else:
        s = f"{v:.10f}".rstrip("0").rstrip(".")
    return f"({s})" if s.startswith("-") else s

def substitute_variables(formula: str, variables: Mapping[str, float | int]) -> str:
    expr = formula
    # longest first so characterApparentAge is never split by characterAge
    for name in sorted(variables, key=len, reverse=True):
        expr = re.sub(rf"\b{re.escape(name)}\b", _fmt_number(variables[name]), expr)
    return expr

def substitute_dice(expr: str, rng: RandomSource, grammar: FormulaGrammar, result: FormulaResult) -> str:
    def _roll(m: re.Match) -> str:
        if m.group("obn") is not None:
            if "Ob" not in grammar.dice:
                return m.group(0)
            ob = roll_open_ended(rng, int(m.group("obn")))
            if result.open_ended is None:
                result.open_ended = ob
            total = ob.total
        else:
            form = f"T{m.group('sides')}"
            if form not in grammar.dice:
                return m.group(0)
            total = sum(roll_dice(rng, int(m.group("n")), int(m.group("sides"))))
        result.dice.append((m.group(0), total))
        return str(total)
    return _DICE_TOKEN.sub(_roll, expr)

@lru_cache(maxsize=4096)
def _compile_expr(expr: str):
    return _parser.parse(expr)

def _check_tokens(parsed, grammar: FormulaGrammar, expr: str) -> None:
    for tok in parsed.tokens:
        kind, idx = tok.type_, tok.index_
        if kind == TNUMBER:
            num = tok.number_
            if isinstance(num, bool) or not isinstance(num, (int, float)):
                raise FormulaError(f"non-numeric literal in {expr!r}")
        elif kind == TOP1:
            if idx not in (_FUNC_OPS1 if grammar.functions else {"-"}):
                raise FormulaError(f"operator {idx!r} not allowed in {expr!r}")
        elif kind == TOP2:
            if idx not in (_FUNC_OPS2 if grammar.functions else _ARITH_OPS2):
                raise FormulaError(f"operator {idx!r} not allowed in {expr!r}")
        elif kind == TVAR:
            if not grammar.functions or idx not in _FUNC_NAMES:
                raise FormulaError(f"unresolved name {idx!r} in {expr!r}")
        elif kind == TFUNCALL:
            if not grammar.functions:
                raise FormulaError(f"function call not allowed in {expr!r}")
        else:
            raise FormulaError(f"unsupported token in {expr!r}")

def evaluate_arithmetic(expr: str, grammar: FormulaGrammar = ARITHMETIC) -> float:
    """Parse and evaluate text that has no dice or variables left in it."""
    if not expr or not expr.strip():
        raise FormulaError("empty expression")
    try:
        parsed = _compile_expr(expr)
    except Exception as e:
        raise FormulaError(f"cannot parse {expr!r}: {e}") from e
    _check_tokens(parsed, grammar, expr)
    try:
        value = parsed.evaluate({})
    except Exception as e:
        raise FormulaError(f"cannot evaluate {expr!r}: {e}") from e
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise FormulaError(f"{expr!r} did not produce a finite number")
    return value

def evaluate_strict(formula: str, variables: Mapping[str, float | int] | None, rng: RandomSource,
                    grammar: FormulaGrammar = ARITHMETIC) -> FormulaResult:
    """
    Substitute variables, roll dice tokens left to right, then evaluate.
    Every call rolls again; nothing is memoised except the parse of the final text.
    Raises FormulaError.
    """
    if not isinstance(formula, str) or not formula.strip():
        raise FormulaError("empty formula")
    result = FormulaResult(formula=formula)
    expr = formula.strip()
    if grammar.functions:
        expr = _JS_MATH.sub("", expr)
    bound = {k: v for k, v in (variables or {}).items() if k in grammar.variables}
    expr = substitute_variables(expr, bound)
    expr = substitute_dice(expr, rng, grammar, result)
    result.expression = expr
    result.value = evaluate_arithmetic(expr, grammar)
    return result

def evaluate_formula(formula: str, variables: Mapping[str, float | int] | None, rng: RandomSource,
                     grammar: FormulaGrammar = ARITHMETIC, trace: Optional[TraceSession] = None) -> FormulaResult:
    """Like evaluate_strict but never raises: a broken formula is reported and counts as 0."""
    try:
        return evaluate_strict(formula, variables, rng, grammar)
    except FormulaError as e:
        logger.warning("formula %r (%s) failed: %s", formula, grammar.name, e)
        note(trace, "Formula", f"{grammar.name} formula {formula!r} failed ({e}); using 0")
        return FormulaResult(formula=formula if isinstance(formula, str) else "", value=0, ok=False, error=str(e))

# Rounding policies
def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))

def clamp_age(value: float) -> int:
    return max(0, round_half_up(value))

def floor_non_negative(value: float) -> int:
    return max(0, math.floor(value))

def expr_cache_info() -> str:
    info = _compile_expr.cache_info()
    return f"expr-cache: hits={info.hits}, misses={info.misses}, size={info.currsize}/{info.maxsize}"
