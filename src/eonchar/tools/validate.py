from __future__ import annotations
from pathlib import Path
import json
import random
import re
from typing import Dict, List, Optional
import yaml
import typer
from pydantic import ValidationError
from eonchar.engine.expr import (
    GRAMMARS, FormulaGrammar, FormulaError, evaluate_strict,
    SIBLING, LITTER_SIZE, PARENT_STATUS, PARENT_AGE, APPARENT_AGE, ACTUAL_AGE,
)
from eonchar.engine.loader import CategoryAdapter, RaceAdapter
from eonchar.engine.schema_models import AgeMapping, SiblingFormula, ParentFormula
from eonchar.util.paths import content_dir as default_content_dir

# Every grammar variable is bound to this while pre-checking
SAMPLE_VALUE = 30

_GENDER_FORMS = [
    re.compile(r"^(0(\.\d+)?|1(\.0+)?)$"),
    re.compile(r"^(\d+)-(\d+)$"),
    re.compile(r"^(\d+)T(6|10|100):((\d+)-(\d+)=[^,]+)(,(\d+)-(\d+)=[^,]+)*$", re.IGNORECASE),
]

app = typer.Typer(add_completion=False)

def _load(path: Path):
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in (".yaml", ".yml"):
        return yaml.safe_load(text) or {}
    return json.loads(text)

def _iter(root: Path, exts=(".json", ".yaml", ".yml")):
    if not root.exists():
        return
    for p in sorted(root.rglob("*")):
        if p.is_file() and p.suffix.lower() in exts:
            yield p

def check_formula(formula: str, grammar: FormulaGrammar) -> str | None:
    """Roll the formula once with sample variables; returns the error text or None."""
    try:
        evaluate_strict(formula, {v: SAMPLE_VALUE for v in grammar.variables}, random.Random(0), grammar)
    except FormulaError as e:
        return str(e)
    return None

def _check_age_mapping(m: AgeMapping, where: str) -> List[str]:
    errs: List[str] = []
    for label, value, grammar in (("apparentAgeFormula", m.apparent_age_formula, APPARENT_AGE),
                                  ("actualAgeFromApparentFormula", m.actual_age_from_apparent_formula, ACTUAL_AGE)):
        e = check_formula(value, grammar) if value else None
        if e:
            errs.append(f"{where}.{label}: {e}")
    for i, r in enumerate(m.apparent_age_table):
        if r.max_actual_age < r.min_actual_age:
            errs.append(f"{where}.apparentAgeTable[{i}]: maxActualAge {r.max_actual_age} < minActualAge {r.min_actual_age}")
    return errs

def _check_sibling(sf: SiblingFormula, where: str) -> tuple[List[str], List[str]]:
    errs: List[str] = []
    warns: List[str] = []
    fields = (
        ("numberOfLitters", sf.number_of_litters, SIBLING),
        ("litterSize", sf.litter_size, LITTER_SIZE),
        ("olderSiblingAgeFormula", sf.older_sibling_age_formula, SIBLING),
        ("youngerSiblingAgeFormula", sf.younger_sibling_age_formula, SIBLING),
    )
    for label, value, grammar in fields:
        e = check_formula(value, grammar)
        if e:
            errs.append(f"{where}.siblingFormula.{label}: {e}")
    if not any(p.match(sf.gender_formula.strip()) for p in _GENDER_FORMS):
        warns.append(f"{where}.siblingFormula.genderFormula {sf.gender_formula!r} not recognised; 50/50 will be used")
    return errs, warns

def _check_parent(pf: ParentFormula, where: str) -> List[str]:
    errs: List[str] = []
    e = check_formula(pf.formula, PARENT_STATUS)
    if e:
        errs.append(f"{where}.parentFormula.formula: {e}")
    for i, row in enumerate(pf.table):
        if row.max < row.min:
            errs.append(f"{where}.parentFormula.table[{i}]: max {row.max} < min {row.min}")
    return errs

def _check_owner(obj, where: str) -> tuple[List[str], List[str]]:
    errs: List[str] = []
    warns: List[str] = []
    if obj.sibling_formula is not None:
        e, w = _check_sibling(obj.sibling_formula, where)
        errs += e
        warns += w
    if obj.parent_formula is not None:
        errs += _check_parent(obj.parent_formula, where)
    e = check_formula(obj.parent_age_formula, PARENT_AGE) if obj.parent_age_formula else None
    if e:
        errs.append(f"{where}.parentAgeFormula: {e}")
    return errs, warns

@app.command("validate-content")
def validate_content(
    content_dir: Optional[Path] = typer.Argument(None, help="Content root holding categories/ and races/"),
):
    root = content_dir or default_content_dir()
    ok = True
    categories: Dict[str, Path] = {}
    race_categories: Dict[str, str] = {}

    for sub, adapter in (("categories", CategoryAdapter), ("races", RaceAdapter)):
        for fp in _iter(root / sub):
            raw = _load(fp)
            for data in (raw if isinstance(raw, list) else [raw]):
                try:
                    obj = adapter.validate_python(data)
                except ValidationError as e:
                    ok = False
                    typer.echo(f"[ERROR] {fp}: {e}", err=True)
                    continue
                where = f"{fp}:{obj.name}"
                if sub == "categories":
                    if obj.name in categories:
                        ok = False
                        typer.echo(f"[ERROR] Duplicate race category {obj.name} in {fp} (first in {categories[obj.name]})", err=True)
                    categories[obj.name] = fp
                    errs = _check_age_mapping(obj, where)
                    e, warns = _check_owner(obj, where)
                else:
                    if obj.name in race_categories:
                        ok = False
                        typer.echo(f"[ERROR] Duplicate race {obj.name} in {fp}", err=True)
                    race_categories[obj.name] = obj.category
                    errs = []
                    e, warns = _check_owner(obj.metadata, f"{where}.metadata")
                errs += e
                for msg in errs:
                    ok = False
                    typer.echo(f"[ERROR] {msg}", err=True)
                for msg in warns:
                    typer.echo(f"[WARN] {msg}")

    for race, cat in sorted(race_categories.items()):
        if cat and cat not in categories:
            typer.echo(f"[WARN] Race {race} refers to unknown category {cat!r}; defaults will be used")

    if not ok:
        raise typer.Exit(code=1)
    typer.echo(f"Content validated successfully ({len(categories)} categories, {len(race_categories)} races).")

@app.command("check-formula")
def check_formula_cmd(
    formula: str = typer.Argument(...),
    grammar: str = typer.Option("sibling", "--grammar", "-g", help=f"One of: {', '.join(GRAMMARS)}"),
):
    g = GRAMMARS.get(grammar)
    if g is None:
        typer.echo(f"[ERROR] Unknown grammar {grammar!r}; choose from {', '.join(GRAMMARS)}", err=True)
        raise typer.Exit(code=2)
    err = check_formula(formula, g)
    if err:
        typer.echo(f"[ERROR] {err}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"{formula!r} is a valid {g.name} formula.")

if __name__ == "__main__":
    app()
