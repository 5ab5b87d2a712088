from __future__ import annotations
from typing import Optional
from .schema_models import (
    Race, RaceCategory, SiblingFormula, ParentFormula, DEFAULT_PARENT_AGE_FORMULA,
)

# Lookup order everywhere: race metadata -> race category -> built-in default.

def resolve_sibling_formula(race: Optional[Race], category: Optional[RaceCategory]) -> SiblingFormula:
    if race is not None and race.metadata.sibling_formula is not None:
        return race.metadata.sibling_formula
    if category is not None and category.sibling_formula is not None:
        return category.sibling_formula
    return SiblingFormula()

def resolve_parent_formula(race: Optional[Race], category: Optional[RaceCategory]) -> ParentFormula:
    """
    A partial override (only a formula, or only a table) keeps the missing half
    from the built-in default; ParentFormula fills it during validation.
    """
    if race is not None and race.metadata.parent_formula is not None:
        return race.metadata.parent_formula
    if category is not None and category.parent_formula is not None:
        return category.parent_formula
    return ParentFormula()

def resolve_parent_age_formula(race: Optional[Race], category: Optional[RaceCategory]) -> str:
    if race is not None and race.metadata.parent_age_formula:
        return race.metadata.parent_age_formula
    if category is not None and category.parent_age_formula and category.parent_age_formula.strip():
        return category.parent_age_formula
    return DEFAULT_PARENT_AGE_FORMULA
