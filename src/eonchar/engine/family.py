from __future__ import annotations
import logging
from typing import Optional
from .ages import actual_to_apparent
from .formulas import resolve_sibling_formula, resolve_parent_formula, resolve_parent_age_formula
from .loader import ContentIndex
from .parents import ParentAgeResult, ParentRoll, Parent, is_eligible, roll_parent_age, roll_parent_status
from .rerolls import Facet, RerollBudget
from .rng import RandomSource
from .schema_models import AgeMapping, ParentFormula, SiblingFormula, DEFAULT_PARENT_AGE_FORMULA
from .siblings import SiblingSideResult, generate_side, max_litter
from .state import FamilyState
from .trace import TraceSession

logger = logging.getLogger(__name__)

class FamilyEngine:
    """
    One character's family roll session: siblings on both sides, parent status and
    parent ages, with rerolls paid from a shared RerollBudget.

    Every operation is a no-op returning None while the character has no age (or 0).
    """

    def __init__(self, rng: RandomSource, mapping: Optional[AgeMapping] = None,
                 sibling_formula: Optional[SiblingFormula] = None,
                 parent_formula: Optional[ParentFormula] = None,
                 parent_age_formula: str = DEFAULT_PARENT_AGE_FORMULA,
                 state: Optional[FamilyState] = None,
                 trace: Optional[TraceSession] = None):
        self.rng = rng
        self.mapping = mapping
        self.sibling_formula = sibling_formula or SiblingFormula()
        self.parent_formula = parent_formula or ParentFormula()
        self.parent_age_formula = parent_age_formula or DEFAULT_PARENT_AGE_FORMULA
        self.state = state or FamilyState()
        self.trace = trace if trace is not None else TraceSession()

    @classmethod
    def for_race(cls, content: ContentIndex, race_name: str, character_age: Optional[int],
                 rng: RandomSource, rerolls: int = 0, trace: Optional[TraceSession] = None) -> "FamilyEngine":
        race = content.get_race(race_name)
        category = content.category_for(race)
        if category is None:
            logger.warning("race %s has no known category %r; using defaults", race.name, race.category)
        state = FamilyState(character_age=character_age, budget=RerollBudget(remaining=rerolls))
        return cls(
            rng,
            mapping=category.age_mapping if category else None,
            sibling_formula=resolve_sibling_formula(race, category),
            parent_formula=resolve_parent_formula(race, category),
            parent_age_formula=resolve_parent_age_formula(race, category),
            state=state,
            trace=trace,
        )

    # --- helpers ---
    def _has_age(self) -> bool:
        return bool(self.state.character_age and self.state.character_age > 0)

    def character_apparent_age(self) -> int:
        return actual_to_apparent(self.state.character_age or 0, self.mapping, self.rng)

    def _charge(self, facet: Facet) -> None:
        spent = self.state.budget.charge(facet)
        self.trace.note("Reroll", f"{facet}: {'1 token' if spent else 'free'}, {self.state.budget.remaining} left")

    # --- siblings ---
    def roll_older_siblings(self) -> Optional[SiblingSideResult]:
        if not self._has_age():
            return None
        res = generate_side("older", self.sibling_formula, self.character_apparent_age(), self.mapping,
                            self.rng, 1, self.trace)
        st = self.state
        st.siblings = [*res.siblings, *st.younger_siblings]
        st.older_litters, st.older_roll = res.litters, res.roll_data
        return res

    def roll_younger_siblings(self) -> Optional[SiblingSideResult]:
        if not self._has_age():
            return None
        st = self.state
        older = st.older_siblings
        res = generate_side("younger", self.sibling_formula, self.character_apparent_age(), self.mapping,
                            self.rng, max_litter(older) + 1, self.trace)
        st.siblings = [*older, *res.siblings]
        st.younger_litters, st.younger_roll = res.litters, res.roll_data
        return res

    def roll_all_siblings(self) -> Optional[tuple[SiblingSideResult, SiblingSideResult]]:
        if not self._has_age():
            return None
        self.state.siblings = []
        older = self.roll_older_siblings()
        younger = self.roll_younger_siblings()
        return older, younger

    def reroll_older_siblings(self) -> Optional[SiblingSideResult]:
        if not self._has_age():
            return None
        self._charge("older")
        return self.roll_older_siblings()

    def reroll_younger_siblings(self) -> Optional[SiblingSideResult]:
        if not self._has_age():
            return None
        self._charge("younger")
        return self.roll_younger_siblings()

    # --- parents ---
    def roll_parents(self) -> Optional[ParentRoll]:
        if not self._has_age():
            return None
        st = self.state
        st.parent_roll = roll_parent_status(self.parent_formula, self.character_apparent_age(), self.rng, self.trace)
        # ages rolled under an earlier status stay only while that parent is still alive
        if st.mother_age and not self.can_roll_age("mother"):
            st.mother_age = None
        if st.father_age and not self.can_roll_age("father"):
            st.father_age = None
        return st.parent_roll

    def reroll_parents(self) -> Optional[ParentRoll]:
        if not self._has_age():
            return None
        self._charge("parent")
        return self.roll_parents()

    def can_roll_age(self, parent: Parent) -> bool:
        status = self.state.parent_status
        return self._has_age() and status is not None and is_eligible(parent, status, self.parent_formula)

    def _roll_parent_age(self, parent: Parent) -> Optional[ParentAgeResult]:
        if not self.can_roll_age(parent):
            self.trace.note("Fam", f"no {parent} age to roll (status {self.state.parent_status!r})")
            return None
        res = roll_parent_age(self.parent_age_formula, self.state.siblings, self.character_apparent_age(),
                              self.mapping, self.rng, self.trace)
        setattr(self.state, f"{parent}_age", res)
        return res

    def roll_mother_age(self) -> Optional[ParentAgeResult]:
        return self._roll_parent_age("mother")

    def roll_father_age(self) -> Optional[ParentAgeResult]:
        return self._roll_parent_age("father")
