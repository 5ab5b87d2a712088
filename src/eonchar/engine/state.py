from __future__ import annotations
from pydantic import BaseModel, Field
from typing import List, Optional
from .parents import ParentAgeResult, ParentRoll
from .rerolls import RerollBudget
from .siblings import LitterRollData, Sibling

class FamilyState(BaseModel):
    character_age: Optional[int] = None
    siblings: List[Sibling] = Field(default_factory=list)
    older_litters: int = 0
    younger_litters: int = 0
    older_roll: Optional[LitterRollData] = None
    younger_roll: Optional[LitterRollData] = None
    parent_roll: Optional[ParentRoll] = None
    mother_age: Optional[ParentAgeResult] = None
    father_age: Optional[ParentAgeResult] = None
    budget: RerollBudget = Field(default_factory=RerollBudget)

    @property
    def older_siblings(self) -> List[Sibling]:
        return [s for s in self.siblings if s.is_older]

    @property
    def younger_siblings(self) -> List[Sibling]:
        return [s for s in self.siblings if not s.is_older]

    @property
    def parent_status(self) -> Optional[str]:
        return self.parent_roll.status if self.parent_roll else None
