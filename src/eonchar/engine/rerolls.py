from __future__ import annotations
import logging
from typing import Literal
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

Facet = Literal["older", "younger", "parent"]

class RerollBudget(BaseModel):
    """
    Shared reroll tokens. Each facet pays at most one token, on its first reroll;
    later rerolls of that facet are free. A first reroll with no tokens left is
    still allowed; it costs nothing and leaves the facet unused.
    """
    remaining: int = Field(default=0, ge=0)
    older_used: bool = False
    younger_used: bool = False
    parent_used: bool = False

    def is_used(self, facet: Facet) -> bool:
        return getattr(self, f"{facet}_used")

    def charge(self, facet: Facet) -> bool:
        """Account for one reroll of `facet`; True if a token was spent."""
        if self.is_used(facet) or self.remaining <= 0:
            if not self.is_used(facet):
                logger.info("reroll of %s with no tokens left", facet)
            return False
        self.remaining -= 1
        setattr(self, f"{facet}_used", True)
        return True
