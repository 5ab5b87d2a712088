from __future__ import annotations
import random
from typing import Protocol, runtime_checkable, TYPE_CHECKING

if TYPE_CHECKING:
    from .settings import Settings

FIXED_SEED = 1337

@runtime_checkable
class RandomSource(Protocol):
    """
    Anything with the two random.Random methods the engine uses.
    randint(1, sides) is one die of the given size; random() drives probability checks.
    """
    def randint(self, a: int, b: int) -> int: ...
    def random(self) -> float: ...

def make_rng(settings: "Settings | None" = None, seed: int | None = None) -> random.Random:
    if seed is not None:
        return random.Random(seed)
    if settings is None:
        return random.Random()
    if settings.rng_seed is not None:
        return random.Random(settings.rng_seed)
    if settings.rng_seed_mode == "fixed":
        return random.Random(FIXED_SEED)
    return random.Random()
