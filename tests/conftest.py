from pathlib import Path
import pytest

CONTENT_DIR = Path(__file__).resolve().parents[1] / "src" / "eonchar" / "content"

class FixedDice:
    """Every die shows `face` (kept inside the asked range); random() always returns `chance`."""

    def __init__(self, face: int = 3, chance: float = 0.25):
        self.face = face
        self.chance = chance

    def randint(self, a: int, b: int) -> int:
        return min(max(self.face, a), b)

    def random(self) -> float:
        return self.chance

class ScriptedRng:
    """Hands out the given randint results in order; random() pops `floats` (0.0 once empty)."""

    def __init__(self, ints=(), floats=()):
        self.ints = list(ints)
        self.floats = list(floats)
        self.calls: list[tuple[int, int]] = []

    def randint(self, a: int, b: int) -> int:
        self.calls.append((a, b))
        v = self.ints.pop(0)
        assert a <= v <= b, f"scripted {v} outside [{a}, {b}]"
        return v

    def random(self) -> float:
        return self.floats.pop(0) if self.floats else 0.0

@pytest.fixture
def fixed_dice():
    return FixedDice

@pytest.fixture
def scripted():
    return ScriptedRng

@pytest.fixture
def content_dir() -> Path:
    return CONTENT_DIR
