from __future__ import annotations
from typing import List, Optional

class TraceSession:
    """Line log of what a generator rolled; rendered by the CLI under the results."""

    def __init__(self, max_lines: Optional[int] = 1000) -> None:
        self.lines: List[str] = []
        self.max_lines = max_lines

    def add(self, line: str) -> None:
        self.lines.append(line)
        if self.max_lines is not None and len(self.lines) > self.max_lines:
            del self.lines[: len(self.lines) - self.max_lines]

    def note(self, tag: str, message: str) -> None:
        self.add(f"[{tag}] {message}")

    def dump(self) -> list[str]:
        return list(self.lines)

def note(trace: Optional[TraceSession], tag: str, message: str) -> None:
    if trace is not None:
        trace.note(tag, message)
