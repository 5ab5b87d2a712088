from __future__ import annotations
from pathlib import Path
import sys

def frozen_base_dir() -> Path:
    # PyInstaller --onefile unpacks data to sys._MEIPASS
    if hasattr(sys, "_MEIPASS"):
        return Path(sys._MEIPASS) / "eonchar"  # type: ignore[attr-defined]
    return Path(__file__).resolve().parent.parent  # src/eonchar

def content_dir(override: str | None = None) -> Path:
    if override:
        return Path(override).expanduser()
    return frozen_base_dir() / "content"
