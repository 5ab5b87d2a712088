from __future__ import annotations
from pathlib import Path
from pydantic import BaseModel, Field
from typing import Literal, Optional

SETTINGS_PATH = Path.home() / ".eonchar" / "settings.json"

class Settings(BaseModel):
    rng_seed_mode: Literal["fixed", "random"] = "random"
    rng_seed: Optional[int] = None
    default_rerolls: int = Field(default=2, ge=0)
    log_level: str = "WARNING"
    default_content_dir: Optional[str] = None

def load_settings(path: Path = SETTINGS_PATH) -> Settings:
    if path.exists():
        return Settings.model_validate_json(path.read_text(encoding="utf-8"))
    s = Settings()
    save_settings(s, path)
    return s

def save_settings(s: Settings, path: Path = SETTINGS_PATH) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(s.model_dump_json(indent=2), encoding="utf-8")
