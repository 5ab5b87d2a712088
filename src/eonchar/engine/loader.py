from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple
import json
import yaml
from pydantic import TypeAdapter
from .schema_models import Race, RaceCategory

CategoryAdapter = TypeAdapter(RaceCategory)
RaceAdapter = TypeAdapter(Race)

def _load_file(path: Path):
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in [".yaml", ".yml"]:
        return yaml.safe_load(text) or {}
    return json.loads(text)

def _iter_files(root: Path, exts: Tuple[str, ...] = (".json", ".yaml", ".yml")) -> Iterable[Path]:
    if not root.exists():
        return []
    return sorted(p for p in root.rglob("*") if p.is_file() and p.suffix.lower() in exts)

def _as_list(data) -> List[dict]:
    # a file holds one record or a list of them
    return data if isinstance(data, list) else [data]

@dataclass
class ContentIndex:
    categories: Dict[str, RaceCategory]
    races: Dict[str, Race]

    def get_race(self, name: str) -> Race:
        return self.races[name]

    def category_for(self, race: Race) -> Optional[RaceCategory]:
        return self.categories.get(race.category) if race.category else None

def load_content(base_dir: Path) -> ContentIndex:
    categories: Dict[str, RaceCategory] = {}
    for fp in _iter_files(base_dir / "categories"):
        for data in _as_list(_load_file(fp)):
            cat = CategoryAdapter.validate_python(data)
            if cat.name in categories:
                raise RuntimeError(f"Duplicate race category {cat.name} in {fp}")
            categories[cat.name] = cat

    races: Dict[str, Race] = {}
    for fp in _iter_files(base_dir / "races"):
        for data in _as_list(_load_file(fp)):
            race = RaceAdapter.validate_python(data)
            if race.name in races:
                raise RuntimeError(f"Duplicate race {race.name} in {fp}")
            races[race.name] = race

    return ContentIndex(categories=categories, races=races)
