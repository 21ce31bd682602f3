"""
Race dataclass - represents racial traits loaded from JSON.

Races provide:
- Stat multipliers (e.g. 0.75 Health for a frail race)
- Flat stat bonuses
- Stat experience rules (how fast a stat's experience bar grows with level)
- Manual passives the player assigns by hand (fixed-count or level-gated)
"""

from dataclasses import dataclass, field
from typing import Dict, Any
import json
from pathlib import Path

from sheet_constants import DEFAULT_STAT_MAX_EXPERIENCE
from .common import ManualPassive, slugify


@dataclass
class Race:
    """A playable race loaded from JSON data."""

    id: str
    name: str
    description: str = ""

    # Multiplicative changes: {"Health": 0.75, "Magic": 1.2}
    stat_multipliers: Dict[str, float] = field(default_factory=dict)

    # Additive changes: {"Strength": 1}
    stat_bonuses: Dict[str, float] = field(default_factory=dict)

    # {"Magic": {"base": 7, "per_level": 1}}
    experience_rules: Dict[str, Dict[str, int]] = field(default_factory=dict)

    manual_passives: Dict[str, ManualPassive] = field(default_factory=dict)

    @property
    def slug(self) -> str:
        return slugify(self.id or self.name)

    def multiplier(self, stat_name: str) -> float:
        return self.stat_multipliers.get(stat_name, 1)

    def bonus(self, stat_name: str) -> float:
        return self.stat_bonuses.get(stat_name, 0)

    def max_experience(self, stat_name: str, level: int) -> int:
        """Experience needed for a stat point; never shrinks as level grows."""
        rule = self.experience_rules.get(stat_name, {})
        base = rule.get("base", DEFAULT_STAT_MAX_EXPERIENCE)
        per_level = max(0, rule.get("per_level", 0))
        return base + per_level * (max(1, level) - 1)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Race":
        passives = {
            name: ManualPassive.from_dict(name, passive)
            for name, passive in data.get("manual_passives", {}).items()
        }
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            description=data.get("description", ""),
            stat_multipliers=data.get("stat_multipliers", {}),
            stat_bonuses=data.get("stat_bonuses", {}),
            experience_rules=data.get("experience_rules", {}),
            manual_passives=passives,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "stat_multipliers": self.stat_multipliers,
            "stat_bonuses": self.stat_bonuses,
            "experience_rules": self.experience_rules,
            "manual_passives": {
                name: passive.to_dict() for name, passive in self.manual_passives.items()
            },
        }


def load_race(filepath: str) -> Race:
    """Load a race from a JSON file."""
    with open(filepath, 'r', encoding='utf-8') as f:
        data = json.load(f)
    return Race.from_dict(data)


def load_all_races(directory: str) -> Dict[str, Race]:
    """Load all races from a directory of JSON files, keyed by race name."""
    races = {}
    path = Path(directory)
    for file in sorted(path.glob("*.json")):
        race = load_race(str(file))
        races[race.name] = race
    return races
