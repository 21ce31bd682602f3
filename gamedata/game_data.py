"""
GameData - the race/class reference lookup consumed by the engine.

Usage:
    game_data = GameData.load()
    race = game_data.get_race("Mutant")
    specs = game_data.available_specializations(["Mage", "Knight"])
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from .race import Race, load_all_races
from .character_class import CharacterClass, load_all_classes
from .common import ManualPassive

logger = logging.getLogger(__name__)

# Race and class tables shipped with the package
DATA_DIR = Path(__file__).resolve().parent / "data"


@dataclass
class GameData:
    races: Dict[str, Race] = field(default_factory=dict)
    classes: Dict[str, CharacterClass] = field(default_factory=dict)

    @classmethod
    def load(cls, data_dir: Optional[str] = None) -> "GameData":
        """Load all reference tables from JSON files."""
        root = Path(data_dir) if data_dir else DATA_DIR
        game_data = cls(
            races=load_all_races(str(root / "races")),
            classes=load_all_classes(str(root / "classes")),
        )
        logger.info("Loaded %d races and %d classes from %s",
                    len(game_data.races), len(game_data.classes), root)
        return game_data

    @property
    def default_race(self) -> str:
        """First race in the table, or "" when none are loaded."""
        return next(iter(self.races), "")

    def get_race(self, race_name: str) -> Optional[Race]:
        """Race data for ``race_name``; empty or unknown names give None."""
        if not race_name:
            return None
        race = self.races.get(race_name)
        if race is None:
            logger.debug("Race data for %r not found", race_name)
        return race

    def manual_passives(self, race_name: str) -> Dict[str, ManualPassive]:
        race = self.get_race(race_name)
        return race.manual_passives if race else {}

    def get_class_specs(self, class_name: str) -> List[str]:
        char_class = self.classes.get(class_name)
        return list(char_class.specializations) if char_class else []

    def available_specializations(self, class_names: List[str]) -> List[str]:
        """Sorted ``"<class>→<spec>"`` entries offered by the given classes."""
        available = set()
        for name in class_names:
            char_class = self.classes.get(name)
            if char_class:
                available.update(char_class.qualified_specializations())
        return sorted(available)
