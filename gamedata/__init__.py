"""
Game data - race and class reference tables loaded from JSON.

Usage:
    from gamedata import GameData, Race, CharacterClass
    from gamedata import load_all_races, load_all_classes
"""

from .common import PassiveOption, ManualPassive, format_label, expand_stat_groups, slugify
from .race import Race, load_race, load_all_races
from .character_class import CharacterClass, load_class, load_all_classes
from .game_data import DATA_DIR, GameData

__all__ = [
    # Common
    "PassiveOption",
    "ManualPassive",
    "format_label",
    "expand_stat_groups",
    "slugify",
    # Race
    "Race",
    "load_race",
    "load_all_races",
    # Class
    "CharacterClass",
    "load_class",
    "load_all_classes",
    # Lookup
    "GameData",
    "DATA_DIR",
]
