#Constants for the character sheet engine

from enum import Enum


DEFAULT_STAT_MAX_EXPERIENCE = 7
MIN_ROLL_STAT = 6
MAX_ROLL_STAT = 20

LEVEL_MAX_EXPERIENCE = 100

# Health, mana and racial power all scale from 100 per level
BASE_POOL_PER_LEVEL = 100

MAX_HISTORY_LENGTH = 10

SPEC_SEPARATOR = "→"


class Stat(str, Enum):
    STRENGTH = "Strength"
    AGILITY = "Agility"
    MAGIC = "Magic"
    LUCK = "Luck"
    CRAFTING = "Crafting"
    INTELLIGENCE = "Intelligence"
    INTIMIDATION = "Intimidation"
    CHARISMA = "Charisma"
    NEGOTIATION = "Negotiation"


class Pool(str, Enum):
    HEALTH = "Health"
    MANA = "Mana"
    RACIAL_POWER = "RacialPower"

    @property
    def attribute(self) -> str:
        return {
            Pool.HEALTH: "health",
            Pool.MANA: "mana",
            Pool.RACIAL_POWER: "racial_power",
        }[self]


class Calc(str, Enum):
    ADD = "add"
    MULT = "mult"


class InventoryType(str, Enum):
    WEAPON = "weapon"
    ARMOR = "armor"
    GENERAL = "general"


ROLL_STATS = [stat.value for stat in Stat]
OTHER_STATS = [pool.value for pool in Pool]

# Group names usable in race data instead of listing every stat
STAT_GROUPS = {
    "Roll": ROLL_STATS,
    "Other": OTHER_STATS,
    "Stats": ROLL_STATS + OTHER_STATS,
}

# Choice option types with an effect beyond a stat change
REGEN_ACTIVE = "natural_regen_active"
REGEN_DOUBLED = "regen_doubled"

STAT_FIELDS = ("value", "equipment", "temporary", "experience")

DEFAULT_SECTION_VISIBILITY = {
    "basic-info-content": True,
    "player-stats-content": True,
    "health-combat-content": True,
    "skills-content": True,
    "weapon-inventory-content": True,
    "armor-inventory-content": True,
    "general-inventory-content": True,
    "racial-passives-content": True,
}
