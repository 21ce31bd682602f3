"""
Stat Manager - recalculation engine and the explicit character mutators.

Every derived field on a Character (stat totals, experience caps, pool
maxima, armor class, regeneration flags) is recomputed by ``recalculate``
from the character's own inputs plus the race table. Mutators only change
inputs; callers run ``recalculate`` afterwards (SheetSession does this for
every edit).

Usage:
    from gamedata import GameData
    from stat_manager import default_character, set_stat_field, recalculate

    game_data = GameData.load()
    character = default_character(game_data, race="Dwarf")
    set_stat_field(character, "Strength", "equipment", 2)
    recalculate(character, game_data)
"""

import logging
import math
import random
from dataclasses import fields
from typing import Any, Dict, Iterable, List, Optional, Tuple

from character_model import Character, ITEM_TYPES, WeaponItem, to_number
from errors import UnknownOptionError
from formula import evaluate, formula_bindings
from gamedata import GameData, Race
from sheet_constants import (
    BASE_POOL_PER_LEVEL,
    DEFAULT_STAT_MAX_EXPERIENCE,
    LEVEL_MAX_EXPERIENCE,
    MAX_ROLL_STAT,
    MIN_ROLL_STAT,
    REGEN_ACTIVE,
    REGEN_DOUBLED,
    STAT_FIELDS,
    Calc,
    InventoryType,
    Pool,
)

logger = logging.getLogger(__name__)


# Plain fields editable through set_field
TEXT_FIELDS = ("name", "skills", "personal_notes")
NUMBER_FIELDS = ("health_bonus", "armor_bonus")


def _clean(value: float) -> float:
    """Round away float noise; integral results become ints."""
    rounded = round(value, 2)
    return int(rounded) if float(rounded).is_integer() else rounded


def _roll_experience(stat) -> bool:
    """Move every full experience bar into base value; True if any moved."""
    cap = max(1, stat.max_experience)
    if stat.experience < cap:
        return False
    bars, remainder = divmod(stat.experience, cap)
    stat.value = _clean(stat.value + bars)
    stat.experience = _clean(remainder)
    return True


def adjust_value(old_max: float, value: float, new_max: float) -> float:
    """A full bar follows its new maximum; anything else is clamped to it."""
    if value == old_max and old_max > 0:
        return new_max
    return min(max(value, 0), new_max)


# -----------------------------------------------------------------------------
# Recalculation
# -----------------------------------------------------------------------------

def choice_modifiers(character: Character) -> Tuple[Dict[str, float], Dict[str, float], set]:
    """
    Fold every recorded choice into per-stat modifiers.

    Returns (multipliers, additions, option types), where multipliers and
    additions are keyed by stat name. Choices without a target stat only
    contribute their option type.
    """
    multipliers: Dict[str, float] = {}
    additions: Dict[str, float] = {}
    option_types = set()
    for _category, _passive, _slot, record in character.stat_choices:
        option_types.add(record.type)
        if not record.stat_name or record.value is None:
            continue
        if record.calc == Calc.MULT.value:
            multipliers[record.stat_name] = multipliers.get(record.stat_name, 1) * record.value
        else:
            additions[record.stat_name] = additions.get(record.stat_name, 0) + record.value
    return multipliers, additions, option_types


def recalculate(character: Character, game_data: GameData, follow_full: bool = True) -> Character:
    """
    Recompute every derived field of ``character`` in place.

    Running it twice in a row gives the same result as running it once.
    With ``follow_full`` false the current pool values are only clamped,
    which is what a freshly loaded record needs.
    """
    race: Optional[Race] = game_data.get_race(character.race)
    multipliers, additions, option_types = choice_modifiers(character)

    def multiplier(stat_name: str) -> float:
        base = race.multiplier(stat_name) if race else 1
        return base * multipliers.get(stat_name, 1)

    def addition(stat_name: str) -> float:
        base = race.bonus(stat_name) if race else 0
        return base + additions.get(stat_name, 0)

    def pool_max(pool: Pool, level: int) -> int:
        # Round off float noise before flooring
        return math.floor(round(BASE_POOL_PER_LEVEL * multiplier(pool.value) * level, 6))

    # 1. Racial change and regeneration flags
    for name, stat in character.stats.items():
        stat.racial_change = _clean(stat.value * (multiplier(name) - 1) + addition(name))

    character.natural_health_regen_active = REGEN_ACTIVE in option_types
    character.natural_mana_regen_active = REGEN_ACTIVE in option_types
    character.health_regen_doubled = REGEN_DOUBLED in option_types
    character.mana_regen_doubled = REGEN_DOUBLED in option_types

    # 2. Totals
    for stat in character.stats.values():
        stat.total = _clean(stat.value + stat.equipment + stat.temporary + stat.racial_change)

    # 3. Experience caps; experience over a shrunken cap rolls into value
    for name, stat in character.stats.items():
        stat.max_experience = race.max_experience(name, character.level) if race else DEFAULT_STAT_MAX_EXPERIENCE
        if _roll_experience(stat):
            stat.racial_change = _clean(stat.value * (multiplier(name) - 1) + addition(name))
            stat.total = _clean(stat.value + stat.equipment + stat.temporary + stat.racial_change)
    character.level_max_experience = LEVEL_MAX_EXPERIENCE

    # 4. Pools
    level = character.level
    max_health = pool_max(Pool.HEALTH, level)
    max_health += character.health_bonus + addition(Pool.HEALTH.value)
    max_mana = pool_max(Pool.MANA, level)
    max_mana += addition(Pool.MANA.value)
    max_power = pool_max(Pool.RACIAL_POWER, level)
    max_power += addition(Pool.RACIAL_POWER.value)

    for pool, new_max in ((Pool.HEALTH, max_health), (Pool.MANA, max_mana), (Pool.RACIAL_POWER, max_power)):
        new_max = max(0, _clean(new_max))
        max_attr = f"max_{pool.attribute}"
        old_max = getattr(character, max_attr)
        current = getattr(character, pool.attribute)
        if follow_full:
            current = adjust_value(old_max, current, new_max)
        else:
            current = min(max(current, 0), new_max)
        setattr(character, max_attr, new_max)
        setattr(character, pool.attribute, current)

    # 5. Armor class
    character.ac = _clean(character.armor_bonus + sum(
        armor.defense for armor in character.armor_inventory if armor.equipped
    ))

    # Weapons in use show their evaluated damage
    bindings = formula_bindings(character)
    for weapon in character.weapon_inventory:
        if weapon.use:
            weapon.damage = evaluate(weapon.original_damage, bindings)
            weapon.magic_damage = evaluate(weapon.original_magic_damage, bindings)

    logger.debug("Recalculated %r (race=%r, level=%d)", character.name, character.race, character.level)
    return character


# -----------------------------------------------------------------------------
# Factory
# -----------------------------------------------------------------------------

def roll_stat(rng=None) -> int:
    rng = rng or random
    return rng.randint(MIN_ROLL_STAT, MAX_ROLL_STAT)


def default_character(game_data: GameData, race: Optional[str] = None, rng=None,
                      name: str = "") -> Character:
    """
    A fresh character with rolled stats and full pools.

    ``race`` defaults to the first race in the table; pass "" for none.
    """
    if race is None:
        race = game_data.default_race
    character = Character(name=name, race=race)
    quick_roll_stats(character, rng)
    recalculate(character, game_data)
    character.health = character.max_health
    character.mana = character.max_mana
    character.racial_power = character.max_racial_power
    return character


def quick_roll_stats(character: Character, rng=None) -> None:
    """Reroll the base value of every stat."""
    for stat in character.stats.values():
        stat.value = roll_stat(rng)


# -----------------------------------------------------------------------------
# Mutators
# -----------------------------------------------------------------------------

def _get_stat(character: Character, stat_name: str):
    stat = character.stats.get(stat_name)
    if stat is None:
        raise UnknownOptionError(f"Unknown stat: {stat_name}")
    return stat


def set_stat_field(character: Character, stat_name: str, field_name: str, value: Any) -> None:
    """
    Set one input field of a stat.

    Experience at or above the stat's cap rolls over into base value, one
    point per full bar.
    """
    if field_name not in STAT_FIELDS:
        raise UnknownOptionError(f"Unknown stat field: {field_name}. Options: {list(STAT_FIELDS)}")
    stat = _get_stat(character, stat_name)
    value = to_number(value)

    if field_name == "experience":
        stat.experience = max(0, value)
        _roll_experience(stat)
    else:
        setattr(stat, field_name, value)


def set_level(character: Character, level: Any) -> None:
    character.level = max(1, int(to_number(level, 1)))
    character.level_max_experience = LEVEL_MAX_EXPERIENCE


def set_level_experience(character: Character, value: Any) -> None:
    """Set level experience; every full bar becomes a level."""
    character.level_experience = max(0, to_number(value))
    cap = max(1, character.level_max_experience)
    if character.level_experience >= cap:
        levels, remainder = divmod(character.level_experience, cap)
        character.level += int(levels)
        character.level_experience = _clean(remainder)


def add_level_experience(character: Character, amount: Any) -> None:
    set_level_experience(character, character.level_experience + to_number(amount))


def set_pool_value(character: Character, pool: Pool | str, value: Any) -> None:
    """Set current health, mana or racial power, clamped to ``[0, max]``."""
    try:
        pool = Pool(pool)
    except ValueError:
        raise UnknownOptionError(f"Unknown pool: {pool}. Options: {[p.value for p in Pool]}")
    maximum = getattr(character, f"max_{pool.attribute}")
    setattr(character, pool.attribute, min(max(to_number(value), 0), maximum))


def set_field(character: Character, field_name: str, value: Any) -> None:
    """Set a plain text or bonus field (name, skills, notes, health/armor bonus)."""
    if field_name in TEXT_FIELDS:
        setattr(character, field_name, "" if value is None else str(value))
    elif field_name in NUMBER_FIELDS:
        setattr(character, field_name, to_number(value))
    else:
        raise UnknownOptionError(
            f"Unknown field: {field_name}. Options: {list(TEXT_FIELDS + NUMBER_FIELDS)}"
        )


def set_section_visibility(character: Character, section_id: str, visible: bool) -> None:
    character.section_visibility[section_id] = bool(visible)


def change_race(character: Character, new_race: str, game_data: GameData) -> None:
    """Switch race; choices recorded under the old race are dropped."""
    new_race = new_race or ""
    if new_race and new_race not in game_data.races:
        raise UnknownOptionError(f"Unknown race: {new_race}. Options: {list(game_data.races)}")
    if new_race == character.race:
        return
    if character.race:
        removed = character.stat_choices.clear_category(character.race)
        if removed:
            logger.debug("Dropped %d choice(s) recorded for %r", len(removed), character.race)
    character.race = new_race


def _unique(values: Iterable[str]) -> List[str]:
    result: List[str] = []
    for value in values:
        if value not in result:
            result.append(value)
    return result


def set_classes(character: Character, class_names: Iterable[str], game_data: GameData) -> None:
    """Set classes and drop specializations the new classes no longer offer."""
    class_names = _unique(class_names)
    for name in class_names:
        if name not in game_data.classes:
            raise UnknownOptionError(f"Unknown class: {name}. Options: {list(game_data.classes)}")
    character.classes = class_names
    available = set(game_data.available_specializations(class_names))
    character.specializations = [s for s in character.specializations if s in available]


def set_specializations(character: Character, specializations: Iterable[str], game_data: GameData) -> None:
    available = set(game_data.available_specializations(character.classes))
    character.specializations = [s for s in _unique(specializations) if s in available]


# --- Inventories ---

def _inventory_type(inventory_type: InventoryType | str) -> InventoryType:
    try:
        return InventoryType(inventory_type)
    except ValueError:
        raise UnknownOptionError(
            f"Unknown inventory: {inventory_type}. Options: {[t.value for t in InventoryType]}"
        )


def add_item(character: Character, inventory_type: InventoryType | str, item=None) -> int:
    """Append an item (a blank one by default); returns its index."""
    kind = _inventory_type(inventory_type)
    inventory = character.inventory(kind)
    inventory.append(item if item is not None else ITEM_TYPES[kind]())
    return len(inventory) - 1


def remove_item(character: Character, inventory_type: InventoryType | str, index: int) -> None:
    del character.inventory(_inventory_type(inventory_type))[index]


def set_item_field(character: Character, inventory_type: InventoryType | str, index: int,
                   field_name: str, value: Any) -> None:
    """
    Set one field of an inventory item, coerced to the field's type.

    Editing a weapon's damage also replaces the formula kept for it.
    """
    kind = _inventory_type(inventory_type)
    item = character.inventory(kind)[index]
    defaults = {f.name: f.default for f in fields(item)}
    if field_name not in defaults or field_name.startswith("original_"):
        raise UnknownOptionError(f"Unknown {kind.value} field: {field_name}")

    default = defaults[field_name]
    if isinstance(default, bool):
        value = bool(value)
    elif isinstance(default, (int, float)):
        value = to_number(value)
    else:
        value = "" if value is None else str(value)
    setattr(item, field_name, value)

    if isinstance(item, WeaponItem) and field_name in ("damage", "magic_damage"):
        setattr(item, f"original_{field_name}", value)
    if field_name == "use" and isinstance(item, WeaponItem):
        set_weapon_in_use(character, index, value)


def set_weapon_in_use(character: Character, index: int, in_use: bool) -> None:
    """
    Put a weapon in or out of use.

    In use, the damage columns show the evaluated formulas; out of use they
    go back to the formula text.
    """
    weapon = character.weapon_inventory[index]
    weapon.use = bool(in_use)
    if weapon.use:
        bindings = formula_bindings(character)
        weapon.damage = evaluate(weapon.original_damage, bindings)
        weapon.magic_damage = evaluate(weapon.original_magic_damage, bindings)
    else:
        weapon.damage = weapon.original_damage
        weapon.magic_damage = weapon.original_magic_damage
