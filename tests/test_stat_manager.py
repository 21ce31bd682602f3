import copy
import random
import sys
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from character_model import ArmorItem, Character, ChoiceRecord, Stat, WeaponItem
from errors import UnknownOptionError
from gamedata import DATA_DIR, GameData
from sheet_constants import MAX_ROLL_STAT, MIN_ROLL_STAT, ROLL_STATS
from stat_manager import (
    add_item,
    add_level_experience,
    change_race,
    default_character,
    quick_roll_stats,
    recalculate,
    remove_item,
    set_classes,
    set_field,
    set_item_field,
    set_level,
    set_pool_value,
    set_specializations,
    set_stat_field,
    set_weapon_in_use,
)


@pytest.fixture(scope="module")
def game_data():
    return GameData.load(str(DATA_DIR))


def _character(race: str = "", **stat_values) -> Character:
    character = Character(race=race)
    for name in ROLL_STATS:
        character.stats[name] = Stat(value=stat_values.get(name, 10))
    return character


def test_total_without_race(game_data):
    character = Character(level=1, race="")
    character.stats["Strength"] = Stat(value=10, equipment=0, temporary=0)
    recalculate(character, game_data)
    assert character.stats["Strength"].racial_change == 0
    assert character.stats["Strength"].total == 10


def test_unknown_race_contributes_nothing(game_data):
    character = _character(race="Gnome")
    recalculate(character, game_data)
    assert all(stat.total == 10 for stat in character.stats.values())
    assert character.max_health == 100


def test_total_adds_equipment_and_temporary(game_data):
    character = _character()
    set_stat_field(character, "Strength", "equipment", 3)
    set_stat_field(character, "Strength", "temporary", "-1")
    recalculate(character, game_data)
    assert character.stats["Strength"].total == 12


def test_race_multipliers_and_bonuses(game_data):
    character = _character(race="Dwarf")
    recalculate(character, game_data)
    stats = character.stats
    assert stats["Strength"].racial_change == 2
    assert stats["Strength"].total == 12
    assert stats["Crafting"].total == 13
    assert stats["Agility"].total == 9
    assert character.max_health == 120


def test_recalculate_is_idempotent(game_data):
    character = _character(race="Mutant")
    character.stat_choices.put("Mutant", "Mutation", "mutant-mutation-0",
                               ChoiceRecord("stat_multiplier_set_50", "Strength", "mult", 1.5))
    recalculate(character, game_data)
    once = copy.deepcopy(character)
    recalculate(character, game_data)
    assert character == once
    assert character.stats["Strength"].total == 15


def test_experience_caps_follow_race_rules(game_data):
    character = _character(race="Mutant")
    character.level = 3
    recalculate(character, game_data)
    assert character.stats["Magic"].max_experience == 9
    assert character.stats["Strength"].max_experience == 7
    assert character.level_max_experience == 100

    character.race = "Elf"
    recalculate(character, game_data)
    assert character.stats["Magic"].max_experience == 5


def test_pool_maxima_scale_with_level(game_data):
    character = _character(race="Mutant")
    recalculate(character, game_data)
    assert character.max_health == 75
    assert character.max_mana == 100
    assert character.max_racial_power == 100

    set_level(character, 2)
    recalculate(character, game_data)
    assert character.max_health == 150
    assert character.max_racial_power == 200


def test_health_bonus_and_multiplier_choice(game_data):
    character = _character(race="Mutant")
    set_field(character, "health_bonus", 10)
    character.stat_choices.put("Mutant", "Mutation", "mutant-mutation-0",
                               ChoiceRecord("double_base_health", "Health", "mult", 2))
    recalculate(character, game_data)
    assert character.max_health == 160


def test_full_bar_follows_max_and_partial_bar_is_clamped(game_data):
    character = default_character(game_data, race="Dwarf")
    assert character.health == character.max_health == 120

    set_level(character, 2)
    recalculate(character, game_data)
    assert character.health == 240

    set_pool_value(character, "Health", 200)
    set_level(character, 1)
    recalculate(character, game_data)
    assert character.health == 120

    set_pool_value(character, "Health", 50)
    set_level(character, 3)
    recalculate(character, game_data)
    assert character.health == 50


def test_pool_values_are_clamped(game_data):
    character = default_character(game_data, race="")
    set_pool_value(character, "Mana", 9999)
    assert character.mana == character.max_mana
    set_pool_value(character, "RacialPower", -5)
    assert character.racial_power == 0
    with pytest.raises(UnknownOptionError):
        set_pool_value(character, "Stamina", 1)


def test_armor_class_counts_equipped_armor(game_data):
    character = _character()
    set_field(character, "armor_bonus", 2)
    add_item(character, "armor", ArmorItem(name="Helm", defense=3, equipped=True))
    add_item(character, "armor", ArmorItem(name="Spare shield", defense=5))
    recalculate(character, game_data)
    assert character.ac == 5


def test_stat_experience_rolls_over(game_data):
    character = _character()
    recalculate(character, game_data)
    set_stat_field(character, "Luck", "experience", 15)
    assert character.stats["Luck"].value == 12
    assert character.stats["Luck"].experience == 1


def test_shrunken_experience_cap_rolls_over(game_data):
    character = _character(race="Mutant")
    set_level(character, 10)
    recalculate(character, game_data)
    set_stat_field(character, "Magic", "experience", 15)
    assert character.stats["Magic"].experience == 15

    set_level(character, 1)
    recalculate(character, game_data)
    magic = character.stats["Magic"]
    assert magic.max_experience == 7
    assert (magic.value, magic.experience, magic.total) == (12, 1, 12)

    recalculate(character, game_data)
    assert (magic.value, magic.experience) == (12, 1)


def test_experience_rollover_handles_extreme_input(game_data):
    character = _character()
    recalculate(character, game_data)
    set_stat_field(character, "Luck", "experience", "inf")
    assert character.stats["Luck"].value == 10
    assert character.stats["Luck"].experience == 0

    set_stat_field(character, "Luck", "experience", 7 * 10 ** 12 + 3)
    assert character.stats["Luck"].value == 10 + 10 ** 12
    assert character.stats["Luck"].experience == 3

    add_level_experience(character, "nan")
    assert character.level == 1
    add_level_experience(character, 100 * 10 ** 9)
    assert character.level == 1 + 10 ** 9


def test_unknown_stat_or_field(game_data):
    character = _character()
    with pytest.raises(UnknownOptionError):
        set_stat_field(character, "Wisdom", "value", 3)
    with pytest.raises(UnknownOptionError):
        set_stat_field(character, "Strength", "total", 3)


def test_level_experience_rolls_over_into_levels(game_data):
    character = _character()
    add_level_experience(character, 250)
    assert character.level == 3
    assert character.level_experience == 50


def test_level_never_drops_below_one():
    character = Character()
    set_level(character, 0)
    assert character.level == 1


def test_change_race_drops_old_choices(game_data):
    character = _character(race="Demi-humans")
    character.stat_choices.put("Demi-humans", "Stat Adjustments", "demi-humans-stat_increase-0-0",
                               ChoiceRecord("stat_increase", "Strength", "add", 2))
    change_race(character, "Dwarf", game_data)
    recalculate(character, game_data)
    assert character.race == "Dwarf"
    assert len(character.stat_choices) == 0
    assert character.stats["Strength"].total == 12

    with pytest.raises(UnknownOptionError):
        change_race(character, "Gnome", game_data)


def test_classes_filter_specializations(game_data):
    character = Character()
    set_classes(character, ["Mage", "Knight", "Mage"], game_data)
    assert character.classes == ["Mage", "Knight"]

    set_specializations(character, ["Mage→Chaos", "Knight→Order", "Archer→None"], game_data)
    assert character.specializations == ["Mage→Chaos", "Knight→Order"]

    set_classes(character, ["Mage"], game_data)
    assert character.specializations == ["Mage→Chaos"]

    with pytest.raises(UnknownOptionError):
        set_classes(character, ["Bard"], game_data)


def test_weapon_damage_is_evaluated_while_in_use(game_data):
    character = _character()
    recalculate(character, game_data)
    index = add_item(character, "weapon", WeaponItem(name="Axe"))
    set_item_field(character, "weapon", index, "damage", "2d6 + Strength / 2")

    set_weapon_in_use(character, index, True)
    weapon = character.weapon_inventory[index]
    assert weapon.damage == "2d6+5"

    set_stat_field(character, "Strength", "equipment", 4)
    recalculate(character, game_data)
    assert weapon.damage == "2d6+7"

    set_weapon_in_use(character, index, False)
    assert weapon.damage == "2d6 + Strength / 2"


def test_item_fields_are_coerced(game_data):
    character = _character()
    index = add_item(character, "general")
    set_item_field(character, "general", index, "amount", "3")
    assert character.general_inventory[index].amount == 3
    with pytest.raises(UnknownOptionError):
        set_item_field(character, "general", index, "weight", 1)

    remove_item(character, "general", index)
    assert character.general_inventory == []
    with pytest.raises(UnknownOptionError):
        add_item(character, "potions")


def test_regeneration_flags_follow_choices(game_data):
    character = _character(race="Mutant")
    character.stat_choices.put("Mutant", "Mutation", "mutant-mutation-0", ChoiceRecord("natural_regen_active"))
    recalculate(character, game_data)
    assert character.natural_health_regen_active
    assert character.natural_mana_regen_active
    assert not character.health_regen_doubled

    character.stat_choices.remove("Mutant", "Mutation", "mutant-mutation-0")
    recalculate(character, game_data)
    assert not character.natural_health_regen_active


def test_default_character(game_data):
    assert game_data.default_race == "Demi-humans"
    character = default_character(game_data, rng=random.Random(3))
    assert character.race == "Demi-humans"
    assert all(MIN_ROLL_STAT <= s.value <= MAX_ROLL_STAT for s in character.stats.values())
    assert character.health == character.max_health == 100

    no_race = default_character(game_data, race="")
    assert no_race.race == ""


def test_quick_roll_stats_stays_in_range():
    character = Character()
    quick_roll_stats(character, random.Random(42))
    assert all(MIN_ROLL_STAT <= s.value <= MAX_ROLL_STAT for s in character.stats.values())
