import sys
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from gamedata import DATA_DIR, GameData, ManualPassive, PassiveOption, expand_stat_groups, format_label, slugify
from sheet_constants import OTHER_STATS, ROLL_STATS


@pytest.fixture(scope="module")
def game_data():
    return GameData.load(str(DATA_DIR))


def test_tables_load(game_data):
    assert list(game_data.races) == ["Demi-humans", "Dwarf", "Elf", "Human", "Mutant"]
    assert "Martial artist" in game_data.classes
    assert game_data.get_race("") is None
    assert game_data.get_race("Gnome") is None
    assert game_data.manual_passives("Human") == {}


def test_format_label():
    assert format_label("+{0} to a stat", 2) == "+2 to a stat"
    assert format_label("-{0}% to a stat", 0.5) == "-50% to a stat"
    assert format_label("{0} and {1}", 1.25) == "1.25 and null"


def test_expand_stat_groups():
    assert expand_stat_groups(["Roll"]) == ROLL_STATS
    assert expand_stat_groups(["Health", "Other"]) == OTHER_STATS
    assert expand_stat_groups(["Luck", "Luck"]) == ["Luck"]


def test_slugify():
    assert slugify("Demi-humans") == "demi-humans"
    assert slugify("Stat Adjustments") == "stat-adjustments"


def test_templated_choices_expand():
    options = PassiveOption.expand({
        "type": "stat_increase",
        "label": "+{0} to a stat",
        "options": {"values": [3, 1], "counts": [1, 2]},
        "applicable_stats": ["Roll"],
    })
    assert [(o.value, o.count, o.label) for o in options] == [
        (3, 1, "+3 to a stat"),
        (1, 2, "+1 to a stat"),
    ]
    assert all(o.needs_stat for o in options)


def test_level_gated_passive(game_data):
    mutation = game_data.get_race("Mutant").manual_passives["Mutation"]
    assert mutation.is_level_gated
    assert mutation.available_points(0) == 0
    assert mutation.available_points(10) == 3
    assert mutation.find_option("regen_doubled").label == "Doubled regeneration"
    assert mutation.find_option("fly") is None


def test_passive_round_trip():
    passive = ManualPassive.from_dict("Gifts", {
        "description": "d",
        "levels": {"1": 1},
        "options": [{"type": "gift", "label": "Gift", "value": 1, "applicable_stats": ["Luck"]}],
    })
    again = ManualPassive.from_dict("Gifts", passive.to_dict())
    assert again == passive


def test_race_experience_rules(game_data):
    mutant = game_data.get_race("Mutant")
    assert mutant.max_experience("Magic", 1) == 7
    assert mutant.max_experience("Magic", 4) == 10
    assert mutant.max_experience("Luck", 4) == 7
    assert mutant.multiplier("Health") == 0.75
    assert mutant.bonus("Luck") == 0


def test_available_specializations(game_data):
    assert game_data.available_specializations(["Knight", "Mage"]) == [
        "Knight→Order", "Mage→Chaos", "Mage→Dark", "Mage→Thunder",
    ]
    assert game_data.get_class_specs("Archer") == []
    assert game_data.available_specializations(["Bard"]) == []


def test_multiplier_labels_show_the_change(game_data):
    mutant = game_data.get_race("Mutant")
    assert mutant.manual_passives["Mutation"].find_option("stat_multiplier_set_50").label == "+50% to a stat"
    assert mutant.manual_passives["Degeneration"].find_option(
        "stat_multiplier_set_minus_50").label == "-50% to a stat"


def test_bundled_tables_are_the_default():
    bundled = GameData.load()
    assert DATA_DIR.parent.name == "gamedata"
    assert list(bundled.races) == ["Demi-humans", "Dwarf", "Elf", "Human", "Mutant"]
