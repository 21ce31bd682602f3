import random
import sys
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from errors import InvalidLevelTransition
from gamedata import DATA_DIR, GameData
from session import SheetSession

DEMI = "Demi-humans"
ADJUST = "Stat Adjustments"
FIRST_SLOT = "demi-humans-stat_increase-0-0"
SECOND_SLOT = "demi-humans-stat_increase-0-1"


@pytest.fixture(scope="module")
def game_data():
    return GameData.load(str(DATA_DIR))


@pytest.fixture
def session(game_data):
    return SheetSession(game_data, rng=random.Random(11))


def _record(**overrides):
    record = {"name": "Loaded", "level": 1, "race": ""}
    for name in ("Strength", "Agility", "Magic", "Luck", "Crafting", "Intelligence",
                 "Intimidation", "Charisma", "Negotiation"):
        record[name] = {"value": 10}
    record.update(overrides)
    return record


def test_new_session_has_one_character(session):
    assert [c.name for c in session.characters] == ["Character 1"]
    assert session.current.race == DEMI
    assert not session.has_unsaved_changes
    assert len(session.history) == 1


def test_revert_after_load_is_a_no_op(session):
    assert session.load_payload([_record()])
    before = session.to_payload()

    result = session.revert()
    assert not result.ok
    assert result.message == "No previous state to revert to."
    assert session.to_payload() == before
    assert session.current.stats["Strength"].total == 10


def test_edits_can_be_reverted_and_replayed(session):
    session.load_payload([_record()])
    assert session.set_stat("Strength", "equipment", 3)
    assert session.current.stats["Strength"].total == 13
    assert session.current.has_unsaved_changes

    assert session.revert()
    assert session.current.stats["Strength"].total == 10
    assert session.forward()
    assert session.current.stats["Strength"].total == 13
    assert session.forward().message == "No future state to move to."


def test_new_edit_after_revert_discards_future(session):
    session.load_payload([_record()])
    session.set_stat("Luck", "value", 12)
    session.set_stat("Luck", "value", 14)
    session.revert()
    session.set_stat("Luck", "temporary", 1)
    assert not session.history.can_forward
    assert session.current.stats["Luck"].total == 13


def test_choice_conflict_is_reported(session):
    session.load_payload([_record(race=DEMI)])
    assert session.set_choice(DEMI, ADJUST, FIRST_SLOT, "stat_increase", "Strength")
    assert session.current.stats["Strength"].total == 12

    history_length = len(session.history)
    result = session.set_choice(DEMI, ADJUST, SECOND_SLOT, "stat_increase", "Strength")
    assert not result.ok
    assert "already been chosen" in result.message
    assert len(session.history) == history_length

    session.clear_choice(DEMI, ADJUST, FIRST_SLOT)
    assert session.set_choice(DEMI, ADJUST, SECOND_SLOT, "stat_increase", "Strength")
    assert session.current.stats["Strength"].total == 12


def test_level_decrease_returns_warnings(session):
    session.load_payload([_record(race="Mutant", level=5)])
    session.set_choice("Mutant", "Mutation", "mutant-mutation-1", "stat_multiplier_set_50", "Magic")

    result = session.set_level(3)
    assert result.ok
    assert len(result.warnings) == 1
    assert isinstance(result.warnings[0], InvalidLevelTransition)
    assert session.current.level == 3
    assert session.current.stats["Magic"].total == 15


def test_rejected_edits_leave_state_alone(session):
    history_length = len(session.history)
    result = session.set_stat("Wisdom", "value", 3)
    assert not result.ok
    assert not session.remove_item("weapon", 4).ok
    assert not session.change_race("Gnome").ok
    assert len(session.history) == history_length
    assert not session.has_unsaved_changes


def test_change_race_through_session(session):
    session.set_choice(DEMI, ADJUST, FIRST_SLOT, "stat_increase", "Strength")
    assert session.change_race("Dwarf")
    assert session.current.race == "Dwarf"
    assert len(session.current.stat_choices) == 0


def test_inventory_edits(session):
    assert session.add_item("weapon")
    session.set_item_field("weapon", 0, "damage", "1d6 + 2")
    session.set_weapon_in_use(0, True)
    assert session.current.weapon_inventory[0].damage == "1d6+2"
    session.set_weapon_in_use(0, False)
    assert session.current.weapon_inventory[0].damage == "1d6 + 2"


def test_character_list(session):
    session.add_character()
    assert [c.name for c in session.characters] == ["Character 1", "Character 2"]
    assert session.current_index == 1

    assert not session.switch_character(5)
    assert session.switch_character(0)
    session.set_field("name", "Aria")

    session.switch_character(1)
    session.delete_current()
    assert [c.name for c in session.characters] == ["Aria"]
    assert session.current_index == 0

    session.delete_current()
    assert len(session.characters) == 1
    assert session.current.name == "Character 1"

    session.revert()
    assert session.current.name == "Aria"


def test_failed_load_keeps_current_characters(session):
    session.set_field("name", "Keep me")
    result = session.load_payload([{"Strength": "ten"}])
    assert not result.ok
    assert session.current.name == "Keep me"


def test_save_and_load_file(session, game_data, tmp_path):
    session.set_field("skills", "Smithing")
    assert session.has_unsaved_changes
    path = tmp_path / "sheet.json"
    session.save_file(path)
    assert not session.has_unsaved_changes

    other = SheetSession(game_data)
    assert other.load_file(path)
    assert other.current.skills == "Smithing"
    assert other.to_payload() == session.to_payload()
    assert not other.load_file(tmp_path / "missing.json").ok


def test_choice_value_given_as_text(session):
    session.load_payload([_record(race=DEMI)])
    history_length = len(session.history)
    assert session.set_choice(DEMI, ADJUST, FIRST_SLOT, "stat_increase", "Strength", value="2")
    assert session.current.stats["Strength"].total == 12
    assert len(session.history) == history_length + 1

    result = session.set_choice(DEMI, ADJUST, SECOND_SLOT, "stat_increase", "Agility", calc="pow")
    assert not result.ok
    assert session.current.stat_choices.claimants(DEMI, ADJUST, "Agility") == set()
    assert len(session.history) == history_length + 1
