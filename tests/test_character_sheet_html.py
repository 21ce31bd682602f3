import sys
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from character_model import Character, Stat, WeaponItem
from character_sheet_html import CharacterSheetHTML
from gamedata import DATA_DIR, GameData
from stat_manager import recalculate


@pytest.fixture(scope="module")
def game_data():
    return GameData.load(str(DATA_DIR))


@pytest.fixture
def character(game_data):
    character = Character(name="Aria <the Bold>", race="Dwarf", classes=["Knight"],
                          specializations=["Knight→Order"], skills="Smithing")
    character.stats["Strength"] = Stat(value=10)
    character.weapon_inventory.append(WeaponItem(name="Hammer", damage="2d6 + Strength / 2"))
    recalculate(character, game_data)
    return character


def test_render_shows_sheet_values(character):
    html = CharacterSheetHTML().render_html(character)
    assert "Aria &lt;the Bold&gt;" in html
    assert "Knight→Order" in html
    assert "Smithing" in html
    # Strength 10 with the dwarf multiplier totals 12
    assert "2d6+6" in html
    assert f"{character.health} / {character.max_health}" in html


def test_hidden_sections_are_left_out(character):
    character.section_visibility["weapon-inventory-content"] = False
    html = CharacterSheetHTML().render_html(character)
    assert "Hammer" not in html
    assert 'id="player-stats"' in html


def test_save_html(character, tmp_path):
    out = tmp_path / "sheet.html"
    CharacterSheetHTML().save_html(character, out)
    assert out.read_text(encoding="utf-8").startswith("<!DOCTYPE html>")


def test_custom_template(character, tmp_path):
    template = tmp_path / "mini.html"
    template.write_text("{{ character.name }}|{% for name, s in character.stats %}{{ s.total }},{% endfor %}",
                        encoding="utf-8")
    html = CharacterSheetHTML(template_path=str(template)).render_html(character)
    assert html.startswith("Aria &lt;the Bold&gt;|12,")
