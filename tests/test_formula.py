import sys
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from character_model import Character, Stat
from errors import FormulaParseError
from formula import evaluate, format_number, formula_bindings, parse_formula


@pytest.mark.parametrize("formula, expected", [
    ("1 + 2", "3"),
    ("(1 + 2) * 3", "9"),
    ("-3 + 5", "2"),
    ("10 % 4", "2"),
    ("7 / 2", "3.5"),
    ("10 / 3", "3.33"),
    ("2 * -(1 + 1)", "-4"),
])
def test_plain_arithmetic(formula, expected):
    assert evaluate(formula, {}) == expected


def test_stat_labels_are_substituted():
    assert evaluate("Strength * 1.5", {"Strength": 5}) == "7.5"
    assert evaluate("strength + 1", {"Strength": 10}) == "11"
    assert evaluate("STRENGTH/2", {"Strength": 10}) == "5"


def test_negative_stat_values_keep_their_sign():
    assert evaluate("Strength * 2", {"Strength": -3}) == "-6"


def test_longer_labels_are_not_split():
    bindings = {"Health": 40, "MaxHealth": 100}
    assert evaluate("MaxHealth - Health", bindings) == "60"


def test_dice_are_echoed_with_numeric_remainder():
    assert evaluate("2d6 + Strength / 2", {"Strength": 10}) == "2d6+5"
    assert evaluate("2d6 - 1", {}) == "2d6-1"
    assert evaluate("1d8", {}) == "1d8"
    assert evaluate("1d4 + 2 - 2", {}) == "1d4"
    assert evaluate("1d4 - Luck", {"Luck": 2}) == "1d4-2"
    assert evaluate("3 + 1d6", {}) == "1d6+3"
    assert evaluate("1d6 + 1d4 + 1", {}) == "1d6+1d4+1"


def test_unparseable_formulas_are_returned_unchanged():
    assert evaluate("swing wildly", {"Strength": 10}) == "swing wildly"
    assert evaluate("Luck + 2", {}) == "Luck + 2"
    assert evaluate("Strength / 0", {"Strength": 10}) == "Strength / 0"
    assert evaluate("2d6 * 2", {}) == "2d6 * 2"
    assert evaluate("(2d6 + 1)", {}) == "(2d6 + 1)"
    assert evaluate("1 +", {}) == "1 +"
    assert evaluate("(1 + 2", {}) == "(1 + 2"


def test_non_string_input():
    assert evaluate(None, {}) == ""
    assert evaluate(12, {}) == "12"
    assert evaluate("", {}) == ""


def test_parse_formula_raises_on_bad_input():
    with pytest.raises(FormulaParseError) as exc:
        parse_formula("Strength ^ 2", {"Strength": 3})
    assert exc.value.formula == "Strength ^ 2"
    with pytest.raises(ValueError):
        parse_formula("", {})


def test_format_number():
    assert format_number(2.0) == "2"
    assert format_number(2.5) == "2.5"
    assert format_number(1 / 3) == "0.33"


def test_formula_bindings_use_totals_and_pools():
    character = Character(health=40, max_health=100, mana=7, max_mana=50, ac=3)
    character.stats["Strength"] = Stat(value=10, total=12)

    bindings = formula_bindings(character)
    assert bindings["Strength"] == 12
    assert bindings["hp"] == 40
    assert bindings["MaxHp"] == 100
    assert bindings["MagicPoints"] == 7
    assert bindings["Armor"] == 3
    assert evaluate("MaxHp - hp + Strength", bindings) == "72"
