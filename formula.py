"""
Formula evaluation for weapon damage and other free-text sheet fields.

Formulas mix numbers, stat labels and dice, e.g. ``"2d6 + Strength / 2"``.
Stat labels are replaced with their current values, the arithmetic is
evaluated, and dice terms are echoed back in front of the numeric result:

    evaluate("2d6 + Strength / 2", {"Strength": 10})  ->  "2d6+5"
    evaluate("Strength * 1.5", {"Strength": 5})        ->  "7.5"
    evaluate("swing wildly", {"Strength": 10})         ->  "swing wildly"

Anything that cannot be evaluated is returned unchanged.
"""

import logging
import re
from typing import Any, Dict, List, Mapping, Optional, Tuple

from errors import FormulaParseError
from sheet_constants import ROLL_STATS

logger = logging.getLogger(__name__)


_TOKEN = re.compile(
    r"\s*(?:"
    r"(?P<dice>\d*[dD]\d+)"
    r"|(?P<number>\d+(?:\.\d*)?|\.\d+)"
    r"|(?P<op>[-+*/%()])"
    r")"
)


def _tokenize(text: str, formula: str) -> List[Tuple[str, str]]:
    tokens = []
    pos = 0
    text = text.rstrip()
    while pos < len(text):
        match = _TOKEN.match(text, pos)
        if match is None or match.end() == pos:
            raise FormulaParseError(formula, f"unexpected text {text[pos:].strip()!r}")
        kind = match.lastgroup
        tokens.append((kind, match.group(kind)))
        pos = match.end()
    return tokens


class _Parser:
    """
    Recursive descent over ``+ - * / %``, parentheses and unary signs.

    Dice are only accepted as whole additive terms of the outermost
    expression; they are collected in ``dice`` rather than evaluated.
    """

    def __init__(self, tokens: List[Tuple[str, str]], formula: str):
        self.tokens = tokens
        self.formula = formula
        self.pos = 0
        self.dice: List[str] = []

    def peek(self) -> Optional[Tuple[str, str]]:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def take(self) -> Tuple[str, str]:
        token = self.peek()
        if token is None:
            raise FormulaParseError(self.formula, "unexpected end of formula")
        self.pos += 1
        return token

    def error(self, reason: str) -> FormulaParseError:
        return FormulaParseError(self.formula, reason)

    def parse(self) -> float:
        result = self.expression(top_level=True)
        if self.peek() is not None:
            raise self.error(f"unexpected {self.peek()[1]!r}")
        return result

    def expression(self, top_level: bool = False) -> float:
        result = self.additive_term(top_level, sign="+")
        while self.peek() in (("op", "+"), ("op", "-")):
            sign = self.take()[1]
            result += self.additive_term(top_level, sign)
        return result

    def additive_term(self, top_level: bool, sign: str) -> float:
        token = self.peek()
        if top_level and token is not None and token[0] == "dice":
            self.take()
            following = self.peek()
            if following is not None and following not in (("op", "+"), ("op", "-")):
                raise self.error("dice can only be added or subtracted")
            self.dice.append(f"{sign}{token[1].lower()}")
            return 0
        value = self.term()
        return -value if sign == "-" else value

    def term(self) -> float:
        result = self.factor()
        while self.peek() in (("op", "*"), ("op", "/"), ("op", "%")):
            op = self.take()[1]
            right = self.factor()
            if op == "*":
                result *= right
            elif right == 0:
                raise self.error("division by zero")
            elif op == "/":
                result /= right
            else:
                result %= right
        return result

    def factor(self) -> float:
        kind, text = self.take()
        if kind == "number":
            return float(text)
        if (kind, text) == ("op", "-"):
            return -self.factor()
        if (kind, text) == ("op", "+"):
            return self.factor()
        if (kind, text) == ("op", "("):
            result = self.expression()
            if self.take() != ("op", ")"):
                raise self.error("missing closing parenthesis")
            return result
        if kind == "dice":
            raise self.error("dice can only be added or subtracted")
        raise self.error(f"unexpected {text!r}")


def format_number(value: float) -> str:
    """Integral results lose their decimal point, others keep two places at most."""
    rounded = round(value, 2)
    if float(rounded).is_integer():
        return str(int(rounded))
    return str(rounded)


def substitute(formula: str, bindings: Mapping[str, float]) -> str:
    """Replace whole-word stat labels (any case) with their values."""
    text = formula
    # Longest labels first so "MaxHealth" is not eaten by "Health"
    for label in sorted(bindings, key=len, reverse=True):
        value = bindings[label]
        replacement = format_number(value) if isinstance(value, (int, float)) else str(value)
        if replacement.startswith("-"):
            replacement = f"({replacement})"
        text = re.sub(rf"\b{re.escape(label)}\b", replacement, text, flags=re.IGNORECASE)
    return text


def parse_formula(formula: str, bindings: Mapping[str, float]) -> str:
    """
    Evaluate ``formula`` and render the result.

    Raises:
        FormulaParseError: if the formula is not valid arithmetic.
    """
    text = substitute(formula, bindings)
    tokens = _tokenize(text, formula)
    if not tokens:
        raise FormulaParseError(formula, "empty formula")

    parser = _Parser(tokens, formula)
    result = parser.parse()

    if not parser.dice:
        return format_number(result)

    dice = "".join(parser.dice)
    if dice.startswith("+"):
        dice = dice[1:]
    remainder = round(result, 2)
    if remainder > 0:
        return f"{dice}+{format_number(remainder)}"
    if remainder < 0:
        return f"{dice}-{format_number(-remainder)}"
    return dice


def evaluate(formula: Any, bindings: Mapping[str, float]) -> str:
    """Evaluate a sheet formula, returning it unchanged when it cannot be."""
    if formula is None:
        return ""
    if not isinstance(formula, str):
        return str(formula)
    if not formula.strip():
        return formula
    try:
        return parse_formula(formula, bindings)
    except FormulaParseError as e:
        logger.warning("%s", e)
        return formula


def formula_bindings(character) -> Dict[str, float]:
    """Labels usable in formulas, mapped to the character's current values."""
    bindings: Dict[str, float] = {
        name: character.stats[name].total for name in ROLL_STATS if name in character.stats
    }
    bindings.update({
        "hp": character.health,
        "Health": character.health,
        "MaxHp": character.max_health,
        "MaxHealth": character.max_health,
        "MagicPoints": character.mana,
        "Mana": character.mana,
        "MaxMana": character.max_mana,
        "RacialPower": character.racial_power,
        "MaxRacialPower": character.max_racial_power,
        "AC": character.ac,
        "Armor": character.ac,
    })
    return bindings
