"""
Validation for persisted character records.

Checks the shape of a record before it is turned into a Character. Each
validator returns a ValidationResult with success status and messages;
structural problems are errors, references the race/class tables do not
know are warnings.

Usage:
    from validation import RecordValidator

    validator = RecordValidator(game_data)
    result = validator.validate_payload(json.load(f))
    if not result.valid:
        print(result.errors)
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from gamedata import GameData
from sheet_constants import ROLL_STATS, STAT_FIELDS, Calc


@dataclass
class ValidationResult:
    """Result of a validation check."""
    valid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def add_error(self, message: str):
        """Add an error and mark as invalid."""
        self.errors.append(message)
        self.valid = False

    def add_warning(self, message: str):
        """Add a warning (doesn't affect validity)."""
        self.warnings.append(message)

    def merge(self, other: "ValidationResult", prefix: str = ""):
        """Merge another result into this one."""
        if not other.valid:
            self.valid = False
        self.errors.extend(prefix + e for e in other.errors)
        self.warnings.extend(prefix + w for w in other.warnings)

    def __bool__(self) -> bool:
        return self.valid


INVENTORY_KEYS = ("weaponInventory", "armorInventory", "generalInventory")
TEXT_KEYS = ("name", "race", "skills", "personalNotes")
NUMBER_KEYS = ("levelExperience", "levelMaxExperience", "racialPower", "healthBonus", "armorBonus")


def _is_number(value: Any) -> bool:
    """Finite numbers, or text that parses as one."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    if isinstance(value, (float, str)):
        try:
            return math.isfinite(float(value))
        except (ValueError, OverflowError):
            return False
    return False


class RecordValidator:
    """
    Validates persisted records against the expected shape.

    With ``game_data`` the race, classes and specializations are also checked
    against the reference tables.
    """

    def __init__(self, game_data: Optional[GameData] = None):
        self.game_data = game_data

    # =========================================================================
    # PAYLOADS
    # =========================================================================

    def validate_payload(self, payload: Any) -> ValidationResult:
        """A list of records, or a single legacy record."""
        result = ValidationResult()
        if isinstance(payload, dict):
            result.merge(self.validate_record(payload))
        elif isinstance(payload, list):
            if not payload:
                result.add_error("No characters found in file")
            for index, record in enumerate(payload):
                result.merge(self.validate_record(record), prefix=f"Character {index + 1}: ")
        else:
            result.add_error(f"Expected a list of characters, got {type(payload).__name__}")
        return result

    # =========================================================================
    # RECORDS
    # =========================================================================

    def validate_record(self, record: Any) -> ValidationResult:
        result = ValidationResult()
        if not isinstance(record, dict):
            result.add_error(f"Character record must be an object, got {type(record).__name__}")
            return result

        for key in TEXT_KEYS:
            if key in record and record[key] is not None and not isinstance(record[key], str):
                result.add_error(f"{key} must be text")

        level = record.get("level", 1)
        if not _is_number(level) or float(level) < 1:
            result.add_error(f"Invalid level: {level!r}")

        for key in NUMBER_KEYS:
            if key in record and not _is_number(record[key]):
                result.add_error(f"{key} must be a number, got {record[key]!r}")

        result.merge(self.validate_stats(record))
        result.merge(self.validate_pools(record))
        result.merge(self.validate_inventories(record))
        result.merge(self.validate_choices(record))

        visibility = record.get("sectionVisibility", {})
        if not isinstance(visibility, dict):
            result.add_error("sectionVisibility must be an object")

        result.merge(self.validate_references(record))
        return result

    def validate_stats(self, record: Dict[str, Any]) -> ValidationResult:
        result = ValidationResult()
        for name in ROLL_STATS:
            if name not in record:
                result.add_warning(f"{name} missing, using defaults")
                continue
            stat = record[name]
            if not isinstance(stat, dict):
                result.add_error(f"{name} must be an object")
                continue
            if "value" not in stat:
                result.add_error(f"{name} is missing its value")
            for key in STAT_FIELDS:
                if key in stat and not _is_number(stat[key]):
                    result.add_error(f"{name}.{key} must be a number, got {stat[key]!r}")
        return result

    def validate_pools(self, record: Dict[str, Any]) -> ValidationResult:
        result = ValidationResult()
        for key in ("Health", "Mana"):
            if key not in record:
                continue
            pool = record[key]
            if not isinstance(pool, dict) or not _is_number(pool.get("value", 0)):
                result.add_error(f"{key} must be an object with a numeric value")
        return result

    def validate_inventories(self, record: Dict[str, Any]) -> ValidationResult:
        result = ValidationResult()
        for key in INVENTORY_KEYS:
            items = record.get(key, [])
            if not isinstance(items, list):
                result.add_error(f"{key} must be a list")
                continue
            for index, item in enumerate(items):
                if not isinstance(item, dict):
                    result.add_error(f"{key}[{index}] must be an object")
        return result

    def validate_choices(self, record: Dict[str, Any]) -> ValidationResult:
        """``StatChoices`` and ``StatsAffected`` are three levels deep."""
        result = ValidationResult()

        def walk(tree: Any, name: str):
            if not isinstance(tree, dict):
                result.add_error(f"{name} must be an object")
                return
            for category, passives in tree.items():
                if not isinstance(passives, dict):
                    result.add_error(f"{name}.{category} must be an object")
                    continue
                for passive_name, leaves in passives.items():
                    if not isinstance(leaves, dict):
                        result.add_error(f"{name}.{category}.{passive_name} must be an object")
                        continue
                    yield category, passive_name, leaves

        calcs = [c.value for c in Calc]
        # (category, passive, stat) -> slot ids whose record targets that stat
        claims: Dict[tuple, List[str]] = {}
        for category, passive_name, slots in walk(record.get("StatChoices", {}), "StatChoices"):
            for slot_id, choice in slots.items():
                path = f"StatChoices.{category}.{passive_name}.{slot_id}"
                if not isinstance(choice, dict) or not choice.get("type"):
                    result.add_error(f"{path} must be an object with a type")
                    continue
                if choice.get("value") is not None and not _is_number(choice["value"]):
                    result.add_error(f"{path}.value must be a number")
                if choice.get("calc") is not None and choice["calc"] not in calcs:
                    result.add_error(f"{path}.calc must be one of {calcs}")
                if choice.get("statName") and not isinstance(choice["statName"], str):
                    result.add_error(f"{path}.statName must be text")
                elif choice.get("statName"):
                    claims.setdefault((category, passive_name, choice["statName"]), []).append(slot_id)

        for (category, passive_name, stat_name), slot_ids in claims.items():
            if len(slot_ids) > 1:
                result.add_error(
                    f"StatChoices.{category}.{passive_name}: {stat_name} is claimed by "
                    f"more than one slot ({', '.join(sorted(slot_ids))})"
                )

        for category, passive_name, stats in walk(record.get("StatsAffected", {}), "StatsAffected"):
            for stat_name, slot_ids in stats.items():
                path = f"StatsAffected.{category}.{passive_name}.{stat_name}"
                if not isinstance(slot_ids, list) or not all(isinstance(s, str) for s in slot_ids):
                    result.add_error(f"{path} must be a list of slot ids")
                    continue
                recorded = set(claims.get((category, passive_name, stat_name), []))
                for slot_id in slot_ids:
                    if slot_id not in recorded:
                        result.add_error(f"{path} names {slot_id}, which has no choice for {stat_name}")
        return result

    def validate_references(self, record: Dict[str, Any]) -> ValidationResult:
        result = ValidationResult()
        for key in ("class", "specialization"):
            values = record.get(key, [])
            if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
                result.add_error(f"{key} must be a list of names")
                return result

        if self.game_data is None:
            return result

        race = record.get("race") or ""
        if race and race not in self.game_data.races:
            result.add_warning(f"Unknown race: {race}")
        for class_name in record.get("class", []):
            if class_name not in self.game_data.classes:
                result.add_warning(f"Unknown class: {class_name}")
        available = set(self.game_data.available_specializations(record.get("class", [])))
        for spec in record.get("specialization", []):
            if spec not in available:
                result.add_warning(f"Specialization {spec} is not offered by the chosen classes")
        return result
