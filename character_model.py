from __future__ import annotations

import copy
import math
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Any, Optional, Set, Tuple

from sheet_constants import (
    DEFAULT_SECTION_VISIBILITY,
    DEFAULT_STAT_MAX_EXPERIENCE,
    LEVEL_MAX_EXPERIENCE,
    ROLL_STATS,
    InventoryType,
)


def to_number(value: Any, default: float = 0) -> float:
    """Coerce form input to a finite number, falling back to ``default``."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    try:
        parsed = float(value)
    except (TypeError, ValueError, OverflowError):
        return default
    if not math.isfinite(parsed):
        return default
    if isinstance(value, float):
        return value
    return int(parsed) if parsed.is_integer() else parsed


# --- Leaf models ---

@dataclass
class Stat:
    value: float = 0
    equipment: float = 0
    temporary: float = 0
    experience: float = 0

    # Derived by the recalculation engine, never persisted
    max_experience: int = DEFAULT_STAT_MAX_EXPERIENCE
    racial_change: float = 0
    total: float = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Stat":
        return cls(
            value=to_number(data.get("value", 0)),
            equipment=to_number(data.get("equipment", 0)),
            temporary=to_number(data.get("temporary", 0)),
            experience=to_number(data.get("experience", 0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "value": self.value,
            "equipment": self.equipment,
            "temporary": self.temporary,
            "experience": self.experience,
        }


@dataclass
class WeaponItem:
    name: str = ""
    type: str = ""
    material: str = ""
    requirement: str = ""
    required_stat: str = ""
    accuracy: float = 100
    damage: str = ""
    magic_damage: str = ""
    magic_type: str = ""
    effect: str = ""
    value: float = 0
    use: bool = False
    # Formula text kept while ``damage`` shows the evaluated result
    original_damage: str = ""
    original_magic_damage: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WeaponItem":
        damage = data.get("damage", "")
        magic_damage = data.get("magicDamage", "")
        return cls(
            name=data.get("name", ""),
            type=data.get("type", ""),
            material=data.get("material", ""),
            requirement=data.get("requirement", ""),
            required_stat=data.get("requiredStat", ""),
            accuracy=to_number(data.get("accuracy", 100), 100),
            damage=damage,
            magic_damage=magic_damage,
            magic_type=data.get("magicType", ""),
            effect=data.get("effect", ""),
            value=to_number(data.get("value", 0)),
            use=bool(data.get("use", False)),
            original_damage=data.get("originalDamage", damage),
            original_magic_damage=data.get("originalMagicDamage", magic_damage),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "material": self.material,
            "requirement": self.requirement,
            "requiredStat": self.required_stat,
            "accuracy": self.accuracy,
            "damage": self.damage,
            "magicDamage": self.magic_damage,
            "magicType": self.magic_type,
            "effect": self.effect,
            "value": self.value,
            "use": self.use,
            "originalDamage": self.original_damage,
            "originalMagicDamage": self.original_magic_damage,
        }


@dataclass
class ArmorItem:
    name: str = ""
    location: str = ""
    material: str = ""
    requirement: str = ""
    required_stat: str = ""
    defense: float = 0
    magic_defense: float = 0
    magic_type: str = ""
    effect: str = ""
    value: float = 0
    equipped: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ArmorItem":
        return cls(
            name=data.get("name", ""),
            location=data.get("location", ""),
            material=data.get("material", ""),
            requirement=data.get("requirement", ""),
            required_stat=data.get("requiredStat", ""),
            defense=to_number(data.get("defense", 0)),
            magic_defense=to_number(data.get("magicDefense", 0)),
            magic_type=data.get("magicType", ""),
            effect=data.get("effect", ""),
            value=to_number(data.get("value", 0)),
            equipped=bool(data.get("equipped", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "location": self.location,
            "material": self.material,
            "requirement": self.requirement,
            "requiredStat": self.required_stat,
            "defense": self.defense,
            "magicDefense": self.magic_defense,
            "magicType": self.magic_type,
            "effect": self.effect,
            "value": self.value,
            "equipped": self.equipped,
        }


@dataclass
class GeneralItem:
    name: str = ""
    type: str = ""
    effect: str = ""
    accuracy: float = 0
    amount: float = 0
    value_per_unit: float = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GeneralItem":
        return cls(
            name=data.get("name", ""),
            type=data.get("type", ""),
            effect=data.get("effect", ""),
            accuracy=to_number(data.get("accuracy", 0)),
            amount=to_number(data.get("amount", 0)),
            value_per_unit=to_number(data.get("valuePerUnit", 0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "effect": self.effect,
            "accuracy": self.accuracy,
            "amount": self.amount,
            "valuePerUnit": self.value_per_unit,
        }


ITEM_TYPES = {
    InventoryType.WEAPON: WeaponItem,
    InventoryType.ARMOR: ArmorItem,
    InventoryType.GENERAL: GeneralItem,
}


@dataclass
class ChoiceRecord:
    """The option picked for one choice slot."""
    type: str
    stat_name: Optional[str] = None
    calc: Optional[str] = None
    value: Optional[float] = None
    label: str = ""
    level: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChoiceRecord":
        return cls(
            type=data.get("type", ""),
            stat_name=data.get("statName") or None,
            calc=data.get("calc"),
            value=None if data.get("value") is None else to_number(data["value"]),
            label=data.get("label", ""),
            level=data.get("level"),
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "type": self.type,
            "calc": self.calc,
            "value": self.value,
            "label": self.label,
        }
        if self.stat_name:
            result["statName"] = self.stat_name
        if self.level is not None:
            result["level"] = self.level
        return result


class ChoiceRegistry:
    """
    Choice slots and the stats they claim, keyed by category and passive.

    ``choices[category][passive][slot_id]`` holds the ChoiceRecord and
    ``affected[category][passive][stat_name]`` the set of slot ids claiming
    that stat. Intermediate levels are created on first write and removed
    once empty, so both mappings only ever contain live entries.
    """

    def __init__(self) -> None:
        self.choices: Dict[str, Dict[str, Dict[str, ChoiceRecord]]] = {}
        self.affected: Dict[str, Dict[str, Dict[str, Set[str]]]] = {}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ChoiceRegistry):
            return NotImplemented
        return self.choices == other.choices and self.affected == other.affected

    def __repr__(self) -> str:
        return f"ChoiceRegistry(choices={self.choices!r}, affected={self.affected!r})"

    def get(self, category: str, passive_name: str, slot_id: str) -> Optional[ChoiceRecord]:
        return self.choices.get(category, {}).get(passive_name, {}).get(slot_id)

    def claimants(self, category: str, passive_name: str, stat_name: str) -> Set[str]:
        """Slot ids currently claiming ``stat_name`` (a copy)."""
        return set(self.affected.get(category, {}).get(passive_name, {}).get(stat_name, ()))

    def slots(self, category: str, passive_name: str) -> Dict[str, ChoiceRecord]:
        return dict(self.choices.get(category, {}).get(passive_name, {}))

    def put(self, category: str, passive_name: str, slot_id: str, record: ChoiceRecord) -> None:
        """Store ``record`` for the slot and claim its stat, if it has one."""
        self.remove(category, passive_name, slot_id)
        self.choices.setdefault(category, {}).setdefault(passive_name, {})[slot_id] = record
        if record.stat_name:
            stats = self.affected.setdefault(category, {}).setdefault(passive_name, {})
            stats.setdefault(record.stat_name, set()).add(slot_id)

    def remove(self, category: str, passive_name: str, slot_id: str) -> Optional[ChoiceRecord]:
        """Drop the slot's record and its claim; returns the removed record."""
        passives = self.choices.get(category, {})
        record = passives.get(passive_name, {}).pop(slot_id, None)
        if record is None:
            return None
        if not passives[passive_name]:
            del passives[passive_name]
        if not passives:
            del self.choices[category]

        if record.stat_name:
            affected = self.affected.get(category, {})
            claims = affected.get(passive_name, {}).get(record.stat_name)
            if claims is not None:
                claims.discard(slot_id)
                if not claims:
                    del affected[passive_name][record.stat_name]
                if not affected[passive_name]:
                    del affected[passive_name]
                if not affected:
                    del self.affected[category]
        return record

    def clear_passive(self, category: str, passive_name: str) -> List[ChoiceRecord]:
        removed = list(self.choices.get(category, {}).get(passive_name, {}).values())
        self.choices.get(category, {}).pop(passive_name, None)
        self.affected.get(category, {}).pop(passive_name, None)
        if category in self.choices and not self.choices[category]:
            del self.choices[category]
        if category in self.affected and not self.affected[category]:
            del self.affected[category]
        return removed

    def clear_category(self, category: str) -> List[ChoiceRecord]:
        removed = [
            record
            for slots in self.choices.get(category, {}).values()
            for record in slots.values()
        ]
        self.choices.pop(category, None)
        self.affected.pop(category, None)
        return removed

    def __iter__(self) -> Iterator[Tuple[str, str, str, ChoiceRecord]]:
        for category, passives in self.choices.items():
            for passive_name, slots in passives.items():
                for slot_id, record in slots.items():
                    yield category, passive_name, slot_id, record

    def __len__(self) -> int:
        return sum(1 for _ in self)

    @classmethod
    def from_dict(cls, choices: Dict[str, Any], affected: Dict[str, Any]) -> "ChoiceRegistry":
        """
        Rebuild a registry from the persisted ``StatChoices``/``StatsAffected``.

        Claims are rebuilt from the choice records; ``affected`` leaves (lists)
        are read as sets and only kept where they agree with a record.
        """
        registry = cls()
        for category, passives in (choices or {}).items():
            for passive_name, slots in passives.items():
                for slot_id, data in slots.items():
                    record = ChoiceRecord.from_dict(data)
                    if record.stat_name:
                        listed = set(
                            (affected or {}).get(category, {}).get(passive_name, {}).get(record.stat_name, [])
                        )
                        if listed and slot_id not in listed:
                            continue
                    registry.put(category, passive_name, slot_id, record)
        return registry

    def choices_to_dict(self) -> Dict[str, Any]:
        return {
            category: {
                passive_name: {slot_id: record.to_dict() for slot_id, record in slots.items()}
                for passive_name, slots in passives.items()
            }
            for category, passives in self.choices.items()
        }

    def affected_to_dict(self) -> Dict[str, Any]:
        """``StatsAffected`` with every slot-id set written as a sorted list."""
        return {
            category: {
                passive_name: {stat: sorted(slot_ids) for stat, slot_ids in stats.items()}
                for passive_name, stats in passives.items()
            }
            for category, passives in self.affected.items()
        }


# --- Root model ---

@dataclass
class Character:
    name: str = ""
    level: int = 1
    level_experience: float = 0
    level_max_experience: int = LEVEL_MAX_EXPERIENCE
    race: str = ""

    classes: List[str] = field(default_factory=list)
    specializations: List[str] = field(default_factory=list)

    stats: Dict[str, Stat] = field(default_factory=lambda: {name: Stat() for name in ROLL_STATS})

    health: float = 0
    mana: float = 0
    racial_power: float = 0
    health_bonus: float = 0
    armor_bonus: float = 0

    # Derived by the recalculation engine, never persisted
    max_health: int = 0
    max_mana: int = 0
    max_racial_power: int = 0
    ac: float = 0
    natural_health_regen_active: bool = False
    natural_mana_regen_active: bool = False
    health_regen_doubled: bool = False
    mana_regen_doubled: bool = False

    skills: str = ""
    personal_notes: str = ""

    weapon_inventory: List[WeaponItem] = field(default_factory=list)
    armor_inventory: List[ArmorItem] = field(default_factory=list)
    general_inventory: List[GeneralItem] = field(default_factory=list)

    stat_choices: ChoiceRegistry = field(default_factory=ChoiceRegistry)
    section_visibility: Dict[str, bool] = field(default_factory=lambda: dict(DEFAULT_SECTION_VISIBILITY))

    has_unsaved_changes: bool = field(default=False, compare=False, repr=False)

    def inventory(self, inventory_type: InventoryType | str) -> list:
        kind = InventoryType(inventory_type)
        if kind is InventoryType.WEAPON:
            return self.weapon_inventory
        if kind is InventoryType.ARMOR:
            return self.armor_inventory
        return self.general_inventory

    def copy(self) -> "Character":
        return copy.deepcopy(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Character":
        """
        Build a character from a persisted record.

        Missing keys fall back to defaults; derived fields are left for the
        recalculation engine.
        """
        stats = {name: Stat() for name in ROLL_STATS}
        for name in ROLL_STATS:
            if isinstance(data.get(name), dict):
                stats[name] = Stat.from_dict(data[name])

        visibility = dict(DEFAULT_SECTION_VISIBILITY)
        visibility.update(data.get("sectionVisibility") or {})

        return cls(
            name=data.get("name", ""),
            level=max(1, int(to_number(data.get("level", 1), 1))),
            level_experience=to_number(data.get("levelExperience", 0)),
            level_max_experience=int(to_number(data.get("levelMaxExperience", LEVEL_MAX_EXPERIENCE), LEVEL_MAX_EXPERIENCE)),
            race=data.get("race") or "",
            classes=_unique(data.get("class", [])),
            specializations=_unique(data.get("specialization", [])),
            stats=stats,
            health=to_number((data.get("Health") or {}).get("value", 0)),
            mana=to_number((data.get("Mana") or {}).get("value", 0)),
            racial_power=to_number(data.get("racialPower", 0)),
            health_bonus=to_number(data.get("healthBonus", 0)),
            armor_bonus=to_number(data.get("armorBonus", 0)),
            skills=data.get("skills", ""),
            personal_notes=data.get("personalNotes", ""),
            weapon_inventory=[WeaponItem.from_dict(i) for i in data.get("weaponInventory") or []],
            armor_inventory=[ArmorItem.from_dict(i) for i in data.get("armorInventory") or []],
            general_inventory=[GeneralItem.from_dict(i) for i in data.get("generalInventory") or []],
            stat_choices=ChoiceRegistry.from_dict(data.get("StatChoices") or {}, data.get("StatsAffected") or {}),
            section_visibility=visibility,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Persisted record: derived fields are left out."""
        result: Dict[str, Any] = {
            "name": self.name,
            "class": list(self.classes),
            "specialization": list(self.specializations),
            "race": self.race,
            "level": self.level,
            "levelExperience": self.level_experience,
            "levelMaxExperience": self.level_max_experience,
            "Health": {"value": self.health},
            "Mana": {"value": self.mana},
            "racialPower": self.racial_power,
            "healthBonus": self.health_bonus,
            "armorBonus": self.armor_bonus,
            "skills": self.skills,
            "personalNotes": self.personal_notes,
            "weaponInventory": [i.to_dict() for i in self.weapon_inventory],
            "armorInventory": [i.to_dict() for i in self.armor_inventory],
            "generalInventory": [i.to_dict() for i in self.general_inventory],
            "sectionVisibility": dict(self.section_visibility),
            "StatChoices": self.stat_choices.choices_to_dict(),
            "StatsAffected": self.stat_choices.affected_to_dict(),
        }
        for name, stat in self.stats.items():
            result[name] = stat.to_dict()
        return result


def _unique(values: Any) -> List[str]:
    if not isinstance(values, list):
        return []
    result: List[str] = []
    for value in values:
        if value not in result:
            result.append(value)
    return result
