"""
Choice Allocator - racial passive choice slots and the stats they claim.

A stat can be the target of at most one slot per (category, passive). The
category is the race name the passive belongs to.

Two slot policies exist:
- fixed-count passives grant ``count`` slots per listed choice
- level-gated passives grant a number of slots that steps up with level

Usage:
    from choice_allocator import set_choice, clear_choice, fixed_count_slots

    slots = fixed_count_slots(game_data.get_race("Demi-humans"), "Stat Adjustments")
    slot_id, option = slots[0]
    set_choice(character, "Demi-humans", "Stat Adjustments", slot_id,
               option.type, "Strength", game_data=game_data)
"""

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from character_model import Character, ChoiceRecord, to_number
from errors import InvalidLevelTransition, StatAlreadyClaimed, UnknownOptionError
from gamedata import GameData, ManualPassive, PassiveOption, Race, slugify
from sheet_constants import Calc
from stat_manager import recalculate

logger = logging.getLogger(__name__)


@dataclass
class ChoiceResult:
    """Outcome of assigning or clearing one slot."""
    slot_id: str
    record: Optional[ChoiceRecord] = None
    previous: Optional[ChoiceRecord] = None
    message: str = ""


# -----------------------------------------------------------------------------
# Slot policies
# -----------------------------------------------------------------------------

def get_passive(game_data: GameData, category: str, passive_name: str) -> ManualPassive:
    race = game_data.get_race(category)
    if race is None:
        raise UnknownOptionError(f"Unknown race: {category}")
    passive = race.manual_passives.get(passive_name)
    if passive is None:
        raise UnknownOptionError(
            f"Unknown passive: {passive_name}. Options: {list(race.manual_passives)}"
        )
    return passive


def fixed_count_slots(race: Race, passive_name: str) -> List[Tuple[str, PassiveOption]]:
    """
    One (slot id, option) pair per slot a fixed-count passive grants.

    Slot ids are stable: ``<race>-<option type>-<choice index>-<n>``.
    """
    passive = race.manual_passives.get(passive_name)
    if passive is None:
        return []
    slots = []
    for index, option in enumerate(passive.choices):
        for n in range(option.count):
            slots.append((f"{race.slug}-{option.type}-{index}-{n}", option))
    return slots


def resolve_option(game_data: GameData, category: str, passive_name: str,
                   slot_id: str, option_type: str) -> PassiveOption:
    """
    The option definition behind ``option_type`` for a slot.

    Fixed-count slots resolve through their slot id, since one passive may
    list the same option type with different values.
    """
    passive = get_passive(game_data, category, passive_name)
    for fixed_id, option in fixed_count_slots(game_data.get_race(category), passive_name):
        if fixed_id == slot_id and option.type == option_type:
            return option
    option = passive.find_option(option_type)
    if option is None:
        raise UnknownOptionError(f"Unknown option '{option_type}' for {passive_name}")
    return option


def available_points(passive: ManualPassive, level: int) -> int:
    """Slots funded at ``level``: the value of the highest threshold not above it."""
    return passive.available_points(level)


def level_gated_slots(race: Race, passive_name: str, level: int) -> List[str]:
    """Slot ids ``<race>-<passive>-<n>`` for every point available at ``level``."""
    passive = race.manual_passives.get(passive_name)
    if passive is None or not passive.is_level_gated:
        return []
    prefix = f"{race.slug}-{slugify(passive_name)}"
    return [f"{prefix}-{n}" for n in range(available_points(passive, level))]


def available_stats(character: Character, category: str, passive_name: str,
                    slot_id: str, option: PassiveOption) -> List[Tuple[str, bool]]:
    """
    The option's applicable stats, each paired with whether ``slot_id`` may take it.

    A stat held by the slot itself counts as available.
    """
    result = []
    for stat_name in option.applicable_stats:
        others = character.stat_choices.claimants(category, passive_name, stat_name) - {slot_id}
        result.append((stat_name, not others))
    return result


# -----------------------------------------------------------------------------
# Assigning and clearing
# -----------------------------------------------------------------------------

def set_choice(character: Character, category: str, passive_name: str, slot_id: str,
               option_type: str, target_stat: Optional[str] = None,
               calc: Optional[str] = None, value: Any = None, label: Optional[str] = None,
               game_data: Optional[GameData] = None) -> ChoiceResult:
    """
    Assign an option (and optionally a target stat) to a slot.

    ``calc``, ``value`` and ``label`` default to the option's definition in
    the race table. An empty ``option_type`` clears the slot.

    Raises:
        StatAlreadyClaimed: if another slot of the same passive holds
            ``target_stat``. Nothing is changed in that case.
        UnknownOptionError: if the option cannot be resolved.
    """
    if not option_type:
        return clear_choice(character, category, passive_name, slot_id, game_data)

    target_stat = target_stat or None
    if calc is None or value is None or label is None:
        if game_data is None:
            raise UnknownOptionError(f"No definition given for option '{option_type}'")
        option = resolve_option(game_data, category, passive_name, slot_id, option_type)
        # A single applicable stat needs no pick
        if not target_stat and option.needs_stat and len(option.applicable_stats) == 1:
            target_stat = option.applicable_stats[0]
        if target_stat and option.applicable_stats and target_stat not in option.applicable_stats:
            raise UnknownOptionError(
                f"'{target_stat}' cannot be chosen for {option.label or option.type}. "
                f"Options: {option.applicable_stats}"
            )
        calc = option.calc if calc is None else calc
        value = option.value if value is None else value
        label = option.label if label is None else label

    if calc not in (Calc.ADD.value, Calc.MULT.value):
        raise UnknownOptionError(f"Unknown calc '{calc}'. Options: {[c.value for c in Calc]}")
    value = to_number(value)

    registry = character.stat_choices
    if target_stat:
        others = registry.claimants(category, passive_name, target_stat) - {slot_id}
        if others:
            claimed_by = sorted(others)[0]
            logger.warning("Rejected %s for slot %s: '%s' already claimed by %s",
                           option_type, slot_id, target_stat, claimed_by)
            raise StatAlreadyClaimed(category, passive_name, target_stat, slot_id, claimed_by)

    record = ChoiceRecord(
        type=option_type,
        stat_name=target_stat,
        calc=calc,
        value=value,
        label=label,
        level=character.level,
    )
    previous = registry.get(category, passive_name, slot_id)
    registry.put(category, passive_name, slot_id, record)

    if game_data is not None:
        recalculate(character, game_data)

    target = f" to {target_stat}" if target_stat else ""
    logger.debug("Slot %s of %s/%s set to %s%s", slot_id, category, passive_name, option_type, target)
    return ChoiceResult(slot_id, record, previous, f"'{label}'{target} applied.")


def clear_choice(character: Character, category: str, passive_name: str, slot_id: str,
                 game_data: Optional[GameData] = None) -> ChoiceResult:
    """Remove a slot's choice and release the stat it claimed."""
    previous = character.stat_choices.remove(category, passive_name, slot_id)
    if game_data is not None:
        recalculate(character, game_data)
    if previous is None:
        return ChoiceResult(slot_id, message="Slot was already empty.")
    logger.debug("Slot %s of %s/%s cleared", slot_id, category, passive_name)
    return ChoiceResult(slot_id, None, previous, f"'{previous.label}' removed.")


def clear_passive(character: Character, category: str, passive_name: str,
                  game_data: Optional[GameData] = None) -> List[ChoiceRecord]:
    removed = character.stat_choices.clear_passive(category, passive_name)
    if game_data is not None:
        recalculate(character, game_data)
    return removed


def clear_category(character: Character, category: str,
                   game_data: Optional[GameData] = None) -> List[ChoiceRecord]:
    removed = character.stat_choices.clear_category(category)
    if game_data is not None:
        recalculate(character, game_data)
    return removed


# -----------------------------------------------------------------------------
# Level changes
# -----------------------------------------------------------------------------

def check_level_transition(character: Character, game_data: GameData,
                           new_level: int) -> List[InvalidLevelTransition]:
    """
    Warnings for assigned level-gated slots that ``new_level`` no longer funds.

    Nothing is cleared: unfunded slots keep their choice and effect.
    """
    race = game_data.get_race(character.race)
    if race is None:
        return []

    warnings = []
    for passive_name, passive in race.manual_passives.items():
        if not passive.is_level_gated:
            continue
        funded = set(level_gated_slots(race, passive_name, new_level))
        allowed = available_points(passive, new_level)
        for slot_id in character.stat_choices.slots(race.name, passive_name):
            if slot_id not in funded:
                warning = InvalidLevelTransition(
                    race.name, passive_name, slot_id, character.level, new_level, allowed
                )
                logger.warning("%s", warning)
                warnings.append(warning)
    return warnings
