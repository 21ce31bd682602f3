"""
Sheet Session - the editing state of one open sheet.

Owns the character list, which character is being edited and the undo
history. Every edit goes through a method here: it mutates the current
character, recalculates, marks it unsaved, snapshots history and reports
back with an EditResult. Any interface (CLI, web handler, tests) can drive
it.

Usage:
    from gamedata import GameData
    from session import SheetSession

    session = SheetSession(GameData.load())
    session.set_stat("Strength", "equipment", 2)
    session.revert()
    session.save_file("party.json")
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, List, Optional, Union

import choice_allocator
import stat_manager
from character_model import Character, to_number
from errors import SheetError, StatAlreadyClaimed
from gamedata import GameData
from history_manager import HistoryManager
from sheet_constants import MAX_HISTORY_LENGTH, InventoryType, Pool
from sheet_io import dump_characters, load_characters, load_sheet_file, save_sheet_file

logger = logging.getLogger(__name__)


@dataclass
class EditResult:
    """Outcome of a session operation."""
    ok: bool
    message: str = ""
    warnings: List[Warning] = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.ok


class SheetSession:
    def __init__(self, game_data: GameData, rng=None, max_history: int = MAX_HISTORY_LENGTH):
        self.game_data = game_data
        self.rng = rng
        self.characters: List[Character] = [self._new_character(1)]
        self.current_index = 0
        self.history = HistoryManager(max_history)
        self.history.reset(self.characters)

    def _new_character(self, number: int) -> Character:
        return stat_manager.default_character(self.game_data, rng=self.rng, name=f"Character {number}")

    @property
    def current(self) -> Character:
        return self.characters[self.current_index]

    @property
    def has_unsaved_changes(self) -> bool:
        return any(c.has_unsaved_changes for c in self.characters)

    # -------------------------------------------------------------------------
    # Commit helpers
    # -------------------------------------------------------------------------

    def _commit(self, message: str = "", warnings: Iterable[Warning] = ()) -> EditResult:
        stat_manager.recalculate(self.current, self.game_data)
        self.current.has_unsaved_changes = True
        self.history.snapshot(self.characters)
        return EditResult(True, message, list(warnings))

    def _edit(self, mutator, *args, message: str = "") -> EditResult:
        """Run a stat_manager mutator on the current character and commit."""
        try:
            mutator(self.current, *args)
        except (SheetError, IndexError) as e:
            logger.warning("Edit rejected: %s", e)
            return EditResult(False, str(e))
        return self._commit(message)

    # -------------------------------------------------------------------------
    # Character fields
    # -------------------------------------------------------------------------

    def set_stat(self, stat_name: str, field_name: str, value: Any) -> EditResult:
        return self._edit(stat_manager.set_stat_field, stat_name, field_name, value)

    def set_level(self, level: Any) -> EditResult:
        new_level = max(1, int(to_number(level, 1)))
        warnings = choice_allocator.check_level_transition(self.current, self.game_data, new_level)
        stat_manager.set_level(self.current, new_level)
        return self._commit(f"Level set to {new_level}.", warnings)

    def set_level_experience(self, value: Any) -> EditResult:
        return self._edit(stat_manager.set_level_experience, value)

    def add_level_experience(self, amount: Any) -> EditResult:
        return self._edit(stat_manager.add_level_experience, amount)

    def set_pool(self, pool: Union[Pool, str], value: Any) -> EditResult:
        return self._edit(stat_manager.set_pool_value, pool, value)

    def set_field(self, field_name: str, value: Any) -> EditResult:
        return self._edit(stat_manager.set_field, field_name, value)

    def set_section_visibility(self, section_id: str, visible: bool) -> EditResult:
        return self._edit(stat_manager.set_section_visibility, section_id, visible)

    def quick_roll(self) -> EditResult:
        return self._edit(stat_manager.quick_roll_stats, self.rng, message="Stats rerolled.")

    def change_race(self, race: str) -> EditResult:
        return self._edit(stat_manager.change_race, race, self.game_data,
                          message=f"Race set to {race or 'none'}.")

    def set_classes(self, class_names: Iterable[str]) -> EditResult:
        return self._edit(stat_manager.set_classes, list(class_names), self.game_data)

    def set_specializations(self, specializations: Iterable[str]) -> EditResult:
        return self._edit(stat_manager.set_specializations, list(specializations), self.game_data)

    # -------------------------------------------------------------------------
    # Inventories
    # -------------------------------------------------------------------------

    def add_item(self, inventory_type: Union[InventoryType, str], item=None) -> EditResult:
        return self._edit(stat_manager.add_item, inventory_type, item)

    def remove_item(self, inventory_type: Union[InventoryType, str], index: int) -> EditResult:
        return self._edit(stat_manager.remove_item, inventory_type, index)

    def set_item_field(self, inventory_type: Union[InventoryType, str], index: int,
                       field_name: str, value: Any) -> EditResult:
        return self._edit(stat_manager.set_item_field, inventory_type, index, field_name, value)

    def set_weapon_in_use(self, index: int, in_use: bool) -> EditResult:
        return self._edit(stat_manager.set_weapon_in_use, index, in_use)

    # -------------------------------------------------------------------------
    # Racial passive choices
    # -------------------------------------------------------------------------

    def set_choice(self, category: str, passive_name: str, slot_id: str, option_type: str,
                   target_stat: Optional[str] = None, calc: Optional[str] = None,
                   value: Any = None, label: Optional[str] = None) -> EditResult:
        try:
            result = choice_allocator.set_choice(
                self.current, category, passive_name, slot_id, option_type,
                target_stat, calc, value, label, game_data=self.game_data,
            )
        except StatAlreadyClaimed as e:
            return EditResult(False, str(e))
        except SheetError as e:
            logger.warning("Choice rejected: %s", e)
            return EditResult(False, str(e))
        return self._commit(result.message)

    def clear_choice(self, category: str, passive_name: str, slot_id: str) -> EditResult:
        result = choice_allocator.clear_choice(
            self.current, category, passive_name, slot_id, self.game_data
        )
        return self._commit(result.message)

    # -------------------------------------------------------------------------
    # Character list
    # -------------------------------------------------------------------------

    def add_character(self) -> EditResult:
        self.characters.append(self._new_character(len(self.characters) + 1))
        self.current_index = len(self.characters) - 1
        return self._commit(f"Added {self.current.name}.")

    def switch_character(self, index: int) -> EditResult:
        if not 0 <= index < len(self.characters):
            return EditResult(False, f"No character at position {index + 1}.")
        self.current_index = index
        return EditResult(True, f"Switched to {self.current.name}.")

    def reset_current(self) -> EditResult:
        self.characters[self.current_index] = self._new_character(self.current_index + 1)
        return self._commit("Character reset.")

    def delete_current(self) -> EditResult:
        """Delete the current character; the last one left is reset instead."""
        if len(self.characters) == 1:
            return self.reset_current()
        name = self.current.name
        del self.characters[self.current_index]
        self.current_index = min(self.current_index, len(self.characters) - 1)
        self.history.snapshot(self.characters)
        return EditResult(True, f"Deleted {name}.")

    # -------------------------------------------------------------------------
    # History
    # -------------------------------------------------------------------------

    def _apply_state(self, state: List[Character]) -> None:
        self.characters = state
        self.current_index = min(self.current_index, len(self.characters) - 1)
        for character in self.characters:
            stat_manager.recalculate(character, self.game_data)

    def revert(self) -> EditResult:
        state = self.history.revert()
        if state is None:
            return EditResult(False, "No previous state to revert to.")
        self._apply_state(state)
        return EditResult(True, "Reverted to previous state.")

    def forward(self) -> EditResult:
        state = self.history.forward()
        if state is None:
            return EditResult(False, "No future state to move to.")
        self._apply_state(state)
        return EditResult(True, "Moved forward to next state.")

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def _replace_all(self, characters: List[Character]) -> None:
        self.characters = characters
        self.current_index = 0
        self.mark_saved()
        self.history.reset(self.characters)

    def load_payload(self, payload: Any) -> EditResult:
        """Replace every character from a loaded payload; nothing changes on error."""
        try:
            characters = load_characters(payload, self.game_data)
        except SheetError as e:
            logger.warning("Load rejected: %s", e)
            return EditResult(False, str(e))
        self._replace_all(characters)
        return EditResult(True, f"Loaded {len(characters)} character(s).")

    def load_file(self, path: Union[str, Path]) -> EditResult:
        try:
            characters = load_sheet_file(path, self.game_data)
        except (SheetError, OSError) as e:
            logger.warning("Load rejected: %s", e)
            return EditResult(False, str(e))
        self._replace_all(characters)
        return EditResult(True, f"Loaded {len(characters)} character(s) from {path}.")

    def to_payload(self) -> List[dict]:
        return dump_characters(self.characters)

    def save_file(self, path: Union[str, Path]) -> EditResult:
        save_sheet_file(path, self.characters)
        self.mark_saved()
        return EditResult(True, f"Saved to {path}.")

    def mark_saved(self) -> None:
        for character in self.characters:
            character.has_unsaved_changes = False
