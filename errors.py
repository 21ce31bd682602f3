"""Exceptions and warnings raised by the character sheet engine."""
from typing import List, Optional


class SheetError(Exception):
    """Base exception for character sheet errors."""
    pass


class SheetWarning(UserWarning):
    """Base class for conditions reported to the caller but never raised."""
    pass


class FormulaParseError(SheetError, ValueError):
    """Raised when a formula string cannot be parsed or evaluated."""

    def __init__(self, formula: str, reason: str):
        super().__init__(f"Cannot evaluate formula {formula!r}: {reason}")
        self.formula = formula
        self.reason = reason


class StatAlreadyClaimed(SheetError, ValueError):
    """
    Raised when a stat is already targeted by another choice slot.

    Attributes:
        category: Choice category (usually the race name).
        passive_name: Passive the slots belong to.
        stat_name: The contested stat.
        slot_id: Slot that asked for the stat.
        claimed_by: Slot currently holding the stat.
    """
    def __init__(self, category: str, passive_name: str, stat_name: str,
                 slot_id: str, claimed_by: Optional[str] = None):
        super().__init__(
            f"'{stat_name}' has already been chosen for another {passive_name} slot"
        )
        self.category = category
        self.passive_name = passive_name
        self.stat_name = stat_name
        self.slot_id = slot_id
        self.claimed_by = claimed_by


class UnknownOptionError(SheetError, ValueError):
    """Raised when reference data has no entry for a requested key."""
    pass


class MalformedPersistedRecord(SheetError, ValueError):
    """
    Raised when a loaded record cannot be turned into a character.

    Attributes:
        errors: Validation messages describing every problem found.
    """
    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors = errors or []


class InvalidLevelTransition(SheetWarning):
    """
    A level decrease left assigned choice slots beyond what the new level funds.

    The slots keep their choices and effects.
    """
    def __init__(self, category: str, passive_name: str, slot_id: str,
                 old_level: int, new_level: int, allowed: int):
        super().__init__(
            f"{passive_name} slot {slot_id} is beyond the {allowed} point(s) "
            f"available at level {new_level}"
        )
        self.category = category
        self.passive_name = passive_name
        self.slot_id = slot_id
        self.old_level = old_level
        self.new_level = new_level
        self.allowed = allowed
