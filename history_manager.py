"""
History Manager - bounded undo/redo over snapshots of the character list.

Snapshots are deep copies, so later edits never reach stored history.
"""

import copy
import logging
from typing import List, Optional

from character_model import Character
from sheet_constants import MAX_HISTORY_LENGTH

logger = logging.getLogger(__name__)


class HistoryManager:
    """
    Linear history with a pointer.

    ``pointer`` is -1 while empty, otherwise the index of the state the
    session currently shows. Taking a snapshot after reverting discards the
    states ahead of the pointer.
    """

    def __init__(self, max_length: int = MAX_HISTORY_LENGTH):
        if max_length < 1:
            raise ValueError(f"max_length must be at least 1, got {max_length}")
        self.max_length = max_length
        self._stack: List[List[Character]] = []
        self._pointer = -1

    @property
    def pointer(self) -> int:
        return self._pointer

    def __len__(self) -> int:
        return len(self._stack)

    @property
    def can_revert(self) -> bool:
        return self._pointer > 0

    @property
    def can_forward(self) -> bool:
        return self._pointer < len(self._stack) - 1

    def snapshot(self, characters: List[Character]) -> bool:
        """
        Record the current state.

        Returns False when the state equals the current one and nothing was
        stored.
        """
        state = copy.deepcopy(list(characters))
        del self._stack[self._pointer + 1:]

        if self._stack and self._stack[-1] == state:
            self._pointer = len(self._stack) - 1
            return False

        self._stack.append(state)
        if len(self._stack) > self.max_length:
            self._stack.pop(0)
        self._pointer = len(self._stack) - 1
        logger.debug("State saved to history (length=%d, pointer=%d)", len(self._stack), self._pointer)
        return True

    def revert(self) -> Optional[List[Character]]:
        """Step back one state; None when there is nothing to go back to."""
        if not self.can_revert:
            logger.info("No previous state to revert to")
            return None
        self._pointer -= 1
        logger.info("Reverted to history state %d of %d", self._pointer + 1, len(self._stack))
        return copy.deepcopy(self._stack[self._pointer])

    def forward(self) -> Optional[List[Character]]:
        """Step forward one state; None when already at the newest."""
        if not self.can_forward:
            logger.info("No future state to move to")
            return None
        self._pointer += 1
        logger.info("Moved forward to history state %d of %d", self._pointer + 1, len(self._stack))
        return copy.deepcopy(self._stack[self._pointer])

    def clear(self) -> None:
        self._stack.clear()
        self._pointer = -1

    def reset(self, characters: List[Character]) -> None:
        """Forget all history and start again from ``characters``."""
        self.clear()
        self.snapshot(characters)
