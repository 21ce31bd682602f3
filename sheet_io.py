"""
Saving and loading sheet files.

A sheet file is a JSON list of character records. Derived fields (stat
totals, experience caps, pool maxima, armor class) are never written; they
are recomputed on load. Older files holding a single record are accepted.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Union

from character_model import Character
from errors import MalformedPersistedRecord
from gamedata import GameData
from stat_manager import recalculate
from validation import RecordValidator

logger = logging.getLogger(__name__)


def character_to_record(character: Character) -> Dict[str, Any]:
    """The persisted form of ``character``."""
    return character.to_dict()


def character_from_record(record: Dict[str, Any], game_data: GameData) -> Character:
    """
    Build and recalculate a character from a persisted record.

    Raises:
        MalformedPersistedRecord: if the record fails validation.
    """
    result = RecordValidator(game_data).validate_record(record)
    if not result.valid:
        raise MalformedPersistedRecord(
            f"Invalid character record: {'; '.join(result.errors)}", result.errors
        )
    for warning in result.warnings:
        logger.warning("%s", warning)

    character = Character.from_dict(record)
    recalculate(character, game_data, follow_full=False)
    return character


def load_characters(payload: Any, game_data: GameData) -> List[Character]:
    """
    Characters from a loaded payload, all or nothing.

    Raises:
        MalformedPersistedRecord: if any record is invalid; nothing is
            returned in that case.
    """
    result = RecordValidator(game_data).validate_payload(payload)
    if not result.valid:
        raise MalformedPersistedRecord(
            f"Invalid sheet data: {'; '.join(result.errors)}", result.errors
        )

    records = [payload] if isinstance(payload, dict) else payload
    characters = [character_from_record(record, game_data) for record in records]
    logger.info("Loaded %d character(s)", len(characters))
    return characters


def dump_characters(characters: List[Character]) -> List[Dict[str, Any]]:
    return [character_to_record(c) for c in characters]


def save_sheet_file(path: Union[str, Path], characters: List[Character]) -> None:
    """Write characters to a JSON sheet file."""
    path = Path(path)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(dump_characters(characters), f, indent=2, ensure_ascii=False)
    logger.info("Saved %d character(s) to %s", len(characters), path)


def load_sheet_file(path: Union[str, Path], game_data: GameData) -> List[Character]:
    """
    Read characters from a JSON sheet file.

    Raises:
        MalformedPersistedRecord: if the file is not valid JSON or holds an
            invalid record.
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            payload = json.load(f)
    except json.JSONDecodeError as e:
        raise MalformedPersistedRecord(f"{path} is not valid JSON: {e}", [str(e)]) from e
    return load_characters(payload, game_data)
