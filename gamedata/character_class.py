"""
CharacterClass dataclass - a class and the specializations it offers.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Any
import json
from pathlib import Path

from sheet_constants import SPEC_SEPARATOR


@dataclass
class CharacterClass:
    """A playable class loaded from JSON data."""
    id: str
    name: str
    description: str = ""
    specializations: List[str] = field(default_factory=list)

    def qualified_specializations(self) -> List[str]:
        """Specializations in the ``"<class>→<spec>"`` form stored on characters."""
        return [f"{self.name}{SPEC_SEPARATOR}{spec}" for spec in self.specializations]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CharacterClass":
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            description=data.get("description", ""),
            specializations=list(data.get("specializations", [])),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "specializations": list(self.specializations),
        }


def load_class(filepath: str) -> CharacterClass:
    """Load a class from a JSON file."""
    with open(filepath, 'r', encoding='utf-8') as f:
        data = json.load(f)
    return CharacterClass.from_dict(data)


def load_all_classes(directory: str) -> Dict[str, CharacterClass]:
    """Load all classes from a directory of JSON files, keyed by class name."""
    classes = {}
    path = Path(directory)
    for file in sorted(path.glob("*.json")):
        char_class = load_class(str(file))
        classes[char_class.name] = char_class
    return classes
