"""
Common dataclasses and helpers shared by the race and class tables.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Any, Iterable

from sheet_constants import STAT_GROUPS


_PLACEHOLDER = re.compile(r"{(\d+)}(%?)")


def format_label(text: str, *args: Any) -> str:
    """
    Fill ``{0}``-style placeholders in a label.

    A trailing ``%`` renders the argument as a percentage
    (``"{0}%"`` with ``0.5`` gives ``"50%"``).
    """
    def replace(match: "re.Match[str]") -> str:
        index = int(match.group(1))
        if index >= len(args) or args[index] is None:
            return "null"
        value = args[index]
        if match.group(2) == "%":
            return f"{_trim_number(float(value) * 100)}%"
        return _trim_number(value) if isinstance(value, (int, float)) else str(value)

    return _PLACEHOLDER.sub(replace, text)


def _trim_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.2f}".rstrip("0").rstrip(".")


def expand_stat_groups(names: Iterable[str]) -> List[str]:
    """Replace group names such as "Roll" with the stats they stand for."""
    expanded: List[str] = []
    for name in names:
        for stat in STAT_GROUPS.get(name, [name]):
            if stat not in expanded:
                expanded.append(stat)
    return expanded


def slugify(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")


@dataclass
class PassiveOption:
    """One selectable option of a manual passive."""
    type: str
    label: str = ""
    calc: str = "add"
    value: float = 0
    count: int = 1  # Slots granted, only used by fixed-count passives
    applicable_stats: List[str] = field(default_factory=list)

    @property
    def needs_stat(self) -> bool:
        return bool(self.applicable_stats)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PassiveOption":
        value = data.get("value", 0)
        calc = data.get("calc", "add")
        # Labels show the change: a x1.5 multiplier reads as 50%
        shown = None
        if value is not None:
            shown = abs(value - 1) if calc == "mult" else abs(value)
        return cls(
            type=data.get("type", ""),
            label=format_label(data.get("label", ""), shown),
            calc=calc,
            value=value,
            count=data.get("count", 1),
            applicable_stats=expand_stat_groups(data.get("applicable_stats", [])),
        )

    @classmethod
    def expand(cls, data: Dict[str, Any]) -> List["PassiveOption"]:
        """
        Expand a templated option into concrete options.

        A template carries ``{"options": {"values": [...], "counts": [...]}}``
        and produces one option per value.
        """
        template = data.get("options")
        if not isinstance(template, dict) or "values" not in template:
            return [cls.from_dict(data)]

        counts = template.get("counts", [])
        options = []
        for index, value in enumerate(template["values"]):
            concrete = {k: v for k, v in data.items() if k != "options"}
            concrete["value"] = value
            concrete["count"] = counts[index] if index < len(counts) else 1
            options.append(cls.from_dict(concrete))
        return options

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "label": self.label,
            "calc": self.calc,
            "value": self.value,
            "count": self.count,
            "applicable_stats": list(self.applicable_stats),
        }


@dataclass
class ManualPassive:
    """
    A racial passive whose effect the player assigns by hand.

    Fixed-count passives list ``choices``; each choice grants ``count`` slots.
    Level-gated passives list ``options`` and a ``levels`` table mapping a
    level threshold to the number of slots available from that level on.
    """
    name: str
    description: str = ""
    choices: List[PassiveOption] = field(default_factory=list)
    options: List[PassiveOption] = field(default_factory=list)
    levels: Dict[int, int] = field(default_factory=dict)

    @property
    def is_level_gated(self) -> bool:
        return bool(self.levels)

    def available_points(self, level: int) -> int:
        """Points granted by the highest threshold not above ``level``."""
        points = 0
        for threshold in sorted(self.levels):
            if level >= threshold:
                points = self.levels[threshold]
            else:
                break
        return points

    def find_option(self, option_type: str) -> PassiveOption | None:
        for option in self.options or self.choices:
            if option.type == option_type:
                return option
        return None

    @classmethod
    def from_dict(cls, name: str, data: Dict[str, Any]) -> "ManualPassive":
        choices: List[PassiveOption] = []
        for choice in data.get("choices", []):
            choices.extend(PassiveOption.expand(choice))
        options: List[PassiveOption] = []
        for option in data.get("options", []):
            options.extend(PassiveOption.expand(option))
        return cls(
            name=name,
            description=data.get("description", ""),
            choices=choices,
            options=options,
            levels={int(k): int(v) for k, v in data.get("levels", {}).items()},
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"description": self.description}
        if self.choices:
            result["choices"] = [c.to_dict() for c in self.choices]
        if self.options:
            result["options"] = [o.to_dict() for o in self.options]
        if self.levels:
            result["levels"] = {str(k): v for k, v in self.levels.items()}
        return result
