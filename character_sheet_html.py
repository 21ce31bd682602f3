"""
Character Sheet HTML renderer - a read-only printable sheet.

Dependencies: pip install jinja2
"""

from pathlib import Path
from typing import Any, Dict, Union

from jinja2 import Environment, BaseLoader, FileSystemLoader

from character_model import Character
from formula import evaluate, formula_bindings
from sheet_constants import ROLL_STATS


class CharacterSheetHTML:
    def __init__(self, template_path: str = None):
        self.template_path = template_path
        self._template = None

    @property
    def template(self):
        if self._template is None:
            if self.template_path:
                template_dir = Path(self.template_path).parent
                template_name = Path(self.template_path).name
                env = Environment(loader=FileSystemLoader(str(template_dir)), autoescape=True)
                self._template = env.get_template(template_name)
            else:
                env = Environment(loader=BaseLoader(), autoescape=True)
                self._template = env.from_string(DEFAULT_TEMPLATE)
        return self._template

    def _sheet_data(self, character: Character) -> Dict[str, Any]:
        bindings = formula_bindings(character)
        weapons = []
        for weapon in character.weapon_inventory:
            row = weapon.to_dict()
            # Evaluated even when not in use, so the printout shows numbers
            row["damage"] = evaluate(weapon.original_damage or weapon.damage, bindings)
            row["magicDamage"] = evaluate(weapon.original_magic_damage or weapon.magic_damage, bindings)
            weapons.append(row)

        choices = [
            {"category": category, "passive": passive, "slot": slot_id,
             "label": record.label or record.type, "stat": record.stat_name or ""}
            for category, passive, slot_id, record in character.stat_choices
        ]

        return {
            "name": character.name,
            "race": character.race,
            "classes": ", ".join(character.classes),
            "specializations": ", ".join(character.specializations),
            "level": character.level,
            "level_experience": character.level_experience,
            "level_max_experience": character.level_max_experience,
            "stats": [(name, character.stats[name]) for name in ROLL_STATS if name in character.stats],
            "health": character.health,
            "max_health": character.max_health,
            "mana": character.mana,
            "max_mana": character.max_mana,
            "racial_power": character.racial_power,
            "max_racial_power": character.max_racial_power,
            "ac": character.ac,
            "regen": {
                "health": character.natural_health_regen_active,
                "mana": character.natural_mana_regen_active,
                "health_doubled": character.health_regen_doubled,
                "mana_doubled": character.mana_regen_doubled,
            },
            "skills": character.skills,
            "notes": character.personal_notes,
            "weapons": weapons,
            "armor": [a.to_dict() for a in character.armor_inventory],
            "general": [g.to_dict() for g in character.general_inventory],
            "choices": choices,
            "visible": character.section_visibility,
        }

    def render_html(self, character: Character) -> str:
        return self.template.render(character=self._sheet_data(character))

    def save_html(self, character: Character, output_path: Union[str, Path]) -> None:
        Path(output_path).write_text(self.render_html(character), encoding="utf-8")


# Template stored in separate variable for readability
DEFAULT_TEMPLATE = '''<!DOCTYPE html>
<html>
<head>
<meta charset="UTF-8">
<title>{{ character.name or "Character" }}</title>
<style>
@page { size: letter; margin: 0.4in; }
* { box-sizing: border-box; margin: 0; padding: 0; }
body { font-family: 'Segoe UI', Tahoma, sans-serif; font-size: 9pt; line-height: 1.2; width: 7.7in; }
.section { border: 1.5px solid #000; padding: 4px 6px; margin-bottom: 5px; }
.section-title { font-weight: bold; font-size: 8pt; text-transform: uppercase; background: #000; color: #fff; padding: 2px 5px; margin: -4px -6px 4px -6px; }
.label { font-size: 6pt; text-transform: uppercase; color: #666; display: block; }
.value { font-size: 10pt; font-weight: bold; }
.header-grid { display: table; width: 100%; table-layout: fixed; border-collapse: collapse; }
.header-cell { display: table-cell; border: 1px solid #000; padding: 2px 4px; text-align: center; vertical-align: top; }
table.fixed { width: 100%; border-collapse: collapse; table-layout: fixed; }
table.fixed th, table.fixed td { border: 1px solid #000; padding: 2px 3px; text-align: center; font-size: 8pt; overflow: hidden; }
table.fixed th { background: #eee; font-size: 6pt; text-transform: uppercase; }
.stat-name { font-weight: bold; background: #ddd; text-align: left !important; }
.total { font-weight: bold; background: #f5f5f5; }
.text-area { border: 1px solid #000; padding: 4px; font-size: 8pt; white-space: pre-wrap; min-height: 50px; }
</style>
</head>
<body>

{% if character.visible.get("basic-info-content", True) %}
<div class="section" id="basic-info">
<div class="section-title">Character</div>
<div class="header-grid">
<div class="header-cell"><span class="label">Name</span><span class="value">{{ character.name }}</span></div>
<div class="header-cell"><span class="label">Race</span><span class="value">{{ character.race }}</span></div>
<div class="header-cell"><span class="label">Class</span><span class="value">{{ character.classes }}</span></div>
<div class="header-cell"><span class="label">Specialization</span><span class="value">{{ character.specializations }}</span></div>
<div class="header-cell"><span class="label">Level</span><span class="value">{{ character.level }}</span></div>
<div class="header-cell"><span class="label">Experience</span><span class="value">{{ character.level_experience }} / {{ character.level_max_experience }}</span></div>
</div>
</div>
{% endif %}

{% if character.visible.get("player-stats-content", True) %}
<div class="section" id="player-stats">
<div class="section-title">Stats</div>
<table class="fixed">
<tr><th>Stat</th><th>Value</th><th>Racial</th><th>Equipment</th><th>Temporary</th><th>Experience</th><th>Total</th></tr>
{% for name, s in character.stats %}
<tr>
<td class="stat-name">{{ name }}</td>
<td>{{ s.value }}</td>
<td>{{ s.racial_change }}</td>
<td>{{ s.equipment }}</td>
<td>{{ s.temporary }}</td>
<td>{{ s.experience }} / {{ s.max_experience }}</td>
<td class="total">{{ s.total }}</td>
</tr>
{% endfor %}
</table>
</div>
{% endif %}

{% if character.visible.get("health-combat-content", True) %}
<div class="section" id="health-combat">
<div class="section-title">Health &amp; Combat</div>
<div class="header-grid">
<div class="header-cell"><span class="label">Health</span><span class="value">{{ character.health }} / {{ character.max_health }}</span>
{% if character.regen.health %}<span class="label">Regen{% if character.regen.health_doubled %} x2{% endif %}</span>{% endif %}</div>
<div class="header-cell"><span class="label">Mana</span><span class="value">{{ character.mana }} / {{ character.max_mana }}</span>
{% if character.regen.mana %}<span class="label">Regen{% if character.regen.mana_doubled %} x2{% endif %}</span>{% endif %}</div>
<div class="header-cell"><span class="label">Racial Power</span><span class="value">{{ character.racial_power }} / {{ character.max_racial_power }}</span></div>
<div class="header-cell"><span class="label">AC</span><span class="value">{{ character.ac }}</span></div>
</div>
</div>
{% endif %}

{% if character.visible.get("racial-passives-content", True) and character.choices %}
<div class="section" id="racial-passives">
<div class="section-title">Racial Passives</div>
<table class="fixed">
<tr><th>Passive</th><th>Choice</th><th>Stat</th></tr>
{% for c in character.choices %}
<tr><td>{{ c.passive }}</td><td>{{ c.label }}</td><td>{{ c.stat }}</td></tr>
{% endfor %}
</table>
</div>
{% endif %}

{% if character.visible.get("weapon-inventory-content", True) %}
<div class="section" id="weapon-inventory">
<div class="section-title">Weapons</div>
<table class="fixed">
<tr><th>Name</th><th>Type</th><th>Accuracy</th><th>Damage</th><th>Magic Damage</th><th>Magic Type</th><th>Effect</th><th>In Use</th></tr>
{% for w in character.weapons %}
<tr><td>{{ w.name }}</td><td>{{ w.type }}</td><td>{{ w.accuracy }}</td><td>{{ w.damage }}</td><td>{{ w.magicDamage }}</td><td>{{ w.magicType }}</td><td>{{ w.effect }}</td><td>{{ "Yes" if w.use else "" }}</td></tr>
{% endfor %}
</table>
</div>
{% endif %}

{% if character.visible.get("armor-inventory-content", True) %}
<div class="section" id="armor-inventory">
<div class="section-title">Armor</div>
<table class="fixed">
<tr><th>Name</th><th>Location</th><th>Defense</th><th>Magic Defense</th><th>Magic Type</th><th>Effect</th><th>Equipped</th></tr>
{% for a in character.armor %}
<tr><td>{{ a.name }}</td><td>{{ a.location }}</td><td>{{ a.defense }}</td><td>{{ a.magicDefense }}</td><td>{{ a.magicType }}</td><td>{{ a.effect }}</td><td>{{ "Yes" if a.equipped else "" }}</td></tr>
{% endfor %}
</table>
</div>
{% endif %}

{% if character.visible.get("general-inventory-content", True) %}
<div class="section" id="general-inventory">
<div class="section-title">Inventory</div>
<table class="fixed">
<tr><th>Name</th><th>Type</th><th>Effect</th><th>Amount</th><th>Value / Unit</th></tr>
{% for g in character.general %}
<tr><td>{{ g.name }}</td><td>{{ g.type }}</td><td>{{ g.effect }}</td><td>{{ g.amount }}</td><td>{{ g.valuePerUnit }}</td></tr>
{% endfor %}
</table>
</div>
{% endif %}

{% if character.visible.get("skills-content", True) %}
<div class="section" id="skills">
<div class="section-title">Skills &amp; Notes</div>
<span class="label">Skills</span>
<div class="text-area">{{ character.skills }}</div>
<span class="label">Notes</span>
<div class="text-area">{{ character.notes }}</div>
</div>
{% endif %}

</body>
</html>
'''
