"""
Command line entry point for character sheet files.

    python main.py new party.json --race Dwarf
    python main.py show party.json
    python main.py render party.json --index 2 --out sheet.html
"""

import argparse
import logging
import sys
from pathlib import Path

from character_sheet_html import CharacterSheetHTML
from errors import SheetError
from gamedata import DATA_DIR, GameData
from session import SheetSession
from sheet_io import load_sheet_file, save_sheet_file
from stat_manager import default_character

logger = logging.getLogger(__name__)


def show_character(character) -> None:
    classes = ", ".join(character.classes) or "-"
    print(f"{character.name or '(unnamed)'}: level {character.level} {character.race or 'no race'} ({classes})")
    if character.specializations:
        print(f"  Specializations: {', '.join(character.specializations)}")
    for name, stat in character.stats.items():
        change = f" {stat.racial_change:+}" if stat.racial_change else ""
        print(f"  {name:<13} {stat.total:>6}  (base {stat.value}{change})")
    print(f"  Health {character.health}/{character.max_health}  "
          f"Mana {character.mana}/{character.max_mana}  "
          f"Racial Power {character.racial_power}/{character.max_racial_power}  AC {character.ac}")
    for category, passive, slot_id, record in character.stat_choices:
        target = f" -> {record.stat_name}" if record.stat_name else ""
        print(f"  [{passive}] {record.label or record.type}{target}")


def cmd_new(args, game_data: GameData) -> int:
    character = default_character(game_data, race=args.race, name=args.name)
    save_sheet_file(args.file, [character])
    print(f"Created {args.file}")
    return 0


def cmd_show(args, game_data: GameData) -> int:
    for character in load_sheet_file(args.file, game_data):
        show_character(character)
    return 0


def cmd_render(args, game_data: GameData) -> int:
    session = SheetSession(game_data)
    result = session.load_file(args.file)
    if not result:
        print(result.message, file=sys.stderr)
        return 1
    if not session.switch_character(args.index - 1):
        print(f"No character {args.index} in {args.file}", file=sys.stderr)
        return 1
    out = args.out or Path(args.file).with_suffix(".html")
    CharacterSheetHTML().save_html(session.current, out)
    print(f"Generated: {out}")
    return 0


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description="Character sheet tools")
    ap.add_argument("--data", default=str(DATA_DIR), help="Directory with races/ and classes/ tables (default: bundled tables)")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = ap.add_subparsers(dest="command", required=True)

    new = sub.add_parser("new", help="Write a sheet file with one freshly rolled character")
    new.add_argument("file")
    new.add_argument("--name", default="Character 1")
    new.add_argument("--race", help="Race name; empty for none (default: first race)")
    new.set_defaults(func=cmd_new)

    show = sub.add_parser("show", help="Print a summary of every character in a sheet file")
    show.add_argument("file")
    show.set_defaults(func=cmd_show)

    render = sub.add_parser("render", help="Render one character to HTML")
    render.add_argument("file")
    render.add_argument("--index", type=int, default=1, help="Character position, starting at 1")
    render.add_argument("--out", help="Output path (default: <file>.html)")
    render.set_defaults(func=cmd_render)

    args = ap.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    game_data = GameData.load(args.data)
    try:
        return args.func(args, game_data)
    except (SheetError, OSError) as e:
        logger.error("%s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
