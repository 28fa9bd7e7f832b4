"""
Print a hierarchy as the editor sees it, walking the options API level by level.

Uses the same OptionsEditor as the admin UI, so every level is fetched scoped to
the selected parent (Board -> Grade -> Subject -> Chapter, or City -> Area).

Usage (from project root, API running):
  python scripts/print_hierarchy.py
  python scripts/print_hierarchy.py --hierarchy location
  python scripts/print_hierarchy.py --type MODE --base-url http://127.0.0.1:8000
"""
import os
import sys
import argparse
import asyncio

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from app.services.hierarchy import CURRICULUM, LOCATION, flat_hierarchy
from app.services.options_editor import OptionsEditor
from app.services.options_repository import HttpOptionsRepository

HIERARCHIES = {"curriculum": CURRICULUM, "location": LOCATION}


async def walk(editor: OptionsEditor, level_index: int, depth: int) -> None:
    column = editor.column(level_index)
    if column.error:
        print(f"{'  ' * depth}! {column.spec.name}: {column.error}")
        return
    for item in list(column.items):
        print(f"{'  ' * depth}- [{column.spec.name}] {item.label} ({item.value})")
        if level_index + 1 < len(editor.columns):
            await editor.select(level_index, item)
            await walk(editor, level_index + 1, depth + 1)


async def run(args) -> int:
    hierarchy = flat_hierarchy(args.type) if args.type else HIERARCHIES[args.hierarchy]
    async with HttpOptionsRepository(base_url=args.base_url) as repo:
        editor = OptionsEditor(repo, hierarchy)
        types = await editor.load_types()
        print("Known types:", ", ".join(t.value for t in types))
        await editor.open()
        await walk(editor, 0, 0)
        return 1 if editor.column(0).error else 0


def main():
    parser = argparse.ArgumentParser(description="Print reference option hierarchies")
    parser.add_argument("--hierarchy", choices=sorted(HIERARCHIES), default="curriculum")
    parser.add_argument("--type", type=str, default=None, help="Flat option type instead of a hierarchy (e.g. MODE)")
    parser.add_argument("--base-url", type=str, default=None, help="Options API base URL (default: OPTIONS_API_BASE_URL)")
    args = parser.parse_args()
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
