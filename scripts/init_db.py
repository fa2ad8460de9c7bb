"""Create the catalog schema and optionally seed reference categories."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from src.catalog.config import load_config
from src.catalog.db.db_init import seed_categories


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Initialize the catalog database.")
    parser.add_argument(
        "--categories",
        type=Path,
        help="JSON file with an array of {id, name, subcategories: [{id, name}]}.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv or [])
    config = load_config()
    if args.categories is None:
        print("Database initialized.")
        return 0

    try:
        categories = json.loads(args.categories.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        print(f"cannot read categories: {exc}", file=sys.stderr)
        return 2
    if not isinstance(categories, list):
        print("categories file must contain a JSON array", file=sys.stderr)
        return 2

    inserted = seed_categories(config.session_factory, categories)
    print(f"Database initialized, categories_inserted={inserted}.")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
