#!/usr/bin/env python3
"""Refresh the persisted character reference documents used by EnkaBot."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from dotenv import load_dotenv

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from enkabot.character_lookup import AliasIndex  # noqa: E402
from enkabot.config import load_settings  # noqa: E402
from enkabot.reference_data import ReferenceDataError, ReferenceDataSynchronizer  # noqa: E402
from enkabot.state import load_aliases_from_disk, configure_state  # noqa: E402


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=None,
        help="Directory holding names.json/characters.json (defaults to ENKABOT_DATA_DIR).",
    )
    parser.add_argument(
        "--source",
        type=str,
        default=None,
        help="Base URL of the reference documents (defaults to ENKABOT_DATA_SOURCE).",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Only load the existing local copies and report what they contain.",
    )
    parser.add_argument("--resolve", metavar="NAME", help="Resolve NAME against the rebuilt index.")
    return parser.parse_args()


async def _run(args: argparse.Namespace) -> int:
    settings = load_settings()
    data_dir = args.data_dir or settings.data_dir
    synchronizer = ReferenceDataSynchronizer(
        names_file=data_dir / "names.json",
        characters_file=data_dir / "characters.json",
        data_source=args.source or settings.data_source,
    )
    try:
        reference = await synchronizer.refresh(force=not args.check)
    except ReferenceDataError as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return 1

    configure_state(users_file=data_dir / "users.json", aliases_file=data_dir / "aliases.yml")
    aliases = load_aliases_from_disk()
    index = AliasIndex(reference, aliases)
    print(
        f"{len(reference)} characters in {data_dir} "
        f"({sum(len(names) for names in aliases.values())} registered aliases)."
    )
    if args.resolve:
        character_id = index.resolve(args.resolve)
        if character_id is None:
            print(f"'{args.resolve}' does not resolve to any character.")
            return 2
        print(f"'{args.resolve}' -> {character_id} ({index.display_name(character_id, settings.default_locale)})")
    return 0


def main() -> int:
    load_dotenv()
    return asyncio.run(_run(parse_args()))


if __name__ == "__main__":
    raise SystemExit(main())
