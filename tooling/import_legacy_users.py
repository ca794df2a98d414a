"""Import legacy single-offer user documents into the stampcard database.

The input is a JSON export: either a list of user documents or an object
keyed by user id. Rewards recorded before offers existed are attached to the
default offer. Users already present (by id or email) are skipped.

Example::
    python tooling/import_legacy_users.py users-export.json --dry-run
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

from loguru import logger

from stampcard_api.db.session import async_session, engine
from stampcard_api.services.stampcard import LegacyUserImporter


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Import legacy stamp-card user documents")
    parser.add_argument("source", type=Path, help="Path to the JSON export of legacy users.")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Convert and flush the documents, then roll back instead of committing.",
    )
    return parser.parse_args()


def load_documents(path: Path) -> list[dict[str, Any]]:
    with path.open(encoding="utf-8") as handle:
        raw = json.load(handle)
    if isinstance(raw, dict):
        documents = []
        for user_id, document in raw.items():
            documents.append({"id": user_id, **document})
        return documents
    if isinstance(raw, list):
        return raw
    raise ValueError("Legacy export must be a JSON list or object")


async def _run() -> int:
    args = parse_args()
    try:
        documents = load_documents(args.source)
    except (OSError, ValueError) as exc:
        logger.error("Failed to read legacy export", source=str(args.source), error=str(exc))
        return 1

    try:
        async with async_session() as session:
            report = await LegacyUserImporter(session).import_documents(documents)
            if args.dry_run:
                await session.rollback()
            else:
                await session.commit()
    finally:
        await engine.dispose()

    logger.success(
        "Legacy import finished",
        source=str(args.source),
        dry_run=args.dry_run,
        imported=len(report.imported),
        skipped=len(report.skipped),
        rewards=report.rewards,
    )
    return 0


def main() -> int:
    return asyncio.run(_run())


if __name__ == "__main__":
    sys.exit(main())
