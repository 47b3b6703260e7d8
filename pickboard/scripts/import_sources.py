# pickboard/scripts/import_sources.py
"""
Load the master source list (CSV export) into the sources table.

    python -m pickboard.scripts.import_sources "Master Source List.csv"

Rows already present by base URL are left alone, so re-running is safe.
"""
from __future__ import annotations

import argparse
import asyncio
import csv
import logging
import sys
from dataclasses import dataclass
from typing import Dict, Iterable, List

from pickboard.core.config import load_settings
from pickboard.core.db import init_engine
from pickboard.core.persist import SqlRepository
from pickboard.core.repository import Repository
from pickboard.models.types import Source
from pickboard.services.teams import resolve

logger = logging.getLogger("pickboard.import_sources")

ACTIVE_TIERS = ("tier 1", "tier 2", "tier 3")


@dataclass
class ImportCounts:
    imported: int = 0
    skipped: int = 0
    errors: int = 0
    total: int = 0


def normalize_url(url: str) -> str:
    trimmed = (url or "").strip()
    if not trimmed:
        return ""
    if trimmed.startswith(("http://", "https://")):
        return trimmed
    return f"https://{trimmed}"


def is_active(priority: str) -> bool:
    tier = (priority or "").strip().lower()
    return any(t in tier for t in ACTIVE_TIERS)


def read_rows(path: str) -> List[Dict[str, str]]:
    with open(path, newline="", encoding="utf-8-sig") as fh:
        reader = csv.DictReader(fh)
        rows = []
        for raw in reader:
            row = {(k or "").strip().lower(): (v or "").strip() for k, v in raw.items()}
            if not row.get("blog name") and not row.get("url"):
                continue
            rows.append(row)
    return rows


def row_to_source(row: Dict[str, str]) -> Source:
    return Source(
        name=row.get("blog name", ""),
        base_url=normalize_url(row.get("url", "")),
        associated_team=resolve(row.get("team")),
        category=row.get("network type") or row.get("picks format") or "Unknown",
        active=is_active(row.get("scraping priority", "")),
    )


async def import_rows(repo: Repository, rows: Iterable[Dict[str, str]]) -> ImportCounts:
    counts = ImportCounts()
    for row in rows:
        counts.total += 1
        name = row.get("blog name", "")
        try:
            source = row_to_source(row)
            if not source.base_url:
                logger.warning("Skipping row with invalid URL: %s", name)
                counts.skipped += 1
                continue
            if await repo.find_source_by_url(source.base_url):
                logger.info("Source already exists: %s (%s), skipping", name, source.base_url)
                counts.skipped += 1
                continue
            await repo.upsert_source(source)
            counts.imported += 1
            logger.info(
                "Imported: %s (%s) team=%s active=%s",
                name, source.base_url, source.associated_team or "N/A", source.active,
            )
        except Exception:
            logger.exception("Error importing %s", name)
            counts.errors += 1

    logger.info(
        "Import complete imported=%d skipped=%d errors=%d total=%d",
        counts.imported, counts.skipped, counts.errors, counts.total,
    )
    return counts


async def _main(path: str) -> ImportCounts:
    settings = load_settings()
    if not settings.database_url:
        raise SystemExit("DATABASE_URL is required to import sources")
    engine = init_engine(settings.database_url)
    try:
        repo = SqlRepository(engine)
        await repo.ensure_schema()
        counts = await import_rows(repo, read_rows(path))
        sources = await repo.list_sources()
        active = sum(1 for s in sources if s.active)
        logger.info("Source summary total=%d active=%d inactive=%d", len(sources), active, len(sources) - active)
        return counts
    finally:
        await engine.dispose()


def main(argv: List[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Import the expert source list from CSV")
    parser.add_argument("csv_path", help="Path to the master source list CSV")
    args = parser.parse_args(argv)

    logging.basicConfig(level=load_settings().log_level)
    counts = asyncio.run(_main(args.csv_path))
    return 1 if counts.errors else 0


if __name__ == "__main__":
    sys.exit(main())
