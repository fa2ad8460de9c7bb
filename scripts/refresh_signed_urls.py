"""Cron entry point regenerating signed media URLs from stored object keys."""

from __future__ import annotations

import argparse
import asyncio
import sys
from dataclasses import dataclass

from src.catalog.config import load_config
from src.catalog.records.records_repository import CatalogRepository
from src.catalog.records.records_service import RecordsService
from src.catalog.storage.storage_client import ObjectStorageClient


@dataclass(slots=True)
class RefreshSummary:
    records: int
    assets: int
    dry_run: bool


def perform_refresh(*, dry_run: bool, ttl_seconds: int | None = None) -> RefreshSummary:
    """Re-sign URLs of every record that has media."""
    config = load_config()
    service = RecordsService(
        repo=CatalogRepository(config.session_factory),
        storage=ObjectStorageClient(config.storage),
    )
    records, assets = asyncio.run(
        service.refresh_all_media_urls(ttl_seconds=ttl_seconds, dry_run=dry_run)
    )
    return RefreshSummary(records=records, assets=assets, dry_run=dry_run)


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Regenerate signed media URLs.")
    parser.add_argument("--dry-run", action="store_true", help="Only report counts without writing URLs.")
    parser.add_argument("--ttl-seconds", type=int, default=None, help="Lifetime of the new URLs.")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv or [])
    try:
        summary = perform_refresh(dry_run=args.dry_run, ttl_seconds=args.ttl_seconds)
    except Exception as exc:
        print(f"refresh failed: {exc}", file=sys.stderr)
        return 2

    if summary.dry_run:
        print(f"refresh dry-run, records={summary.records}, assets={summary.assets}")
    else:
        print(f"refresh done, records={summary.records}, assets={summary.assets}")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
