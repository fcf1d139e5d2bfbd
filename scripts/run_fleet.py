#!/usr/bin/env python3
"""
One-off fleet run from the command line.

Scrapes the static target catalog (optionally filtered by category or
source) and writes the merged records as JSON.

Usage:
    python scripts/run_fleet.py [--category phones] [--source newegg] [--out products.json]
"""

import argparse
import asyncio
import json
import sys
from dataclasses import asdict
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from shelfscan.config import settings
from shelfscan.ingest.fetchers.headless import PlaywrightSurfaceFactory
from shelfscan.ingest.fleet import FleetRunner
from shelfscan.ingest.profiles import list_sources
from shelfscan.ingest.target_orchestrator import TargetOrchestrator
from shelfscan.ingest.targets import CATEGORIES, build_targets
from shelfscan.logging_config import setup_logging


async def run_fleet(category: str | None, source: str | None, out: Path) -> int:
    targets = [
        t for t in build_targets()
        if (category is None or t.category == category)
        and (source is None or t.source == source)
    ]
    if not targets:
        print("No targets match the given filters.")
        return 1

    factory = PlaywrightSurfaceFactory(headless=settings.headless)
    runner = FleetRunner(settings, TargetOrchestrator(settings, factory.open))
    try:
        result = await runner.run_all(targets)
    finally:
        await factory.close()

    print(f"\nScraped {len(targets)} targets in {result.duration_seconds:.1f}s:")
    for key, outcome in result.outcomes.items():
        status = f"{outcome.record_count} records" if outcome.success else f"FAILED ({outcome.reason})"
        print(f"  - {key}: {status}")

    payload = [
        {**asdict(record), "captured_at": record.captured_at.isoformat()}
        for record in result.records
    ]
    out.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    print(f"\n[OK] Wrote {len(payload)} records to {out}")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run one scrape fleet pass")
    parser.add_argument("--category", choices=CATEGORIES, help="Only scrape this category")
    parser.add_argument("--source", choices=list_sources(), help="Only scrape this retailer")
    parser.add_argument("--out", type=Path, default=Path("products.json"))
    args = parser.parse_args()

    setup_logging()
    sys.exit(asyncio.run(run_fleet(args.category, args.source, args.out)))
