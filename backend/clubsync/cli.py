#!/usr/bin/env python
"""
clubsync command line.

Usage:
    clubsync sync                   # one full sync run
    clubsync reset --yes            # delete all events, then resync
    clubsync repair-urls            # fix event links built from local club ids
    clubsync import-clubs --code X  # exchange an OAuth code and import the athlete's clubs
    clubsync status                 # token health and rate-limit snapshot
"""

import argparse
import asyncio
import json
import logging
import sys

from clubsync.config import settings
from clubsync.db.session import init_db, close_db, AsyncSessionLocal
from clubsync.features.strava import RateLimitedClient
from clubsync.features.sync import BackgroundSyncRunner, ClubSyncService, repair_event_urls

logger = logging.getLogger("clubsync.cli")


def _print(data) -> None:
    print(json.dumps(data, indent=2, default=str, ensure_ascii=False))


async def _command(args: argparse.Namespace) -> int:
    if args.command == "repair-urls":
        async with AsyncSessionLocal() as db:
            fixed = await repair_event_urls(db)
        print(f"Repaired {fixed} event URLs")
        return 0

    async with RateLimitedClient.from_settings(settings) as api:
        runner = BackgroundSyncRunner(AsyncSessionLocal, api)

        if args.command == "sync":
            result = await runner.trigger_sync()
            _print(result.to_dict())
            return 0 if result.errors == 0 else 1

        if args.command == "reset":
            result = await runner.reset_and_resync()
            _print(result.to_dict())
            return 0 if result.errors == 0 else 1

        if args.command == "import-clubs":
            async with AsyncSessionLocal() as db:
                created = await ClubSyncService(db, api).connect_with_code(args.code)
            print(f"Imported {len(created)} clubs")
            for club in created:
                print(f"  {club.strava_club_id}  {club.name}")
            return 0

        if args.command == "status":
            _print(await runner.get_status())
            return 0

    return 2


async def _run(args: argparse.Namespace) -> int:
    await init_db()
    try:
        return await _command(args)
    finally:
        await close_db()


def main() -> None:
    parser = argparse.ArgumentParser(description="Strava running club event sync")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("sync", help="Sync all approved clubs once")

    reset = sub.add_parser("reset", help="Delete ALL events and hidden markers, then resync")
    reset.add_argument("--yes", action="store_true", help="Confirm the destructive reset")

    sub.add_parser("repair-urls", help="Fix event links that use local club ids")

    import_clubs = sub.add_parser("import-clubs", help="Import the clubs of a Strava athlete")
    import_clubs.add_argument("--code", required=True, help="OAuth authorization code")

    sub.add_parser("status", help="Show token health and rate-limit state")

    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else getattr(logging, settings.log_level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stderr)],
    )

    if args.command == "reset" and not args.yes:
        parser.error("reset deletes every synced event; pass --yes to confirm")

    sys.exit(asyncio.run(_run(args)))


if __name__ == "__main__":
    main()
