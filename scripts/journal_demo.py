#!/usr/bin/env python3
"""Record, save and list a journal entry end to end.

Uses the synthetic capture device unless --webcam is given. Settings
come from MINDMIRROR_* environment variables.

Usage:
    python scripts/journal_demo.py --title "Morning check-in" --tags "mood, daily"
    python scripts/journal_demo.py --seconds 3 --webcam --delete

Exit codes:
    0: Entry recorded, saved and listed
    1: Recording or saving failed
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add src to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from mindmirror.adapter.capture import OpenCVCaptureDevice, SyntheticCaptureDevice  # noqa: E402
from mindmirror.capture import CaptureSession  # noqa: E402
from mindmirror.config import Settings  # noqa: E402
from mindmirror.core.errors import MindMirrorError  # noqa: E402
from mindmirror.journal import (  # noqa: E402
    HttpEntryRepository,
    JournalCoordinator,
    SqlEntryRepository,
)
from mindmirror.storage import LocalBlobStore  # noqa: E402


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="MindMirror journal demo")
    parser.add_argument("--title", default="Demo entry", help="Entry title")
    parser.add_argument("--tags", default="demo", help="Comma-separated tags")
    parser.add_argument("--seconds", type=float, default=2.0, help="Recording length")
    parser.add_argument("--webcam", action="store_true", help="Record from camera 0")
    parser.add_argument("--delete", action="store_true", help="Delete the entry afterwards")
    return parser.parse_args(argv)


async def run(args: argparse.Namespace, settings: Settings) -> int:
    device = OpenCVCaptureDevice() if args.webcam else SyntheticCaptureDevice()
    blob_store = LocalBlobStore(settings.blob_db_path)
    if settings.api_url:
        repository = HttpEntryRepository(settings.api_url, timeout=settings.http_timeout)
    else:
        repository = SqlEntryRepository(settings.entries_db_path, user_id=settings.user_id)
    coordinator = JournalCoordinator(repository, blob_store)

    try:
        print(f"\n[1/3] Recording {args.seconds:.1f}s...")
        async with CaptureSession(
            device,
            blob_store,
            on_complete=coordinator.attach_video,
            chunk_interval=settings.chunk_interval,
        ) as session:
            await session.start()
            await asyncio.sleep(args.seconds)
            result = await session.stop()
        print(f"  Stored {result.key}: {result.size} bytes, {result.duration}")
        print(f"  Thumbnail: {'yes' if result.thumbnail else 'no'}")

        print("\n[2/3] Saving entry...")
        entry = await coordinator.submit_entry(args.title, args.tags)
        print(f"  Created entry {entry.entry_id} with tags {entry.tags}")

        print("\n[3/3] Listing entries...")
        for row in await coordinator.list_entries():
            status = "unavailable" if row.video_unavailable else (row.playback_url or "no video")
            print(f"  {row.entry.created_at:%Y-%m-%d %H:%M} {row.entry.title!r} [{status}]")

        if args.delete:
            deleted = await coordinator.delete_entry(entry.entry_id)
            print(f"\nDeleted entry {entry.entry_id}: {deleted}")
    except MindMirrorError as e:
        print(f"FAIL: {e}")
        return 1
    finally:
        coordinator.close()
        await blob_store.close()
        if isinstance(repository, HttpEntryRepository):
            await repository.aclose()

    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    settings = Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    print("=" * 60)
    print("MindMirror Journal Demo")
    print("=" * 60)
    return asyncio.run(run(args, settings))


if __name__ == "__main__":
    sys.exit(main())
