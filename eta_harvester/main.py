"""Main entry point with CLI."""
import argparse
import asyncio
import logging
import sys
from pathlib import Path

from eta_harvester.browser.playwright_document import BrowserLaunchError, PlaywrightDocument
from eta_harvester.config import Config, config
from eta_harvester.harvester import InvoiceHarvester
from eta_harvester.jobs.details_loader import load_record_details
from eta_harvester.logging_conf import setup_logging
from eta_harvester.parse.models import ProgressEvent
from eta_harvester.store.json_export import build_export, default_filename, export_json

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="ETA invoice harvester")

    parser.add_argument(
        "--url",
        default=None,
        help=f"Documents list URL (default: {config.PORTAL_URL})",
    )
    parser.add_argument(
        "--all-pages",
        action="store_true",
        help="Harvest every page instead of only the current one",
    )
    parser.add_argument(
        "--details",
        action="store_true",
        help="Also load line items for each invoice",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help=f"Output JSON file (default: {config.OUTPUT_DIR}/ETA_Invoices_<pages>_<date>.json)",
    )

    # Browser
    parser.add_argument(
        "--headless",
        action=argparse.BooleanOptionalAction,
        default=None,
        help=f"Run Chromium headless (default: {config.HEADLESS})",
    )
    parser.add_argument(
        "--storage-state",
        default=None,
        help="Playwright storage state file with an authenticated session",
    )
    parser.add_argument(
        "--save-storage-state",
        default=None,
        help="Save the session to this file after the run",
    )
    parser.add_argument(
        "--wait-login",
        type=float,
        default=0,
        help="Seconds to wait for a manual login before scanning",
    )

    # Mode flags
    parser.add_argument(
        "--dev",
        action="store_true",
        help="Development mode (verbose logs)",
    )

    return parser.parse_args(argv)


def log_progress(event: ProgressEvent) -> None:
    logger.info(f"[{event.percentage:5.1f}%] {event.message}")


async def run(args: argparse.Namespace) -> int:
    """Open the portal, harvest and export. Returns a process exit code."""
    async with PlaywrightDocument(
        url=args.url,
        headless=args.headless,
        storage_state=args.storage_state,
    ) as document:
        harvester = InvoiceHarvester(document)
        try:
            if args.wait_login:
                logger.info(f"Waiting {args.wait_login:.0f}s for login...")
                await asyncio.sleep(args.wait_login)

            await harvester.readiness.wait_for_page_loaded()
            page = await harvester.start()
            logger.info(
                f"Current page {page.current_page}/{page.total_pages}: "
                f"{len(page.records)} invoices, {page.total_count} in total"
            )

            if args.all_pages:
                harvester.add_progress_listener(log_progress)
                result = await harvester.harvest_all_pages({"progress": True})
                if not result.success:
                    logger.error(f"Harvest failed: {result.error}")
                    if not result.records:
                        return 1
                records = result.records
                if result.skipped_pages:
                    logger.warning(f"Pages skipped: {result.skipped_pages}")
            else:
                records = page.records

            if args.details and records:
                records = await load_record_details(harvester, records)

            snapshot = harvester.get_current_page_data()
            payload = build_export(
                records,
                all_pages=args.all_pages,
                current_page=snapshot.current_page,
                total_pages=snapshot.total_pages,
                options={"downloadAll": args.all_pages, "downloadDetails": args.details},
            )
            output = args.output or config.OUTPUT_DIR / default_filename(args.all_pages, snapshot.current_page)
            await export_json(output, payload)

            if args.save_storage_state:
                await document.save_storage_state(args.save_storage_state)
        finally:
            harvester.close()
    return 0


def main() -> None:
    """Main entry point."""
    args = parse_args()
    setup_logging("DEBUG" if args.dev else None)

    if args.storage_state:
        Config.STORAGE_STATE = args.storage_state
    try:
        Config.validate()
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    logger.info("=" * 60)
    logger.info("ETA Invoice Harvester Starting")
    logger.info(f"URL: {args.url or config.PORTAL_URL}")
    logger.info(f"All pages: {args.all_pages}")
    logger.info(f"Details: {args.details}")
    logger.info("=" * 60)

    try:
        sys.exit(asyncio.run(run(args)))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(1)
    except BrowserLaunchError as e:
        logger.error(f"Browser error: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
