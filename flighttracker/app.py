"""
FlightTracker command-line entry point.

Runs the tracker headless on one asyncio loop: authenticates, refreshes
the snapshot periodically and logs what a map front end would draw.

Usage:
    python -m flighttracker.app

Credentials come from config.json or OPENSKY_CLIENT_ID /
OPENSKY_CLIENT_SECRET (a .env file is honoured).
"""

import asyncio
import logging
import sys

import aiohttp

from flighttracker.config import config
from flighttracker.rendering import LoggingPresenter
from flighttracker.tracker import FlightTracker

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S',
)
logger = logging.getLogger(__name__)

STATUS_INTERVAL_SECONDS = 30


async def run() -> int:
    """Run until cancelled. Returns the process exit code."""
    async with aiohttp.ClientSession() as session:
        tracker = FlightTracker(presenter=LoggingPresenter(), session=session)
        if not tracker.start():
            logger.error('Set OPENSKY_CLIENT_ID and OPENSKY_CLIENT_SECRET to start tracking')
            return 1

        try:
            while tracker.running:
                await asyncio.sleep(STATUS_INTERVAL_SECONDS)
                stats = tracker.stats
                logger.info(
                    f'Last update: {tracker.last_update_text}, '
                    f'{stats["filters"]["visible"]}/{stats["registry"]["flights"]} flights visible'
                )
        finally:
            await tracker.stop()
    return 0


def main() -> None:
    logger.info('Starting FlightTracker...')
    try:
        exit_code = asyncio.run(run())
    except KeyboardInterrupt:
        logger.info('Interrupted')
        exit_code = 0
    sys.exit(exit_code)


if __name__ == '__main__':
    main()
