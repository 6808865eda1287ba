# file: scripts/notification_scheduler.py

import asyncio
import logging
import os
import sys
from datetime import datetime

# Add the project root to the Python path to allow absolute imports from the 'app' package
# This is necessary because we are running this file as a standalone script.
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from app.config import SCHEDULER_INTERVAL_SECONDS, LOG_LEVEL
from app.database.connection import get_db_session
from app.services.calendar_trigger import current_time
from app.services.notification_center import purge_fired_notifications

logger = logging.getLogger(__name__)


async def retire_fired_notifications(now: datetime | None = None) -> int:
    """Removes one-shot notifications whose trigger date has passed."""
    now = now or current_time()
    logger.info(f"[{now}] Running fired notification check...")
    async with get_db_session() as db:
        removed = await purge_fired_notifications(db, now)

    if removed:
        logger.info(f" -> Retired {removed} fired one-shot notifications.")
    else:
        logger.info(" -> No fired notifications to retire.")
    return removed


async def main_scheduler_loop():
    """The main event loop for the scheduler daemon."""
    while True:
        try:
            await retire_fired_notifications()
        except Exception as e:
            logger.error(f"An error occurred in the scheduler loop: {e}", exc_info=True)
        await asyncio.sleep(SCHEDULER_INTERVAL_SECONDS)


if __name__ == "__main__":
    logging.basicConfig(level=LOG_LEVEL)
    logger.info("Starting notification scheduler...")
    asyncio.run(main_scheduler_loop())
