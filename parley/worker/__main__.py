"""
parley.worker.__main__ — Entry point for ``python -m parley.worker``
====================================================================

Wiring:
1. Load .env (secrets).
2. Load config.yaml (lifecycle thresholds, sweep interval).
3. Create the SQLAlchemy engine and ensure tables exist.
4. Build the notification gateway (archive tokens + SMTP).
5. Run the sweep scheduler until interrupted.

Pass ``--once`` to run both sweeps a single time and exit (for cron).
"""

from __future__ import annotations

import asyncio
import logging
import sys

from dotenv import load_dotenv

from parley.config import load_config, load_jwt_secret
from parley.database.engine import create_db_engine, init_db
from parley.services.notification_service import DefaultNotifier
from parley.worker.tasks import SweepScheduler

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("parley")


def main() -> None:
    """Bootstrap and run the Parley sweep worker."""

    # 1. Environment variables (secrets).
    load_dotenv()

    # 2. Soft configuration.
    cfg = load_config()
    logger.info("Config loaded — Community: %s", cfg.community_name)

    # 3. Database.
    engine = create_db_engine()
    init_db(engine)

    # 4. Notification gateway.
    notifier = DefaultNotifier(engine, cfg, load_jwt_secret())

    # 5. Run.
    scheduler = SweepScheduler(engine, cfg, notifier)
    try:
        if "--once" in sys.argv[1:]:
            asyncio.run(scheduler.run_once())
        else:
            asyncio.run(scheduler.run_forever())
    except KeyboardInterrupt:
        logger.info("Shutting down gracefully…")


if __name__ == "__main__":
    main()
