"""
HomeKeeper — Entry Point.

Single entry point: `python main.py` starts the Telegram bot together with
the periodic task reminder job.
"""

import logging

from src.config import settings

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

from src.bot.telegram_bot import main

if __name__ == "__main__":
    main()
