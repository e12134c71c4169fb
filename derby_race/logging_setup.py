import logging
import sys

from derby_race.config import LOG_LEVEL


def configure_logging(level=None):
    """Configures root logging for entry points. Library modules only use getLogger."""
    level_name = (level or LOG_LEVEL or "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )
