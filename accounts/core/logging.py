import logging
import os
from typing import Optional


def configure_logging(level: Optional[str] = None) -> None:
    """Configure logging defaults for the accounts service."""
    resolved = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=resolved,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    # httpx logs full request URLs at INFO, including the CRM endpoint
    logging.getLogger("httpx").setLevel(max(logging.WARNING, logging.getLevelName(resolved)))
