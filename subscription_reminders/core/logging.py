import logging
import os
from typing import Optional


def configure_logging(level: Optional[str] = None) -> None:
    """Configure logging defaults shared by the API and the reminder script."""
    resolved = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=resolved,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    # SMTP sessions log per message at DEBUG; keep the sweep output readable.
    logging.getLogger("smtplib").setLevel(logging.WARNING)
