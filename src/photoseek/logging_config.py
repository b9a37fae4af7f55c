"""Process-wide logging setup for the API and the CLI."""

import logging

from photoseek.settings import Settings


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, str(settings.log_level or "INFO").upper(), logging.INFO),
        format=LOG_FORMAT,
    )
    # Request lines from httpx are noise at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)
