"""Utility for configuring project wide logging behaviour."""

import logging
import sys


def setup_logging(level: int = logging.INFO):
    """Initialise logging handlers and adjust default noisy loggers."""
    fmt = "[%(asctime)s] %(levelname)s:%(name)s: %(message)s"
    logging.basicConfig(
        level=level,
        format=fmt,
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    logging.getLogger("discord").setLevel(logging.INFO)
    # The gateway client logs every HTTP round trip at DEBUG.
    logging.getLogger("discord.http").setLevel(logging.WARNING)
