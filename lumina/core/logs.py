from __future__ import annotations

import logging

from .config import get_log_level


def configure_logging() -> None:
    root = logging.getLogger()
    if root.handlers:
        root.setLevel(get_log_level())
        return
    logging.basicConfig(level=get_log_level(), format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
