from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def get_logger(name: str = "aisis_extract", level: int = logging.INFO) -> logging.Logger:
    """
    Package logger:
    - Logs to stderr
    - Idempotent (no duplicate handlers); a second call only updates the level

    Configuring the package logger also covers every ``aisis_extract.*``
    module logger through propagation.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    if logger.handlers:
        return logger

    sh = logging.StreamHandler()
    sh.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(sh)
    logger.propagate = False
    return logger
