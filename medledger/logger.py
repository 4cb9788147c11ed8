from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler

from medledger.config import LedgerConfig

LOG_FILE = "medledger.log"


def setup_logging(config: LedgerConfig) -> logging.Logger:
    """
    Route the ``medledger`` loggers to ``<log_dir>/medledger.log`` and stderr.

    Debug configs log at DEBUG and keep werkzeug's per-request lines; otherwise
    the ledger logs at INFO and werkzeug is held to warnings.
    """
    os.makedirs(config.log_dir, exist_ok=True)
    level = logging.DEBUG if config.debug else logging.INFO

    logger = logging.getLogger("medledger")
    logger.setLevel(level)
    logger.propagate = False
    logging.getLogger("werkzeug").setLevel(logging.DEBUG if config.debug else logging.WARNING)

    path = os.path.abspath(os.path.join(config.log_dir, LOG_FILE))
    have_file = any(
        isinstance(h, RotatingFileHandler) and os.path.abspath(h.baseFilename) == path for h in logger.handlers
    )
    if not have_file:
        fh = RotatingFileHandler(path, maxBytes=1_000_000, backupCount=5, encoding="utf-8")
        fh.setFormatter(logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s"))
        logger.addHandler(fh)

    if not any(type(h) is logging.StreamHandler for h in logger.handlers):
        sh = logging.StreamHandler()
        sh.setFormatter(logging.Formatter("[medledger] %(levelname)s %(message)s"))
        logger.addHandler(sh)

    logger.debug("Logging to %s (owner %s)", path, config.owner_address)
    return logger
