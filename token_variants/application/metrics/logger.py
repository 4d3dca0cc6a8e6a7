from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path


class ReopeningRotatingFileHandler(RotatingFileHandler):
    """
    RotatingFileHandler that reopens its file when it was deleted underneath it.
    """

    def emit(self, record):
        if self.stream and not Path(self.baseFilename).exists():
            self.stream.close()
            self.stream = self._open()
        super().emit(record)


def configure_metrics_logger(
    path: str,
    *,
    max_bytes: int = 5_000_000,
    backups: int = 5,
    logger_name: str = "metrics.actions",
) -> logging.Logger:
    """
    Route the metrics logger to a JSON-lines file, rotated by size.
    Calling it again with the same path keeps the existing handler.
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(logger_name)
    logger.setLevel(logging.INFO)
    logger.propagate = False

    for handler in logger.handlers[:]:
        if getattr(handler, "baseFilename", None) == os.path.abspath(target):
            return logger
        logger.removeHandler(handler)
        handler.close()

    handler = ReopeningRotatingFileHandler(
        filename=target,
        maxBytes=max_bytes,
        backupCount=backups,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    return logger
