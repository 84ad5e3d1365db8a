"""
Logging setup.

Logs go to stderr, or to a size-rotated file whose backups are optionally
gzip-compressed and pruned after ``max_age`` days.
"""

import gzip
import logging
import os
import shutil
import sys
import time
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class CompressingRotatingFileHandler(RotatingFileHandler):
    """RotatingFileHandler that gzips rotated files and drops old backups."""

    def __init__(
        self,
        filename: str,
        max_bytes: int,
        backup_count: int,
        max_age_days: int = 0,
        compress: bool = True,
    ):
        super().__init__(filename, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
        self.max_age_days = max_age_days
        if compress:
            self.namer = self._gz_namer
            self.rotator = self._gz_rotator

    @staticmethod
    def _gz_namer(name: str) -> str:
        return name + ".gz"

    @staticmethod
    def _gz_rotator(source: str, dest: str) -> None:
        with open(source, "rb") as f_in, gzip.open(dest, "wb") as f_out:
            shutil.copyfileobj(f_in, f_out)
        os.remove(source)

    def doRollover(self) -> None:
        super().doRollover()
        if self.max_age_days > 0:
            self._prune_backups()

    def _prune_backups(self) -> None:
        cutoff = time.time() - self.max_age_days * 86400
        base = Path(self.baseFilename)
        for backup in base.parent.glob(base.name + ".*"):
            try:
                if backup.stat().st_mtime < cutoff:
                    backup.unlink()
            except OSError:
                continue


def configure_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[str] = None,
    max_size_mb: int = 1,
    max_backups: int = 3,
    max_age_days: int = 10,
    compress: bool = True,
) -> None:
    """Configure the root logger so uvicorn and hookrelay share one sink."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger()
    root.setLevel(level)

    # Remove existing handlers
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    if log_file:
        handler: logging.Handler = CompressingRotatingFileHandler(
            log_file,
            max_bytes=max_size_mb * 1024 * 1024,
            backup_count=max_backups,
            max_age_days=max_age_days,
            compress=compress,
        )
    else:
        handler = logging.StreamHandler(sys.stderr)

    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
