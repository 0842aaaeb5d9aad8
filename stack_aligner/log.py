from __future__ import annotations

import logging
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def initialize_logging(verbose: bool = False, log_file: Optional[str] = None) -> logging.Logger:
    """Configure the root logger once for command line runs.

    Leaves an already configured root logger alone so that embedding
    applications keep their own handlers.
    """
    root_logger = logging.getLogger()
    if root_logger.hasHandlers() and root_logger.level != logging.NOTSET:
        return root_logger

    level = logging.DEBUG if verbose else logging.INFO
    formatter = logging.Formatter(LOG_FORMAT)

    sh = logging.StreamHandler(sys.stderr)
    sh.setLevel(level)
    sh.setFormatter(formatter)
    root_logger.addHandler(sh)

    if log_file:
        fh = logging.FileHandler(log_file, mode="a")
        fh.setLevel(level)
        fh.setFormatter(formatter)
        root_logger.addHandler(fh)

    root_logger.setLevel(level)
    return root_logger
