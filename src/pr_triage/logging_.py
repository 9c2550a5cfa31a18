"""Logging utilities.

We use Python's standard `logging` module with a plain structured format that
is easy to grep and to ship to a log collector.

- Logs go to: `<log_dir>/<run_id>.log`
- Also prints concise progress to stderr.

Library modules only create named loggers (`pr_triage.<area>`); handlers are
configured once, by the CLI.
"""

from __future__ import annotations
import logging
import os
from typing import Union

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


def setup_logging(log_dir: str, run_id: str, level: Union[int, str] = logging.INFO) -> str:
    """Configure the root logger with a file and a console handler.

    Returns the log file path.
    """
    os.makedirs(log_dir, exist_ok=True)
    log_path = os.path.join(log_dir, f"{run_id}.log")

    root = logging.getLogger()
    root.setLevel(level.upper() if isinstance(level, str) else level)

    fmt = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    # File
    fh = logging.FileHandler(log_path, encoding="utf-8")
    fh.setFormatter(fmt)
    root.addHandler(fh)

    # Console
    ch = logging.StreamHandler()
    ch.setFormatter(fmt)
    root.addHandler(ch)
    return log_path
