"""
Logging configuration for command-line entry points.

Library modules only create module-level loggers; the CLI decides where the
records go and how verbose they are.
"""

import logging
from typing import Optional, Union

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(
    level: Union[int, str] = logging.INFO,
    fmt: Optional[str] = None,
) -> None:
    """
    Configure the root logger.

    Args:
        level: Logging level (name or numeric value).
        fmt: Optional log format string.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    logging.basicConfig(level=level, format=fmt or DEFAULT_FORMAT, force=True)

    # PIL and onnxruntime are chatty at DEBUG
    for noisy in ("PIL", "onnxruntime"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
