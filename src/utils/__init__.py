"""
Shared Utilities

Logging setup and file I/O helpers used across all modules.
"""

from .io import load_yaml, save_json
from .logging_config import setup_logging

__all__ = [
    "load_yaml",
    "save_json",
    "setup_logging",
]
