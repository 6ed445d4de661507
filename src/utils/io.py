"""
I/O Utilities

File input/output operations for configuration and validation reports.
"""

import json
from pathlib import Path
from typing import Any, Dict

import yaml


def load_yaml(file_path: Path) -> Dict[str, Any]:
    """Load YAML file, returning an empty dict for an empty document."""
    with open(file_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def save_json(data: Any, file_path: Path, indent: int = 2):
    """Save data to JSON file, creating parent directories."""
    file_path.parent.mkdir(parents=True, exist_ok=True)
    with open(file_path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=indent, ensure_ascii=False)
