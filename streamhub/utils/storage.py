"""
JSON File Storage
Atomic read/write helpers for the flat-file stores
"""
import json
import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def read_json(path: Path, fallback: Any = None) -> Any:
    """
    Read a JSON document, returning `fallback` if missing or malformed
    """
    try:
        with open(path, "r", encoding="utf-8") as fh:
            return json.load(fh)
    except FileNotFoundError:
        logger.info(f"No stored data at {path}")
        return fallback
    except (OSError, ValueError) as e:
        logger.warning(f"Failed to read {path}: {e}")
        return fallback


def write_json(path: Path, data: Any) -> bool:
    """
    Atomically write a pretty-printed JSON document

    Writes to a sibling temp file and renames it over the target, so a
    crash mid-write never leaves a truncated store behind.

    Returns:
        True on success, False if the write failed (already logged)
    """
    tmp = path.with_suffix(path.suffix + ".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(tmp, "w", encoding="utf-8") as fh:
            json.dump(data, fh, ensure_ascii=False, indent=2)
        os.replace(tmp, path)
        return True
    except (OSError, TypeError, ValueError) as e:
        logger.warning(f"Failed to save {path}: {e}")
        return False
