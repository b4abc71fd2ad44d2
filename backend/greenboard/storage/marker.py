"""Marker file persistence with atomic writes.

The marker file is the single tracked file whose content changes before
every commit. Its schema is {date, message, timestamp, id}.
"""

import json
import logging
import shutil
import tempfile
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def write_marker(path: Path, payload: dict[str, Any]) -> None:
    """Atomically replace the marker file with `payload` as JSON.

    Uses a tempfile -> rename in the same directory so a crash mid-write
    never leaves a truncated marker behind.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    temp_path: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            delete=False,
            suffix=".json",
            encoding="utf-8",
        ) as temp_file:
            json.dump(payload, temp_file, indent=2)
            temp_file.write("\n")
            temp_path = Path(temp_file.name)

        shutil.move(str(temp_path), str(path))
        logger.debug(f"Wrote marker file {path}")

    except Exception as e:
        if temp_path is not None:
            temp_path.unlink(missing_ok=True)
        logger.error(f"Failed to write marker file {path}: {e}")
        raise


def read_marker(path: Path) -> dict[str, Any] | None:
    """Return the current marker payload, or None if the file is missing."""
    if not path.exists():
        return None
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)
