"""Utilities for saving analysis outputs."""

from __future__ import annotations

import json
import logging
import os
import uuid
from contextlib import suppress
from pathlib import Path
from typing import Any

from pydantic import BaseModel

logger = logging.getLogger(__name__)


def ensure_directory(path: str | Path) -> Path:
    """Create a directory if it does not exist and return it."""

    directory = Path(path)
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def _atomic_write_text(path: Path, content: str) -> None:
    """Replace file contents via temp-write + rename."""

    ensure_directory(path.parent)
    temp_path = path.parent / f".{path.name}.{uuid.uuid4().hex}.tmp"
    try:
        with temp_path.open("w", encoding="utf-8") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(temp_path, path)
    finally:
        if temp_path.exists():
            with suppress(OSError):
                temp_path.unlink()
    logger.debug("Wrote %s", path)


def save_json(path: str | Path, payload: dict[str, Any] | BaseModel) -> Path:
    """Save a JSON object (or pydantic model, by alias) to disk."""

    file_path = Path(path)
    data = (
        payload.model_dump(mode="json", by_alias=True)
        if isinstance(payload, BaseModel)
        else payload
    )
    content = json.dumps(data, ensure_ascii=True, indent=2) + "\n"
    _atomic_write_text(file_path, content)
    return file_path
