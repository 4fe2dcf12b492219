"""Atomic file writes with fsync for project directory files. Layer 0."""

from __future__ import annotations

import json
import os
import uuid
from pathlib import Path
from typing import Any


def atomic_write_bytes_at(final_path: Path, content: bytes, temp_prefix: str) -> None:
    """Write bytes to final_path atomically: temp -> fsync -> rename -> fsync dir.

    The temp file is created next to final_path so the rename stays on one
    filesystem. On failure the temp file is removed and final_path is untouched.

    Args:
        final_path: Destination path. Parent directories are created.
        content: Raw bytes to write.
        temp_prefix: Prefix for the temp filename, e.g. "manifest" or "screen".
    """
    parent = final_path.parent
    parent.mkdir(parents=True, exist_ok=True)
    temp_path = parent / f".{temp_prefix}.{os.getpid()}.{uuid.uuid4().hex[:8]}.tmp"
    try:
        fd = os.open(
            str(temp_path),
            os.O_WRONLY | os.O_CREAT | os.O_TRUNC,
            0o644,
        )
        try:
            os.write(fd, content)
            os.fsync(fd)
        finally:
            os.close(fd)
        os.replace(temp_path, final_path)
        try:
            dir_fd = os.open(str(parent), os.O_RDONLY)
            try:
                os.fsync(dir_fd)
            finally:
                os.close(dir_fd)
        except OSError:
            pass  # e.g. Windows: directory fsync best-effort
    finally:
        if temp_path.exists():
            temp_path.unlink(missing_ok=True)


def atomic_write_json_at(final_path: Path, data: dict[str, Any], temp_prefix: str) -> None:
    """Write a JSON document atomically (see atomic_write_bytes_at).

    Args:
        final_path: Destination path for the JSON file.
        data: JSON-serializable dict (e.g. from .to_file_dict()).
        temp_prefix: Prefix for the temp filename.
    """
    content_bytes = json.dumps(data, indent=2).encode("utf-8")
    atomic_write_bytes_at(final_path, content_bytes, temp_prefix)


def read_json_file(path: Path) -> dict[str, Any]:
    """Load a JSON object from path.

    Raises:
        FileNotFoundError: If path does not exist.
        ValueError: If the document root is not an object.
    """
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    payload = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError(f"Expected JSON object in {path}")
    return payload
