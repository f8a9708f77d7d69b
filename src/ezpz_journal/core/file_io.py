"""Safe file I/O utilities.

Provides an atomic whole-file replace for JSON documents with file
locking (``fcntl``) and ``fsync`` to minimise data loss on crash or
concurrent access.
"""

from __future__ import annotations

import fcntl
import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


def atomic_write_text(path: Path, text: str) -> None:
    """Replace the contents of *path* with *text* atomically.

    * The payload is written to a sibling ``.tmp`` file and ``os.fsync``-ed
      before ``os.replace`` swaps it in, so readers see either the old or
      the new document, never a truncated one.
    * ``fcntl.LOCK_EX`` on a ``.lock`` sidecar serialises writers from
      concurrent processes / threads that share the same file.
    * Parent directories are created on demand.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    lock_path = path.with_name(path.name + ".lock")
    tmp_path = path.with_name(path.name + ".tmp")
    with open(lock_path, "a") as lock:
        fcntl.flock(lock.fileno(), fcntl.LOCK_EX)
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
        finally:
            fcntl.flock(lock.fileno(), fcntl.LOCK_UN)


def read_text_or_none(path: Path) -> str | None:
    """Return the file contents, or ``None`` if it does not exist."""
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
