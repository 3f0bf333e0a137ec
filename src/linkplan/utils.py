"""Shared utilities for linkplan."""

import contextlib
import os
from pathlib import Path


def atomic_write_text(filepath: Path, text: str, encoding: str = "utf-8") -> None:
    """Write text to a file atomically to prevent corruption on crash."""
    tmp_path = filepath.with_suffix(filepath.suffix + ".tmp")
    try:
        tmp_path.write_text(text, encoding=encoding)
        os.replace(tmp_path, filepath)
    except BaseException:
        with contextlib.suppress(OSError):
            tmp_path.unlink()
        raise


def point_latest_link(link: Path, target: Path) -> None:
    """Create *target* and (re)point the symlink *link* at it atomically."""
    target.mkdir(parents=True, exist_ok=True)
    tmp_link = link.with_name(link.name + ".tmp")
    with contextlib.suppress(FileNotFoundError):
        tmp_link.unlink()
    try:
        os.symlink(target.resolve(), tmp_link, target_is_directory=True)
        os.replace(tmp_link, link)
    except BaseException:
        with contextlib.suppress(OSError):
            tmp_link.unlink()
        raise
