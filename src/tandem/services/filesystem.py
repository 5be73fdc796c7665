"""Local file I/O helpers."""

import contextlib
import os
from pathlib import Path


def write_file_atomic(path: Path, content: str, mode: int | None = None) -> None:
    """Write ``content`` to ``path`` via a temp file and rename.

    The rename replaces the directory entry, so it succeeds even when the
    existing target is read-only.

    Args:
        path: Destination file
        content: Text to write
        mode: Optional permission bits applied to the temp file before rename
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.parent / f".{path.name}.tmp.{os.getpid()}"
    try:
        tmp_path.write_text(content, encoding="utf-8")
        if mode is not None:
            tmp_path.chmod(mode)
        os.replace(tmp_path, path)
    except BaseException:
        with contextlib.suppress(FileNotFoundError):
            tmp_path.unlink()
        raise


def remove_file(path: Path) -> None:
    """Remove a file if it exists."""
    path.unlink(missing_ok=True)
