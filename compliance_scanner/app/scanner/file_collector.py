"""
Project file collection.

Builds the immutable ScanContext every layer reads. Collection is the
only filesystem access of a scan; layers never touch the disk.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List

from compliance_scanner.app.schemas.scan import FileInfo, ScanContext

logger = logging.getLogger(__name__)


EXCLUDED_DIRS = frozenset(
    {
        "node_modules",
        ".git",
        "dist",
        "build",
        ".next",
        "__pycache__",
        ".venv",
        "venv",
        "coverage",
    }
)

INCLUDED_EXTENSIONS = frozenset(
    {
        ".ts",
        ".tsx",
        ".js",
        ".jsx",
        ".json",
        ".md",
        ".yaml",
        ".yml",
        ".py",
        ".html",
        ".css",
        ".go",
        ".vue",
        ".toml",
        ".txt",
        ".mod",
    }
)

ENV_FILE_NAMES = frozenset({".env", ".env.example", ".env.local"})


def _is_collectable(path: Path) -> bool:
    if path.name in ENV_FILE_NAMES:
        return True
    return path.suffix.lower() in INCLUDED_EXTENSIONS


def collect_files(
    project_path: str | Path,
    *,
    max_files: int = 500,
    max_file_size: int = 1_048_576,
) -> ScanContext:
    """
    Walk project_path in sorted order and read every collectable file.

    Files that are too large or not valid UTF-8 are skipped. The walk
    stops once max_files files have been collected.
    """
    root = Path(project_path).resolve()
    if not root.is_dir():
        raise NotADirectoryError(f"Project path is not a directory: {root}")

    files: List[FileInfo] = []
    skipped = 0

    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in EXCLUDED_DIRS)

        for name in sorted(filenames):
            if len(files) >= max_files:
                logger.info(
                    "File limit of %d reached in %s; remaining files ignored",
                    max_files,
                    root,
                )
                return ScanContext(project_path=str(root), files=tuple(files))

            path = Path(dirpath) / name
            if not _is_collectable(path):
                continue

            try:
                if path.stat().st_size > max_file_size:
                    skipped += 1
                    continue
                content = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                logger.debug("Skipping unreadable file %s: %s", path, exc)
                skipped += 1
                continue

            files.append(
                FileInfo(
                    path=str(path),
                    relative_path=path.relative_to(root).as_posix(),
                    extension=path.suffix.lower(),
                    content=content,
                )
            )

    logger.debug(
        "Collected %d files from %s (%d skipped)", len(files), root, skipped
    )
    return ScanContext(project_path=str(root), files=tuple(files))
