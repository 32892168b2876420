"""Utility helpers for working with files."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, Iterator, Sequence


def _matches(path: Path, extensions: Sequence[str]) -> bool:
    if not extensions:
        return True
    wanted = {("." + ext.lstrip(".")).lower() for ext in extensions}
    return path.suffix.lower() in wanted


def iter_text_paths(inputs: Iterable[Path], extensions: Sequence[str] = ()) -> Iterator[Path]:
    """Yield file paths from input paths, descending into directories.

    An empty ``extensions`` sequence accepts every regular file.
    """
    for item in inputs:
        item = Path(item)
        if item.is_dir():
            yield from iter_text_paths(
                sorted(child for child in item.rglob("*") if child.is_file()), extensions
            )
        elif item.is_file() and _matches(item, extensions):
            yield item


def normalize_document_path(path: Path | str) -> str:
    """Canonical identifier of a document: its normalized POSIX path."""
    return Path(os.path.normpath(path)).as_posix()
