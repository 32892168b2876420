"""Application configuration defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

DEFAULT_DB_PATH = Path("data/data.db")


def _default_workers() -> int:
    return os.cpu_count() or 4


@dataclass(slots=True)
class AppConfig:
    db_path: Path | None = None
    normalizer: str = "identity"
    workers: int | None = None
    extensions: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.db_path is None:
            self.db_path = DEFAULT_DB_PATH
        if self.workers is None:
            self.workers = _default_workers()
        if self.workers < 1:
            raise ValueError(f"workers must be at least 1, got {self.workers}")

    def resolve_db_path(self, base_dir: Path | None = None) -> Path:
        if self.db_path is None:
            self.db_path = DEFAULT_DB_PATH
        if Path(self.db_path).is_absolute() or base_dir is None:
            return Path(self.db_path)
        return base_dir / self.db_path
