"""File-based persistence for planning run outputs."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

from ..config import settings


class FileStorage:
    """Writes run artifacts under ``<data_root>/outputs/<prefix>_<UTC timestamp>/``."""

    def __init__(self, root: Path | None = None) -> None:
        self.root = (root or settings.data_root).resolve()
        self.output_root = self.root / "outputs"
        self.output_root.mkdir(parents=True, exist_ok=True)

    def make_run_directory(self, prefix: str) -> Path:
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
        path = self.output_root / f"{prefix}_{timestamp}"
        path.mkdir(parents=True, exist_ok=False)
        return path

    def save_run(self, prefix: str, artifacts: Mapping[str, Any]) -> Path:
        """Create a run directory and write each artifact into it.

        Mappings and lists are written as indented JSON, strings as UTF-8 text.
        """
        run_dir = self.make_run_directory(prefix)
        for file_name, content in artifacts.items():
            path = run_dir / file_name
            with path.open("w", encoding="utf-8", newline="") as handle:
                if isinstance(content, str):
                    handle.write(content)
                else:
                    json.dump(content, handle, ensure_ascii=False, indent=2)
        return run_dir
