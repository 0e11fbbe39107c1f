"""JSONL sink used for dry runs."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

from .base import BaseSink


class FileSink(BaseSink):
    """Append each payload as one JSON line under ``output_dir``."""

    def __init__(self, output_dir: Path, run_tag: str | None = None) -> None:
        self.output_dir = output_dir
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.run_tag = run_tag or datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
        self.path = self.output_dir / f"delivery-{self.run_tag}.jsonl"
        self._file = None
        self.sent = 0

    def send(self, payload: dict) -> None:
        if self._file is None:
            self._file = self.path.open("a", encoding="utf-8")
        json.dump(payload, self._file, ensure_ascii=False)
        self._file.write("\n")
        self._file.flush()
        self.sent += 1

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None


__all__ = ["FileSink"]
