from __future__ import annotations

import json
from pathlib import Path

from .base import Exporter
from ..report import RunReport


class JSONExporter(Exporter):
    def export(self, report: RunReport, path: str) -> None:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(report.to_dict(), f, indent=2, ensure_ascii=False)
