from __future__ import annotations

import csv
from pathlib import Path

from .base import Exporter
from ..report import RunReport


class CSVExporter(Exporter):
    """
    Writes one ``metric,value`` row per report metric, followed by one
    ``target,<url>`` row per targeted URL.
    """

    _headers = ["field", "value"]

    def export(self, report: RunReport, path: str) -> None:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8", newline="") as f:
            w = csv.writer(f)
            w.writerow(self._headers)
            w.writerow(["url", report.url])
            w.writerow(["mode", report.mode])
            w.writerow(["interrupted", report.interrupted])
            for name, value in report.metrics.to_dict().items():
                w.writerow([name, value])
            for target in report.targets:
                w.writerow(["target", target])
