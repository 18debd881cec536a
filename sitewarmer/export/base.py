from __future__ import annotations

from typing import Protocol

from ..report import RunReport


class Exporter(Protocol):
    def export(self, report: RunReport, path: str) -> None:
        ...
