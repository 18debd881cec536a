from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

from .stats import StatsSnapshot


@dataclass
class RunReport:
    """Final outcome of a run: the metrics plus the URLs that were targeted."""
    url: str
    mode: str
    metrics: StatsSnapshot
    targets: List[str] = field(default_factory=list)
    interrupted: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "mode": self.mode,
            "interrupted": self.interrupted,
            "metrics": self.metrics.to_dict(),
            "targets": list(self.targets),
        }


def render_report(report: RunReport) -> str:
    """Siege-style summary block."""
    m = report.metrics
    rows = [
        ("Transactions:", f"{m.transactions} hits"),
        ("Availability:", f"{m.availability:.2f} %"),
        ("Elapsed time:", f"{m.elapsed:.2f} secs"),
        ("Data transferred:", f"{m.data_transferred_mb:.2f} MB"),
        ("Response time:", f"{m.avg_response_time:.2f} ms"),
        ("Transaction rate:", f"{m.transaction_rate:.2f} trans/sec"),
        ("Throughput:", f"{m.throughput:.2f} MB/sec"),
        ("Concurrency:", f"{m.concurrency:.2f}"),
        ("Successful transactions:", f"{m.successful}"),
        ("Failed transactions:", f"{m.failed}"),
        ("Longest transaction:", f"{m.longest_transaction:.2f} ms"),
        ("Shortest transaction:", f"{m.shortest_transaction:.2f} ms"),
    ]
    width = max(len(label) for label, _ in rows) + 2
    lines = ["", "Lifting the server siege..." if report.interrupted else "Done."]
    lines.extend(f"{label:<{width}}{value:>16}" for label, value in rows)
    lines.append("")
    return "\n".join(lines)
