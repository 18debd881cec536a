from __future__ import annotations

import threading
import time
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional

BYTES_PER_MB = 1024 * 1024


@dataclass(frozen=True)
class Transaction:
    """
    One HTTP request/response outcome. A status of 0 means the request failed
    at the transport layer and never produced a protocol status.
    """
    url: str
    status: int
    elapsed_ms: float
    size: int
    main: bool = True

    @property
    def ok(self) -> bool:
        return is_success(self.status)


def is_success(status: int) -> bool:
    return 0 < status < 400


@dataclass(frozen=True)
class StatsSnapshot:
    """Consistent, read-only view of the aggregate taken under the stats lock."""
    transactions: int
    successful: int
    failed: int
    elapsed: float
    bytes_transferred: int
    data_transferred_mb: float
    avg_response_time: float
    transaction_rate: float
    throughput: float
    concurrency: float
    availability: float
    longest_transaction: float
    shortest_transaction: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class Stats:
    """
    Thread-safe aggregate of every recorded transaction.

    All counters and the response-time list are guarded by one lock, so
    ``successful + failed == transactions`` holds for any reader. Derived
    metrics take the same lock and never mutate state; they can be called
    mid-run (e.g. while handling an interrupt).
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.transactions = 0
        self.successful = 0
        self.failed = 0
        self.response_times: List[float] = []
        self.bytes_transferred = 0
        self.start_time = time.monotonic()
        self.end_time: Optional[float] = None

    def record(self, response_time_ms: float, byte_size: int, status_code: int) -> None:
        with self._lock:
            self.transactions += 1
            if is_success(status_code):
                self.successful += 1
            else:
                self.failed += 1
            self.response_times.append(float(response_time_ms))
            self.bytes_transferred += byte_size

    def add(self, transaction: Transaction) -> None:
        self.record(transaction.elapsed_ms, transaction.size, transaction.status)

    def finalize(self) -> None:
        # Overwrites end_time on every call; callers finalize once per run.
        with self._lock:
            self.end_time = time.monotonic()

    @property
    def finalized(self) -> bool:
        return self.end_time is not None

    def elapsed(self) -> float:
        with self._lock:
            return self._elapsed()

    # ---- Derived metrics ----------------------------------------------------

    def avg_response_time(self) -> float:
        with self._lock:
            return self._avg_response_time()

    def transaction_rate(self) -> float:
        with self._lock:
            return self._transaction_rate()

    def throughput(self) -> float:
        with self._lock:
            return self._throughput()

    def concurrency(self) -> float:
        with self._lock:
            return self._concurrency()

    def availability(self) -> float:
        with self._lock:
            return self._availability()

    def longest_transaction(self) -> float:
        with self._lock:
            return max(self.response_times) if self.response_times else 0.0

    def shortest_transaction(self) -> float:
        with self._lock:
            return min(self.response_times) if self.response_times else 0.0

    def snapshot(self) -> StatsSnapshot:
        with self._lock:
            times = self.response_times
            return StatsSnapshot(
                transactions=self.transactions,
                successful=self.successful,
                failed=self.failed,
                elapsed=self._elapsed(),
                bytes_transferred=self.bytes_transferred,
                data_transferred_mb=self.bytes_transferred / BYTES_PER_MB,
                avg_response_time=self._avg_response_time(),
                transaction_rate=self._transaction_rate(),
                throughput=self._throughput(),
                concurrency=self._concurrency(),
                availability=self._availability(),
                longest_transaction=max(times) if times else 0.0,
                shortest_transaction=min(times) if times else 0.0,
            )

    # ---- Lock-free helpers (caller holds the lock) --------------------------

    def _elapsed(self) -> float:
        end = self.end_time if self.end_time is not None else time.monotonic()
        return end - self.start_time

    def _avg_response_time(self) -> float:
        if not self.response_times:
            return 0.0
        return sum(self.response_times) / len(self.response_times)

    def _transaction_rate(self) -> float:
        elapsed = self._elapsed()
        if self.transactions == 0 or elapsed <= 0:
            return 0.0
        return self.transactions / elapsed

    def _throughput(self) -> float:
        elapsed = self._elapsed()
        if self.bytes_transferred == 0 or elapsed <= 0:
            return 0.0
        return self.bytes_transferred / BYTES_PER_MB / elapsed

    def _concurrency(self) -> float:
        return self._avg_response_time() * self._transaction_rate() / 1000.0

    def _availability(self) -> float:
        if self.transactions == 0:
            return 0.0
        return self.successful / self.transactions * 100.0
