"""Recording session counters and their end-of-session summary."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field, fields

_MIN_SECS = 1e-9
_RULE = "━" * 43


@dataclass(frozen=True)
class MetricsSummary:
    """Snapshot of the recorder counters, for display and tests."""

    duration_secs: float
    samples_recorded: int
    blocks_written: int
    dropped_samples: int
    write_errors: int
    bytes_written: int
    throughput_msps: float
    write_speed_mbps: float
    drop_rate_pct: float

    def __str__(self) -> str:
        return "\n".join(
            [
                _RULE,
                f"  Duration      : {self.duration_secs:.1f}s",
                f"  Samples       : {self.samples_recorded}",
                f"  Blocks        : {self.blocks_written}",
                f"  Dropped       : {self.dropped_samples} ({self.drop_rate_pct:.2f}%)",
                f"  Write errors  : {self.write_errors}",
                f"  Bytes written : {self.bytes_written / 1e6:.1f} MB",
                f"  Throughput    : {self.throughput_msps:.3f} Msps",
                f"  Write speed   : {self.write_speed_mbps:.1f} MB/s",
                _RULE,
            ]
        )


@dataclass
class RecorderMetrics:
    """Counters shared between the capture and writer threads.

    Times passed as ``start`` are ``time.monotonic()`` values.
    """

    samples_recorded: int = 0
    blocks_written: int = 0
    dropped_samples: int = 0
    write_errors: int = 0
    bytes_written: int = 0
    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False, compare=False
    )

    def add(self, name: str, amount: int = 1) -> int:
        """Atomically add ``amount`` to the counter ``name``; return the new value."""
        if name.startswith("_") or name not in {f.name for f in fields(self)}:
            raise AttributeError(f"Unknown recorder counter: {name!r}")
        with self._lock:
            value = getattr(self, name) + amount
            setattr(self, name, value)
        return value

    def throughput_msps(self, start: float) -> float:
        """Recorded samples per second since ``start``, in Msps."""
        secs = time.monotonic() - start
        if secs < _MIN_SECS:
            return 0.0
        return self.samples_recorded / secs / 1_000_000.0

    def write_speed_mbps(self, start: float) -> float:
        """Bytes written per second since ``start``, in MB/s."""
        secs = time.monotonic() - start
        if secs < _MIN_SECS:
            return 0.0
        return self.bytes_written / secs / 1_000_000.0

    def drop_rate_pct(self) -> float:
        """Share of samples lost, as a percentage from 0 to 100."""
        recorded = self.samples_recorded
        dropped = self.dropped_samples
        total = recorded + dropped
        if total == 0:
            return 0.0
        return dropped / total * 100.0

    def summary(self, start: float) -> MetricsSummary:
        """Snapshot of all counters and rates since ``start``."""
        with self._lock:
            samples = self.samples_recorded
            blocks = self.blocks_written
            dropped = self.dropped_samples
            errors = self.write_errors
            written = self.bytes_written
        return MetricsSummary(
            duration_secs=time.monotonic() - start,
            samples_recorded=samples,
            blocks_written=blocks,
            dropped_samples=dropped,
            write_errors=errors,
            bytes_written=written,
            throughput_msps=self.throughput_msps(start),
            write_speed_mbps=self.write_speed_mbps(start),
            drop_rate_pct=self.drop_rate_pct(),
        )