"""Paced replay of IQ blocks: UDP packet framing, metrics and timing control."""

from __future__ import annotations

import struct
import sys
import threading
import time
from dataclasses import dataclass, field, fields

from glos.format import IqBlock

UDP_MAX_PAYLOAD = 65_507
"""Largest UDP payload over IPv4."""

UDP_TIMESTAMP_SIZE = 8
UDP_SAMPLE_COUNT_SIZE = 2
UDP_HEADER_SIZE = UDP_TIMESTAMP_SIZE + UDP_SAMPLE_COUNT_SIZE

_U16_MAX = 0xFFFF
_PAUSE_POLL_SECS = 0.02
_UNDERRUN_THRESHOLD_NS = 1_000_000
_MIN_SPEED = 0.01
_RULE = "━" * 43


def encode_udp_packet(block: IqBlock) -> bytes:
    """Frame a block as a UDP payload.

    Layout (big-endian): u64 timestamp in ns, u16 sample count, raw IQ bytes.
    """
    max_data = UDP_MAX_PAYLOAD - UDP_HEADER_SIZE
    if len(block.data) > max_data:
        raise ValueError(
            f"Block data {len(block.data)} bytes exceeds UDP payload limit {max_data} bytes"
        )
    if block.sample_count > _U16_MAX:
        raise ValueError(
            f"sample_count {block.sample_count} exceeds u16 range ({_U16_MAX})"
        )
    return struct.pack(">QH", block.timestamp_ns, block.sample_count) + bytes(block.data)


def decode_udp_packet(buf: bytes) -> tuple[int, int, bytes]:
    """Split a UDP payload into ``(timestamp_ns, sample_count, iq_data)``."""
    if len(buf) < UDP_HEADER_SIZE:
        raise ValueError(f"Packet too short: {len(buf)} < {UDP_HEADER_SIZE}")
    timestamp_ns, sample_count = struct.unpack_from(">QH", buf, 0)
    return timestamp_ns, sample_count, bytes(buf[UDP_HEADER_SIZE:])


@dataclass
class ReplayMetrics:
    """Thread-safe counters for a replay session."""

    packets_sent: int = 0
    samples_sent: int = 0
    bytes_sent: int = 0
    underruns: int = 0
    send_errors: int = 0
    timing_error_ns_total: int = 0
    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False, compare=False
    )

    def add(self, name: str, amount: int = 1) -> int:
        """Atomically add ``amount`` to the counter ``name``; return the new value."""
        if name.startswith("_") or name not in {f.name for f in fields(self)}:
            raise AttributeError(f"Unknown replay counter: {name!r}")
        with self._lock:
            value = getattr(self, name) + amount
            setattr(self, name, value)
        return value

    def throughput_msps(self, start: float) -> float:
        """Average send rate in Msps since ``start`` (a ``time.monotonic()`` value)."""
        secs = max(time.monotonic() - start, 1e-9)
        return self.samples_sent / secs / 1_000_000.0

    def avg_timing_error_us(self) -> float:
        """Mean timing error per packet in microseconds."""
        if self.packets_sent == 0:
            return 0.0
        return self.timing_error_ns_total / self.packets_sent / 1_000.0

    def summary_text(self, start: float) -> str:
        """Multi-line summary of the session since ``start``."""
        elapsed = time.monotonic() - start
        return "\n".join(
            [
                _RULE,
                f"  Duration      : {elapsed:.1f}s",
                f"  Packets sent  : {self.packets_sent}",
                f"  Samples sent  : {self.samples_sent}",
                f"  Bytes sent    : {self.bytes_sent / 1e6:.1f} MB",
                f"  Underruns     : {self.underruns}",
                f"  Send errors   : {self.send_errors}",
                f"  Throughput    : {self.throughput_msps(start):.3f} Msps",
                f"  Timing error  : {self.avg_timing_error_us():.1f} µs avg",
                _RULE,
            ]
        )

    def print_summary(self, start: float) -> None:
        """Print the session summary to standard error."""
        print(self.summary_text(start), file=sys.stderr)


class TimingController:
    """Paces replay so that blocks go out at file time scaled by ``speed``.

    Each block's send moment is computed relative to the session start. When
    ahead, the controller sleeps; when behind by more than 1 ms it counts an
    underrun and carries on without delay.
    """

    def __init__(self, speed: float, paused: threading.Event) -> None:
        self.speed = max(speed, _MIN_SPEED)
        self._paused = paused
        self._session_start_ns = time.monotonic_ns()
        self._file_start_ns: int | None = None

    def reset(self) -> None:
        """Restart the clock, e.g. at start or after a long pause."""
        self._session_start_ns = time.monotonic_ns()
        self._file_start_ns = None

    def _elapsed_ns(self) -> int:
        return time.monotonic_ns() - self._session_start_ns

    def elapsed_virtual_ns(self) -> int:
        """Real time since session start scaled by ``speed``, in ns."""
        return int(self._elapsed_ns() * self.speed)

    def wait_for(self, timestamp_ns: int, metrics: ReplayMetrics) -> int:
        """Block until the block stamped ``timestamp_ns`` is due; return timing error in ns."""
        while self._paused.is_set():
            time.sleep(_PAUSE_POLL_SECS)
            # Shift the session start across the pause to avoid a burst on resume.
            virtual = self.elapsed_virtual_ns()
            now = time.monotonic_ns()
            self._session_start_ns = now - virtual if virtual <= now else now

        if self._file_start_ns is None:
            self._file_start_ns = timestamp_ns
        file_offset_ns = max(0, timestamp_ns - self._file_start_ns)
        real_offset_ns = int(file_offset_ns / self.speed)
        elapsed_ns = self._elapsed_ns()

        if real_offset_ns > elapsed_ns:
            time.sleep((real_offset_ns - elapsed_ns) / 1e9)
            error = max(0, self._elapsed_ns() - real_offset_ns)
            metrics.add("timing_error_ns_total", error)
            return error

        lag = elapsed_ns - real_offset_ns
        if lag > _UNDERRUN_THRESHOLD_NS:
            metrics.add("underruns")
        metrics.add("timing_error_ns_total", lag)
        return lag