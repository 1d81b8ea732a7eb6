"""SDR receivers that stream IQ chunks into a queue.

The simulated device produces a complex sine tone with realistic timestamps
and real-time pacing, so the recording pipeline sees data much as it would
from real hardware.
"""

from __future__ import annotations

import abc
import math
import queue
import struct
import threading
import time
from dataclasses import dataclass

from glos.format import IqFormat
from glos.recorder.config import DeviceKind, RecorderConfig
from glos.recorder.errors import DeviceNotFoundError
from glos.recorder.metrics import RecorderMetrics

_AMPLITUDE = 32_767.0
_MAX_TABLE_SAMPLES = 1_000_000


@dataclass
class IqChunk:
    """Raw IQ bytes received from a device in one poll."""

    timestamp_ns: int
    sample_count: int
    data: bytes


@dataclass
class DeviceInfo:
    """Device description for logging and the file header."""

    name: str
    serial: str | None
    sample_rate_hz: int
    center_freq_hz: int
    gain_db: float
    sample_format: IqFormat


class SdrDevice(abc.ABC):
    """An SDR receiver."""

    @abc.abstractmethod
    def info(self) -> DeviceInfo:
        """Description of the device."""

    @abc.abstractmethod
    def run(
        self,
        queue: queue.Queue[IqChunk],
        metrics: RecorderMetrics,
        stop_event: threading.Event,
    ) -> None:
        """Stream IQ chunks into ``queue`` until ``stop_event`` is set."""


def _encode_pairs(start: int, count: int, rate: float, tone: float) -> bytes:
    values: list[int] = []
    for n in range(start, start + count):
        phase = 2.0 * math.pi * tone * (n / rate)
        values.append(int(_AMPLITUDE * math.sin(phase)))
        values.append(int(_AMPLITUDE * math.cos(phase)))
    return struct.pack(f">{len(values)}h", *values)


class SimulatedDevice(SdrDevice):
    """Generates a complex sine tone as big-endian Int16 IQ pairs."""

    def __init__(
        self,
        sample_rate_hz: int,
        center_freq_hz: int,
        gain_db: float,
        chunk_samples: int = 4_096,
        tone_freq_hz: float = 1_000.0,
    ) -> None:
        self.sample_rate_hz = sample_rate_hz
        self.center_freq_hz = center_freq_hz
        self.gain_db = gain_db
        self.chunk_samples = chunk_samples
        self.tone_freq_hz = tone_freq_hz

    def info(self) -> DeviceInfo:
        return DeviceInfo(
            name="Simulate SDR",
            serial="SIM-0001",
            sample_rate_hz=self.sample_rate_hz,
            center_freq_hz=self.center_freq_hz,
            gain_db=self.gain_db,
            sample_format=IqFormat.INT16,
        )

    def _period(self) -> int | None:
        # Number of samples after which the tone repeats exactly, if small.
        tone = self.tone_freq_hz
        if not float(tone).is_integer() or tone <= 0:
            return None
        period = self.sample_rate_hz // math.gcd(self.sample_rate_hz, int(tone))
        return period if period <= _MAX_TABLE_SAMPLES else None

    def _chunk_source(self):
        rate = float(self.sample_rate_hz)
        tone = float(self.tone_freq_hz)
        size = IqFormat.INT16.sample_size()
        n = self.chunk_samples
        period = self._period()

        if period is None:
            return lambda start: _encode_pairs(start, n, rate, tone)

        reps = 1 + -(-n // period)
        table = _encode_pairs(0, period, rate, tone) * (reps + 1)

        def from_table(start: int) -> bytes:
            offset = (start % period) * size
            return table[offset : offset + n * size]

        return from_table

    def run(
        self,
        queue: queue.Queue[IqChunk],
        metrics: RecorderMetrics,
        stop_event: threading.Event,
    ) -> None:
        sample_period_ns = 1_000_000_000.0 / self.sample_rate_hz
        start_mono = time.monotonic()
        start_epoch_ns = time.time_ns()
        make_chunk = self._chunk_source()
        global_sample = 0

        while not stop_event.is_set():
            chunk = IqChunk(
                timestamp_ns=start_epoch_ns + int(global_sample * sample_period_ns),
                sample_count=self.chunk_samples,
                data=make_chunk(global_sample),
            )
            try:
                queue.put_nowait(chunk)
            except _QueueFull:
                metrics.add("dropped_samples", chunk.sample_count)

            global_sample += self.chunk_samples

            expected = global_sample * sample_period_ns / 1e9
            elapsed = time.monotonic() - start_mono
            if expected > elapsed and stop_event.wait(expected - elapsed):
                break


_QueueFull = queue.Full


def create_device(config: RecorderConfig) -> SdrDevice:
    """The device selected by ``config``."""
    if config.device is DeviceKind.SIMULATED:
        return SimulatedDevice(config.sample_rate_hz, config.center_freq_hz, config.gain_db)
    if config.device is DeviceKind.HACKRF:
        raise DeviceNotFoundError("HackRF support is not available in this build")
    raise DeviceNotFoundError("PlutoSDR support not yet implemented (planned for GLOS-3)")