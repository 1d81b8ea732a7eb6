"""Recording session: capture thread feeding a block writer."""

from __future__ import annotations

import logging
import queue
import threading
import time
from typing import Callable

from glos.format import GlosError, GlosHeader, IqBlock
from glos.recorder.config import RecorderConfig
from glos.recorder.device import IqChunk, SdrDevice
from glos.recorder.metrics import RecorderMetrics
from glos.serialization import GlosWriter

_log = logging.getLogger(__name__)

_RECV_TIMEOUT_SECS = 0.1
_BLOCK_FRAMING_BYTES = 20


class RecordingPipeline:
    """Runs one recording session from a device into a GLOS file.

    ``metrics`` is shared with the capture thread and may be read while
    recording. Call :meth:`stop` from any thread for a graceful shutdown.
    """

    def __init__(self, config: RecorderConfig) -> None:
        if config.block_samples < 1:
            raise ValueError(f"block_samples must be positive, got {config.block_samples}")
        self.config = config
        self.metrics = RecorderMetrics()
        self.stop_event = threading.Event()

    def stop(self) -> None:
        """Ask the session to finish the current work and finalise the file."""
        self.stop_event.set()

    def run(self, device: SdrDevice) -> None:
        """Record until the duration limit, a stop request or the device ends."""
        info = device.info()
        _log.info(
            "Starting recording: %s @ %s Hz, center=%s Hz, gain=%s dB",
            info.name,
            info.sample_rate_hz,
            info.center_freq_hz,
            info.gain_db,
        )
        _log.info(
            "Output: %s, duration: %s", self.config.output_path, self.config.duration_secs
        )

        chunks: queue.Queue[IqChunk] = queue.Queue(maxsize=max(1, self.config.ring_capacity))
        capture = threading.Thread(
            target=self._capture,
            args=(device, chunks),
            name="glos-capture",
            daemon=True,
        )
        capture.start()
        try:
            self._writer_loop(chunks, capture.is_alive)
        finally:
            self.stop_event.set()
            capture.join()

    def _capture(self, device: SdrDevice, chunks: queue.Queue[IqChunk]) -> None:
        try:
            device.run(chunks, self.metrics, self.stop_event)
        except Exception as exc:  # the writer must still finalise the file
            _log.warning("Capture thread finished with error: %s", exc)

    def _write(self, writer: GlosWriter, block: IqBlock) -> bool:
        try:
            writer.write_block(block)
        except (GlosError, OSError) as exc:
            self.metrics.add("write_errors")
            _log.warning("Write error: %s", exc)
            return False
        return True

    def _writer_loop(
        self,
        chunks: queue.Queue[IqChunk],
        producer_alive: Callable[[], bool],
    ) -> None:
        cfg = self.config
        metrics = self.metrics

        header = GlosHeader.create(cfg.sdr_type(), cfg.sample_rate_hz, cfg.center_freq_hz)
        header.gain_db = cfg.gain_db
        header.iq_format = cfg.iq_format
        header.compression = cfg.compression

        sample_size = cfg.iq_format.sample_size()
        block_samples = cfg.block_samples
        block_bytes = block_samples * sample_size

        with open(cfg.output_path, "wb") as fh:
            writer = GlosWriter(fh, header)

            acc = bytearray()
            acc_samples = 0
            block_ts: int | None = None

            session_start = time.monotonic()
            last_stats = session_start

            while True:
                if (
                    cfg.duration_secs is not None
                    and time.monotonic() - session_start >= cfg.duration_secs
                ):
                    _log.info("Duration limit reached (%ss). Finalizing...", cfg.duration_secs)
                    break

                if self.stop_event.is_set():
                    _log.info("Stop signal received. Finalizing...")
                    break

                try:
                    chunk = chunks.get(timeout=_RECV_TIMEOUT_SECS)
                except queue.Empty:
                    if not producer_alive() and chunks.empty():
                        _log.info("Capture channel closed. Flushing...")
                        break
                    continue

                metrics.add("samples_recorded", chunk.sample_count)

                if block_ts is None:
                    block_ts = chunk.timestamp_ns
                acc += chunk.data
                acc_samples += chunk.sample_count

                while acc_samples >= block_samples:
                    data = bytes(acc[:block_bytes])
                    del acc[:block_bytes]
                    ts = block_ts if block_ts is not None else 0
                    block_ts = None

                    if self._write(writer, IqBlock(ts, block_samples, data)):
                        metrics.add("blocks_written")
                        metrics.add("bytes_written", block_bytes + _BLOCK_FRAMING_BYTES)

                    acc_samples -= block_samples

                if time.monotonic() - last_stats >= cfg.stats_interval_secs:
                    self._log_progress(session_start)
                    last_stats = time.monotonic()

            if acc_samples > 0:
                ts = block_ts if block_ts is not None else 0
                if self._write(writer, IqBlock(ts, acc_samples, bytes(acc))):
                    metrics.add("blocks_written")
                    _log.info("Flushed partial block (%s samples)", acc_samples)

            writer.finish()

        _log.info("File finalized: %s", cfg.output_path)

    def _log_progress(self, start: float) -> None:
        m = self.metrics
        _log.info(
            "[ %.0fs ] samples=%s blocks=%s dropped=%s (%.2f%%) speed=%.1fMB/s",
            time.monotonic() - start,
            m.samples_recorded,
            m.blocks_written,
            m.dropped_samples,
            m.drop_rate_pct(),
            m.write_speed_mbps(start),
        )