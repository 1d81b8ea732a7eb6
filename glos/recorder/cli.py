"""Command line for recording IQ samples from an SDR device to a .glos file."""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import time
from pathlib import Path

from glos.format import Compression, GlosError, IqFormat
from glos.recorder.config import DeviceKind, RecorderConfig, parse_freq_hz
from glos.recorder.device import create_device
from glos.recorder.errors import RecorderError
from glos.recorder.pipeline import RecordingPipeline

_log = logging.getLogger("glos.recorder")

_U32_MAX = 0xFFFFFFFF
_RULE = "━" * 43

_IQ_FORMATS = {
    "int8": IqFormat.INT8,
    "i8": IqFormat.INT8,
    "int16": IqFormat.INT16,
    "i16": IqFormat.INT16,
    "float32": IqFormat.FLOAT32,
    "f32": IqFormat.FLOAT32,
}

_COMPRESSIONS = {
    "none": Compression.NONE,
    "no": Compression.NONE,
    "off": Compression.NONE,
    "lz4": Compression.LZ4,
}


def parse_iq_format(text: str) -> IqFormat:
    """Parse an IQ sample format name, case-insensitively."""
    try:
        return _IQ_FORMATS[text.lower()]
    except KeyError:
        raise ValueError(f"Unknown IQ format '{text}'. Use: int8, int16, float32") from None


def parse_compression(text: str) -> Compression:
    """Parse a compression name, case-insensitively."""
    try:
        return _COMPRESSIONS[text.lower()]
    except KeyError:
        raise ValueError(f"Unknown compression '{text}'. Use: none, lz4") from None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="glos-recorder",
        description="Record IQ samples from SDR device to .glos file",
    )
    parser.add_argument("-d", "--device", default="sim", help="SDR device: sim, hackrf, pluto")
    parser.add_argument(
        "-f", "--freq", default="1602MHz", help="center frequency (1602MHz, 1.602GHz, 1602000000)"
    )
    parser.add_argument("-r", "--rate", default="2MHz", help="sample rate (2MHz, 2000000)")
    parser.add_argument("-g", "--gain", type=float, default=40.0, help="receiver gain, dB")
    parser.add_argument(
        "-o", "--output", type=Path, default=Path("recording.glos"), help="output file"
    )
    parser.add_argument(
        "--duration", type=int, default=None, help="recording limit in seconds (default: until Ctrl+C)"
    )
    parser.add_argument("--format", default="int16", help="IQ format: int8, int16, float32")
    parser.add_argument("--compress", default="none", help="compression: none, lz4")
    parser.add_argument(
        "--block-samples", type=int, default=50_000, help="samples per block (latency/overhead)"
    )
    parser.add_argument(
        "--ring-capacity", type=int, default=256, help="ring buffer capacity in chunk slots"
    )
    parser.add_argument(
        "--stats-interval", type=int, default=5, help="statistics interval in seconds"
    )
    parser.add_argument("-q", "--quiet", action="store_true", help="only report errors")
    return parser


def _install_interrupt_handler(pipeline: RecordingPipeline):
    def handler(signum, frame):
        if pipeline.stop_event.is_set():
            _log.warning("Force exit")
            raise SystemExit(130)
        pipeline.stop()
        _log.warning("Ctrl+C received — finishing current block and finalizing file...")

    try:
        return True, signal.signal(signal.SIGINT, handler)
    except ValueError as exc:
        _log.warning("Failed to set Ctrl+C handler: %s", exc)
        return False, None


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    level = logging.ERROR if args.quiet else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(message)s")
    logging.getLogger("glos").setLevel(level)

    try:
        device_kind = DeviceKind.parse(args.device)
    except ValueError as exc:
        _log.error("%s", exc)
        return 1

    try:
        center_freq_hz = parse_freq_hz(args.freq)
    except ValueError as exc:
        _log.error("--freq: %s", exc)
        return 1

    try:
        sample_rate_hz = parse_freq_hz(args.rate)
    except ValueError as exc:
        _log.error("--rate: %s", exc)
        return 1
    if sample_rate_hz > _U32_MAX:
        _log.error("--rate %s Hz exceeds u32::MAX", sample_rate_hz)
        return 1

    try:
        iq_format = parse_iq_format(args.format)
    except ValueError as exc:
        _log.error("--format: %s", exc)
        return 1

    try:
        compression = parse_compression(args.compress)
    except ValueError as exc:
        _log.error("--compress: %s", exc)
        return 1

    config = RecorderConfig(
        device=device_kind,
        center_freq_hz=center_freq_hz,
        sample_rate_hz=sample_rate_hz,
        gain_db=args.gain,
        iq_format=iq_format,
        compression=compression,
        output_path=args.output,
        duration_secs=args.duration,
        block_samples=args.block_samples,
        ring_capacity=args.ring_capacity,
        stats_interval_secs=args.stats_interval,
    )

    try:
        device = create_device(config)
    except RecorderError as exc:
        _log.error("Failed to open device: %s", exc)
        return 1

    try:
        pipeline = RecordingPipeline(config)
    except ValueError as exc:
        _log.error("%s", exc)
        return 1

    sample_size = iq_format.sample_size()
    data_rate_mbs = sample_rate_hz * sample_size / 1_000_000.0
    _log.info(_RULE)
    _log.info("  Device        : %s", args.device)
    _log.info("  Center freq   : %.3f MHz", center_freq_hz / 1e6)
    _log.info("  Sample rate   : %.3f Msps", sample_rate_hz / 1e6)
    _log.info("  IQ format     : %s (%s B/sample)", iq_format.name, sample_size)
    _log.info("  Compression   : %s", compression.name)
    _log.info("  Data rate     : %.1f MB/s", data_rate_mbs)
    _log.info("  Output        : %s", args.output)
    _log.info(_RULE)

    installed, previous = _install_interrupt_handler(pipeline)
    session_start = time.monotonic()
    try:
        pipeline.run(device)
    except (RecorderError, GlosError, OSError) as exc:
        _log.error("Recording failed: %s", exc)
        return 1
    finally:
        if installed:
            signal.signal(signal.SIGINT, previous)

    metrics = pipeline.metrics
    summary = metrics.summary(session_start)
    _log.info("\n%s", summary)

    if metrics.dropped_samples > 0:
        _log.warning(
            "⚠ %s samples dropped (%.2f%% loss). Consider: larger --ring-capacity or lower --rate",
            metrics.dropped_samples,
            summary.drop_rate_pct,
        )

    if metrics.write_errors > 0:
        _log.warning(
            "⚠ %s write errors occurred. Check disk space and I/O.", metrics.write_errors
        )
        return 1

    _log.info("✓ Recording complete: %s", args.output)
    return 0


if __name__ == "__main__":
    sys.exit(main())