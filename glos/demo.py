"""Small command-line tool that writes and inspects GLOS recordings."""

from __future__ import annotations

import argparse
import math
import os
import struct
import sys

from glos.format import GlosError, GlosHeader, IqBlock, IqFormat, SdrType
from glos.serialization import GlosReader, GlosWriter, read_all_blocks

_SAMPLE_RATE = 2_000_000
_CENTER_FREQ = 1_602_000_000
_GAIN_DB = 40.0
_TONE_HZ = 1_000.0
_AMPLITUDE = 32_767.0
_NS_PER_SAMPLE = 1_000_000_000 // _SAMPLE_RATE


def _sine_block(block_idx: int, samples_per_block: int) -> bytes:
    base = block_idx * samples_per_block
    values: list[int] = []
    for i in range(samples_per_block):
        phase = 2.0 * math.pi * _TONE_HZ * (base + i) / _SAMPLE_RATE
        values.append(int(_AMPLITUDE * math.sin(phase)))
        values.append(int(_AMPLITUDE * math.cos(phase)))
    return struct.pack(f">{len(values)}h", *values)


def write_sine_recording(
    path: str | os.PathLike[str],
    num_blocks: int = 10,
    samples_per_block: int = 50_000,
) -> int:
    """Write a 1 kHz complex tone as Int16 IQ; return the samples written."""
    header = GlosHeader.create(SdrType.HACKRF, _SAMPLE_RATE, _CENTER_FREQ)
    header.gain_db = _GAIN_DB
    header.iq_format = IqFormat.INT16

    with open(path, "wb") as fh:
        writer = GlosWriter(fh, header)
        for block_idx in range(num_blocks):
            timestamp_ns = block_idx * samples_per_block * _NS_PER_SAMPLE
            data = _sine_block(block_idx, samples_per_block)
            writer.write_block(IqBlock(timestamp_ns, samples_per_block, data))
        total = writer.total_samples
        writer.finish()
    return total


def describe_recording(path: str | os.PathLike[str]) -> str:
    """Read a recording and return a human-readable report on it."""
    with open(path, "rb") as fh:
        reader = GlosReader(fh)
        h = reader.header
        lines = [
            "✓ Header validated",
            f"  SDR Type      : {h.sdr_type.name}",
            f"  Sample Rate   : {h.sample_rate} Hz",
            f"  Center Freq   : {h.center_freq} Hz",
            f"  Gain          : {h.gain_db} dB",
            f"  IQ Format     : {h.iq_format.name}",
            f"  Compression   : {h.compression.name}",
            f"  Total Samples : {h.total_samples}",
            f"  Timestamp End : {h.timestamp_end}",
        ]

        blocks = read_all_blocks(reader)
        stats = reader.stats
        lines += [
            "",
            "✓ Read complete",
            f"  Blocks ok        : {stats.blocks_ok}",
            f"  Blocks corrupted : {stats.blocks_corrupted}",
            f"  Samples recovered: {stats.samples_recovered}",
        ]

        try:
            reader.validate_totals()
        except GlosError as exc:
            lines.append(f"  Total samples    : ✗ {exc}")
        else:
            lines.append("  Total samples    : ✓ match")

    lines += ["", "First blocks:"]
    for i, block in enumerate(blocks[:3]):
        lines.append(
            f"  [{i}] {block.sample_count} samples @ {block.timestamp_ns}ns "
            f"(compressed={str(block.is_compressed).lower()})"
        )
    return "\n".join(lines)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="glos", description="Write and inspect GLOS recordings.")
    sub = parser.add_subparsers(dest="command")

    write = sub.add_parser("write", help="write a synthetic sine recording")
    write.add_argument("path", nargs="?", default="test_output.glos")
    write.add_argument("--blocks", type=int, default=10)
    write.add_argument("--samples", type=int, default=50_000)

    read = sub.add_parser("read", help="validate and summarise a recording")
    read.add_argument("path", nargs="?", default="recording.glos")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    if args.command is None:
        print("Hello, Glos CLI!")
        return 0

    if args.command == "write":
        try:
            total = write_sine_recording(args.path, args.blocks, args.samples)
        except (OSError, GlosError) as exc:
            print(f"✗ Write failed: {exc}", file=sys.stderr)
            return 1
        print(f"✓ Written: {args.path}")
        print(f"  Blocks   : {args.blocks}")
        print(f"  Samples  : {total}")
        return 0

    try:
        report = describe_recording(args.path)
    except OSError as exc:
        print(f"✗ Cannot open file: {exc}", file=sys.stderr)
        return 1
    except GlosError as exc:
        print(f"✗ Header validation failed: {exc}", file=sys.stderr)
        return 1
    print(report)
    return 0


if __name__ == "__main__":
    sys.exit(main())