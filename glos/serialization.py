"""Streaming reader and writer for GLOS files."""

from __future__ import annotations

import dataclasses
import time
from dataclasses import dataclass
from typing import BinaryIO, Iterator

from glos.format import (
    GLOS_HEADER_SIZE,
    Compression,
    CorruptedError,
    CrcMismatchError,
    FormatViolationError,
    GlosError,
    GlosHeader,
    IqBlock,
)

_READ_CHUNK = 2 * 1024 * 1024
_MIN_BLOCK_BYTES = 20


def _current_unix_secs() -> int:
    return int(time.time())


@dataclass
class ReadStats:
    """Counters gathered by a :class:`GlosReader` while reading."""

    blocks_ok: int = 0
    blocks_corrupted: int = 0
    samples_recovered: int = 0
    bytes_processed: int = 0


class GlosWriter:
    """Writes a GLOS file to a seekable binary stream.

    The header is written at once; :meth:`finish` rewrites it with the final
    sample total and end time.
    """

    def __init__(self, stream: BinaryIO, header: GlosHeader) -> None:
        self.header = dataclasses.replace(header)
        self.total_samples = 0
        self.block_count = 0
        self._stream = stream
        self._stream.write(self.header.serialize())

    def __enter__(self) -> GlosWriter:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.finish()

    def write_block(self, block: IqBlock) -> None:
        """Append one block, compressing it first if the header asks for LZ4."""
        if self.header.compression is Compression.LZ4 and not block.is_compressed:
            block = dataclasses.replace(block)
            block.compress()

        self.total_samples += block.sample_count
        self.block_count += 1
        self._stream.write(block.serialize())

    def finish(self) -> None:
        """Flush the stream and rewrite the header with the final totals."""
        self._stream.flush()
        self.header.total_samples = self.total_samples
        self.header.timestamp_end = _current_unix_secs()

        self._stream.seek(0)
        self._stream.write(self.header.serialize())
        self._stream.flush()


class GlosReader:
    """Reads blocks from a GLOS stream, skipping damaged ones.

    The header is read and validated when the reader is created.
    """

    def __init__(self, stream: BinaryIO) -> None:
        raw = stream.read(GLOS_HEADER_SIZE)
        if raw is None or len(raw) < GLOS_HEADER_SIZE:
            got = 0 if raw is None else len(raw)
            raise CorruptedError(
                f"Truncated header: expected {GLOS_HEADER_SIZE} bytes, got {got}"
            )
        self.header = GlosHeader.deserialize(raw)
        self.stats = ReadStats()
        self._stream = stream
        self._buffer = b""
        self._pos = 0
        self._eof = False

    def _available(self) -> int:
        return len(self._buffer) - self._pos

    def next_block(self) -> IqBlock | None:
        """The next intact block, or ``None`` at the end of the stream."""
        while True:
            if self._available() >= _MIN_BLOCK_BYTES:
                view = memoryview(self._buffer)[self._pos :]
                try:
                    block, consumed = IqBlock.deserialize(view, self.header.compression)
                except CrcMismatchError:
                    self.stats.blocks_corrupted += 1
                    self._pos += 1
                    continue
                except CorruptedError:
                    if self._eof:
                        # Garbage after a damaged block: scan forward byte by byte.
                        self._pos += 1
                        continue
                    # Not enough data yet; read more below.
                except GlosError:
                    self.stats.blocks_corrupted += 1
                    self._pos += 1
                    raise
                else:
                    self._pos += consumed
                    try:
                        block.decompress()
                        block.validate_sample_count(self.header.iq_format)
                    except (CorruptedError, FormatViolationError):
                        self.stats.blocks_corrupted += 1
                        continue

                    self.stats.blocks_ok += 1
                    self.stats.samples_recovered += block.sample_count
                    self.stats.bytes_processed += consumed
                    return block

            if self._eof:
                return None

            chunk = self._stream.read(_READ_CHUNK)
            if not chunk:
                self._eof = True
            else:
                self._buffer = self._buffer[self._pos :] + bytes(chunk)
                self._pos = 0

    def __iter__(self) -> Iterator[IqBlock]:
        return self

    def __next__(self) -> IqBlock:
        block = self.next_block()
        if block is None:
            raise StopIteration
        return block

    def validate_totals(self) -> None:
        """Check that the header's total equals the samples actually read."""
        expected = self.header.total_samples
        if expected == 0:
            return
        if self.stats.samples_recovered != expected:
            raise FormatViolationError(
                f"total_samples mismatch: header={expected}, "
                f"recovered={self.stats.samples_recovered}"
            )


def read_all_blocks(reader: GlosReader) -> list[IqBlock]:
    """Read every remaining intact block; damaged blocks are skipped."""
    blocks: list[IqBlock] = []
    while True:
        try:
            block = reader.next_block()
        except CrcMismatchError:
            continue
        if block is None:
            return blocks
        blocks.append(block)