"""GLOS file format v1.0: the 128-byte header and CRC-protected IQ blocks.

Multi-byte numbers are big-endian, except the numeric header fields, which
are little-endian when bit 0 of ``flags`` is set. The header CRC and all
block fields are always big-endian.
"""

from __future__ import annotations

import enum
import struct
import time
import zlib
from dataclasses import dataclass

import lz4.block

GLOS_MAGIC = b"GLOS"
GLOS_VERSION = 1
GLOS_HEADER_SIZE = 128
GLOS_MIN_BLOCK_SIZE = 32
GLOS_MAX_BLOCK_SIZE = 1024 * 1024

_BLOCK_OVERHEAD = 4 + 4 + 8 + 4  # size + count + timestamp + crc
_CRC_OFFSET = 72
_FIELDS_OFFSET = 16
_FIELDS_LAYOUT = "IQfQQQ"  # sample_rate, center_freq, gain_db, ts_start, ts_end, total


class GlosError(Exception):
    """Base class for GLOS format errors."""


class InvalidMagicError(GlosError):
    """The data does not start with the GLOS magic number."""


class UnsupportedVersionError(GlosError):
    """The file declares a format version this code does not read."""

    def __init__(self, found: int, expected: int) -> None:
        super().__init__(f"Unsupported version: found {found}, expected {expected}")
        self.found = found
        self.expected = expected


class CrcMismatchError(GlosError):
    """A stored CRC32 does not match the data it covers."""

    def __init__(self, expected: int, found: int) -> None:
        super().__init__(f"CRC mismatch: expected {expected:#010x}, found {found:#010x}")
        self.expected = expected
        self.found = found


class CorruptedError(GlosError):
    """The data is truncated or structurally broken."""


class FormatViolationError(GlosError):
    """The data is well-formed but breaks a rule of the specification."""


class InvalidBlockSizeError(GlosError):
    """A block would exceed the maximum block size."""

    def __init__(self, size: int) -> None:
        super().__init__(f"Invalid block size: {size} bytes (max {GLOS_MAX_BLOCK_SIZE})")
        self.size = size


class SdrType(enum.IntEnum):
    """Kind of receiver a recording came from."""

    HACKRF = 0
    PLUTOSDR = 1
    USRP_B200 = 2
    UNKNOWN = 255

    @classmethod
    def from_u8(cls, value: int) -> SdrType:
        """Map a stored byte to a receiver type; unknown codes give UNKNOWN."""
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


class IqFormat(enum.IntEnum):
    """Encoding of one IQ pair."""

    INT8 = 0
    INT16 = 1
    FLOAT32 = 2

    @classmethod
    def from_u8(cls, value: int) -> IqFormat:
        try:
            return cls(value)
        except ValueError:
            raise FormatViolationError(f"Unknown IQ format code: {value}") from None

    def sample_size(self) -> int:
        """Bytes taken by one I/Q pair."""
        return {IqFormat.INT8: 2, IqFormat.INT16: 4, IqFormat.FLOAT32: 8}[self]


class Compression(enum.IntEnum):
    """Compression applied to block payloads."""

    NONE = 0
    LZ4 = 1

    @classmethod
    def from_u8(cls, value: int) -> Compression:
        try:
            return cls(value)
        except ValueError:
            raise FormatViolationError(f"Unknown compression code: {value}") from None


def crc32_checksum(data: bytes) -> int:
    """CRC32 (IEEE 802.3) of ``data``."""
    return zlib.crc32(data) & 0xFFFFFFFF


def _lz4_compress(data: bytes) -> bytes:
    # Block format with a 4-byte little-endian uncompressed-size prefix.
    return lz4.block.compress(bytes(data), store_size=True)


def _lz4_decompress(data: bytes) -> bytes:
    try:
        return lz4.block.decompress(bytes(data))
    except (lz4.block.LZ4BlockError, ValueError) as exc:
        raise CorruptedError(f"LZ4 decompression failed: {exc}") from exc


@dataclass
class GlosHeader:
    """File header: recording parameters and totals."""

    sdr_type: SdrType
    sample_rate: int
    center_freq: int
    version: int = GLOS_VERSION
    flags: int = 0
    iq_format: IqFormat = IqFormat.INT16
    compression: Compression = Compression.NONE
    gain_db: float = 0.0
    timestamp_start: int = 0
    timestamp_end: int = 0
    total_samples: int = 0

    @classmethod
    def create(cls, sdr_type: SdrType, sample_rate: int, center_freq: int) -> GlosHeader:
        """Header with default settings, started now."""
        return cls(
            sdr_type=sdr_type,
            sample_rate=sample_rate,
            center_freq=center_freq,
            timestamp_start=int(time.time()),
        )

    def is_little_endian(self) -> bool:
        return bool(self.flags & 0x01)

    def serialize(self) -> bytes:
        """The 128-byte on-disk form of the header."""
        buf = bytearray(GLOS_HEADER_SIZE)
        order = "<" if self.is_little_endian() else ">"
        try:
            buf[0:4] = GLOS_MAGIC
            buf[4] = self.version
            buf[5] = self.flags
            buf[12] = self.sdr_type.value
            buf[13] = self.iq_format.value
            buf[14] = self.compression.value
            struct.pack_into(
                order + _FIELDS_LAYOUT,
                buf,
                _FIELDS_OFFSET,
                self.sample_rate,
                self.center_freq,
                self.gain_db,
                self.timestamp_start,
                self.timestamp_end,
                self.total_samples,
            )
        except (struct.error, OverflowError, ValueError) as exc:
            raise FormatViolationError(f"Header field out of range: {exc}") from exc

        crc = crc32_checksum(bytes(buf[:_CRC_OFFSET]))
        struct.pack_into(">I", buf, _CRC_OFFSET, crc)
        return bytes(buf)

    @classmethod
    def deserialize(cls, buf: bytes) -> GlosHeader:
        """Parse and validate a 128-byte header."""
        buf = bytes(buf)
        if len(buf) != GLOS_HEADER_SIZE:
            raise CorruptedError(
                f"Header must be {GLOS_HEADER_SIZE} bytes, got {len(buf)}"
            )
        if buf[0:4] != GLOS_MAGIC:
            raise InvalidMagicError("Invalid GLOS magic number")

        version = buf[4]
        if version != GLOS_VERSION:
            raise UnsupportedVersionError(found=version, expected=GLOS_VERSION)

        flags = buf[5]
        sdr_type = SdrType.from_u8(buf[12])
        iq_format = IqFormat.from_u8(buf[13])
        compression = Compression.from_u8(buf[14])

        order = "<" if flags & 0x01 else ">"
        (
            sample_rate,
            center_freq,
            gain_db,
            timestamp_start,
            timestamp_end,
            total_samples,
        ) = struct.unpack_from(order + _FIELDS_LAYOUT, buf, _FIELDS_OFFSET)

        (stored_crc,) = struct.unpack_from(">I", buf, _CRC_OFFSET)
        calculated_crc = crc32_checksum(buf[:_CRC_OFFSET])
        if stored_crc != calculated_crc:
            raise CrcMismatchError(expected=calculated_crc, found=stored_crc)

        return cls(
            sdr_type=sdr_type,
            sample_rate=sample_rate,
            center_freq=center_freq,
            version=version,
            flags=flags,
            iq_format=iq_format,
            compression=compression,
            gain_db=gain_db,
            timestamp_start=timestamp_start,
            timestamp_end=timestamp_end,
            total_samples=total_samples,
        )


@dataclass
class IqBlock:
    """One block of IQ samples with its timestamp."""

    timestamp_ns: int
    sample_count: int
    data: bytes
    is_compressed: bool = False

    @classmethod
    def compressed(cls, timestamp_ns: int, sample_count: int, compressed_data: bytes) -> IqBlock:
        """A block whose payload is already LZ4-compressed."""
        return cls(timestamp_ns, sample_count, bytes(compressed_data), is_compressed=True)

    def compress(self) -> None:
        """Compress the payload with LZ4; no-op if already compressed."""
        if self.is_compressed:
            return
        self.data = _lz4_compress(self.data)
        self.is_compressed = True

    def decompress(self) -> None:
        """Decompress the payload; no-op if not compressed."""
        if not self.is_compressed:
            return
        self.data = _lz4_decompress(self.data)
        self.is_compressed = False

    def validate_sample_count(self, iq_format: IqFormat) -> None:
        """Check ``sample_count * sample_size == len(data)`` for raw payloads."""
        if self.is_compressed:
            return
        size = iq_format.sample_size()
        expected = self.sample_count * size
        if len(self.data) != expected:
            raise FormatViolationError(
                f"sample_count={self.sample_count} × sample_size={size} = {expected} "
                f"≠ data.len()={len(self.data)}"
            )

    def serialize(self) -> bytes:
        """On-disk form: content size, count, timestamp, payload, CRC."""
        block_size = _BLOCK_OVERHEAD + len(self.data)
        if block_size > GLOS_MAX_BLOCK_SIZE:
            raise InvalidBlockSizeError(block_size)
        content_size = 4 + 8 + len(self.data)
        try:
            body = struct.pack(">IQ", self.sample_count, self.timestamp_ns) + bytes(self.data)
        except struct.error as exc:
            raise FormatViolationError(f"Block field out of range: {exc}") from exc
        crc = crc32_checksum(body)
        return struct.pack(">I", content_size) + body + struct.pack(">I", crc)

    @classmethod
    def deserialize(cls, buf: bytes, compression: Compression) -> tuple[IqBlock, int]:
        """Parse one block from the start of ``buf``; return it and bytes consumed."""
        buf = memoryview(buf)
        if len(buf) < 20:
            raise CorruptedError("Block too small")

        (content_size,) = struct.unpack_from(">I", buf, 0)
        if 4 + content_size + 4 > len(buf):
            raise CorruptedError("Incomplete block")

        sample_count, timestamp_ns = struct.unpack_from(">IQ", buf, 4)

        data_len = content_size - 12
        if data_len < 0:
            raise CorruptedError("Invalid content_size")
        data = bytes(buf[16 : 16 + data_len])

        (stored_crc,) = struct.unpack_from(">I", buf, 4 + content_size)
        calculated_crc = crc32_checksum(bytes(buf[4 : 4 + content_size]))
        if stored_crc != calculated_crc:
            raise CrcMismatchError(expected=calculated_crc, found=stored_crc)

        block = cls(
            timestamp_ns=timestamp_ns,
            sample_count=sample_count,
            data=data,
            is_compressed=compression is Compression.LZ4,
        )
        return block, 4 + content_size + 4

    def uncompressed_data(self) -> bytes:
        """The raw payload, decompressing a copy if needed."""
        if self.is_compressed:
            return _lz4_decompress(self.data)
        return bytes(self.data)