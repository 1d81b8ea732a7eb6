import io
import struct

import pytest

from glos.format import (
    Compression,
    CorruptedError,
    FormatViolationError,
    GlosHeader,
    InvalidMagicError,
    IqBlock,
    IqFormat,
    SdrType,
)
from glos.serialization import GlosReader, GlosWriter, ReadStats, read_all_blocks


def make_header() -> GlosHeader:
    return GlosHeader.create(SdrType.HACKRF, 2_000_000, 1_602_000_000)


def make_block(ts: int, count: int) -> IqBlock:
    return IqBlock(ts, count, bytes(count * 4))


def deterministic_header() -> GlosHeader:
    header = GlosHeader.create(SdrType.HACKRF, 2_000_000, 1_602_000_000)
    header.gain_db = 40.0
    header.iq_format = IqFormat.INT16
    header.compression = Compression.NONE
    header.timestamp_start = 1_704_067_200
    header.timestamp_end = 0
    header.total_samples = 0
    return header


def deterministic_block(ts_ns: int, count: int) -> IqBlock:
    data = b"".join(
        struct.pack(">hh", (i % 128) * 256, -(i % 128) * 256) for i in range(count)
    )
    return IqBlock(ts_ns, count, data)


def build_test_vector_1() -> bytes:
    header = deterministic_header()
    header.total_samples = 2_000
    header.timestamp_end = 1_704_067_201
    return (
        header.serialize()
        + deterministic_block(1_704_067_200_000_000_000, 1_000).serialize()
        + deterministic_block(1_704_067_200_500_000_000, 1_000).serialize()
    )


def build_test_vector_2() -> bytes:
    header = deterministic_header()
    header.compression = Compression.LZ4
    header.total_samples = 2_000
    header.timestamp_end = 1_704_067_201
    raw = header.serialize()
    for i in range(2):
        block = IqBlock(1_704_067_200_000_000_000 + i * 500_000_000, 1_000, bytes([42]) * 4_000)
        block.compress()
        raw += block.serialize()
    return raw


def build_test_vector_3() -> bytes:
    raw = deterministic_header().serialize()
    raw += deterministic_block(1_000_000_000, 100).serialize()
    b2 = bytearray(deterministic_block(2_000_000_000, 100).serialize())
    b2[-1] ^= 0xFF
    raw += bytes(b2)
    raw += deterministic_block(3_000_000_000, 100).serialize()
    return raw


def test_writer_reader_round_trip():
    buf = io.BytesIO()
    writer = GlosWriter(buf, make_header())
    for i in range(5):
        writer.write_block(make_block(i * 1_000_000, 1000))
    assert writer.total_samples == 5000
    writer.finish()

    reader = GlosReader(io.BytesIO(buf.getvalue()))
    assert reader.header.total_samples == 5000
    assert reader.header.timestamp_end > 0
    blocks = read_all_blocks(reader)
    assert [b.timestamp_ns for b in blocks] == [i * 1_000_000 for i in range(5)]
    reader.validate_totals()


def test_reader_iterates_blocks():
    raw = make_header().serialize()
    for i in range(3):
        raw += make_block(i * 500_000, 500).serialize()

    reader = GlosReader(io.BytesIO(raw))
    count = 0
    while reader.next_block() is not None:
        count += 1

    assert count == 3
    assert reader.stats.blocks_ok == 3
    assert reader.stats.blocks_corrupted == 0
    assert reader.stats.samples_recovered == 1500


def test_iterator_protocol():
    raw = make_header().serialize()
    raw += make_block(0, 100).serialize()
    raw += make_block(1, 200).serialize()

    blocks = list(GlosReader(io.BytesIO(raw)))
    assert len(blocks) == 2
    assert blocks[0].sample_count == 100
    assert blocks[1].sample_count == 200


def test_corrupted_block_skipped():
    raw = make_header().serialize()
    b1 = make_block(1, 10).serialize()
    b2 = bytearray(make_block(2, 10).serialize())
    b3 = make_block(3, 10).serialize()
    b2[-1] ^= 0xFF
    raw += b1 + bytes(b2) + b3

    reader = GlosReader(io.BytesIO(raw))
    blocks = list(reader)

    assert len(blocks) == 2
    assert [b.timestamp_ns for b in blocks] == [1, 3]
    assert reader.stats.blocks_corrupted > 0


def test_lz4_auto_decompress():
    header = make_header()
    header.compression = Compression.LZ4
    header.iq_format = IqFormat.INT16
    data = bytes([42]) * 4000
    block = IqBlock(0, 1000, data)
    block.compress()
    raw = header.serialize() + block.serialize()

    reader = GlosReader(io.BytesIO(raw))
    assert reader.header.compression is Compression.LZ4
    out = reader.next_block()
    assert out.data == data
    assert not out.is_compressed


def test_writer_compresses_when_header_says_lz4():
    header = make_header()
    header.compression = Compression.LZ4
    data = bytes([42]) * 4000
    original = IqBlock(0, 1000, data)

    buf = io.BytesIO()
    writer = GlosWriter(buf, header)
    writer.write_block(original)
    writer.finish()

    raw = buf.getvalue()
    assert len(raw) < 128 + len(data)
    assert not original.is_compressed

    blocks = read_all_blocks(GlosReader(io.BytesIO(raw)))
    assert len(blocks) == 1
    assert blocks[0].data == data


def test_read_all_blocks_helper():
    raw = make_header().serialize()
    for i in range(4):
        raw += make_block(i, 50).serialize()
    reader = GlosReader(io.BytesIO(raw))
    assert len(read_all_blocks(reader)) == 4


def test_header_validated_on_open():
    raw = bytearray(128)
    raw[0:4] = b"XXXX"
    with pytest.raises(InvalidMagicError):
        GlosReader(io.BytesIO(bytes(raw)))


def test_truncated_header_rejected():
    raw = make_header().serialize()[:100]
    with pytest.raises(CorruptedError):
        GlosReader(io.BytesIO(raw))


def test_writer_block_count():
    buf = io.BytesIO()
    writer = GlosWriter(buf, make_header())
    writer.write_block(make_block(0, 100))
    writer.write_block(make_block(1, 200))
    assert writer.block_count == 2
    assert writer.total_samples == 300
    writer.finish()

    reader = GlosReader(io.BytesIO(buf.getvalue()))
    assert reader.header.total_samples == 300
    assert len(read_all_blocks(reader)) == 2


def test_writer_context_manager_finishes():
    buf = io.BytesIO()
    with GlosWriter(buf, make_header()) as writer:
        writer.write_block(make_block(0, 100))

    reader = GlosReader(io.BytesIO(buf.getvalue()))
    assert reader.header.total_samples == 100


def test_empty_file_no_blocks():
    reader = GlosReader(io.BytesIO(make_header().serialize()))
    assert reader.next_block() is None
    assert reader.stats.blocks_ok == 0


def test_trailing_garbage_is_skipped():
    raw = make_header().serialize()
    raw += make_block(0, 10).serialize() + make_block(1, 10).serialize()
    raw += b"\xff" * 25

    reader = GlosReader(io.BytesIO(raw))
    blocks = list(reader)
    assert len(blocks) == 2
    assert reader.stats.blocks_ok == 2


def test_validate_totals_mismatch():
    header = make_header()
    header.total_samples = 999
    raw = header.serialize() + make_block(0, 10).serialize()

    reader = GlosReader(io.BytesIO(raw))
    read_all_blocks(reader)
    with pytest.raises(FormatViolationError):
        reader.validate_totals()


def test_bytes_processed_counts_whole_blocks():
    block_bytes = make_block(0, 10).serialize()
    raw = make_header().serialize() + block_bytes * 3

    reader = GlosReader(io.BytesIO(raw))
    read_all_blocks(reader)
    assert reader.stats == ReadStats(
        blocks_ok=3,
        blocks_corrupted=0,
        samples_recovered=30,
        bytes_processed=3 * len(block_bytes),
    )


def test_vector_1_byte_layout():
    data = build_test_vector_1()
    assert data[0:4] == b"GLOS"
    assert data[4] == 1
    assert data[5] == 0
    assert data[12] == 0
    assert data[13] == 1
    assert data[14] == 0
    assert data[16:20] == bytes([0x00, 0x1E, 0x84, 0x80])
    assert data[128:132] == bytes([0x00, 0x00, 0x0F, 0xAC])
    assert struct.unpack(">I", data[128:132])[0] == 4_012
    assert struct.unpack(">I", data[132:136])[0] == 1_000


def test_vector_1_parse_and_validate():
    reader = GlosReader(io.BytesIO(build_test_vector_1()))
    h = reader.header
    assert h.sdr_type is SdrType.HACKRF
    assert h.sample_rate == 2_000_000
    assert h.center_freq == 1_602_000_000
    assert h.gain_db == 40.0
    assert h.iq_format is IqFormat.INT16
    assert h.compression is Compression.NONE
    assert h.total_samples == 2_000
    assert h.timestamp_start == 1_704_067_200

    blocks = read_all_blocks(reader)
    assert len(blocks) == 2
    assert blocks[0].sample_count == 1_000
    assert blocks[1].sample_count == 1_000
    for block in blocks:
        block.validate_sample_count(IqFormat.INT16)
    reader.validate_totals()


def test_vector_1_deterministic():
    raw1 = build_test_vector_1()
    raw2 = build_test_vector_1()
    assert raw1 == raw2
    assert raw1[72:76] == raw2[72:76]


def test_vector_2_compressed_smaller():
    assert len(build_test_vector_2()) < len(build_test_vector_1())


def test_vector_2_parse_and_decompress():
    reader = GlosReader(io.BytesIO(build_test_vector_2()))
    assert reader.header.compression is Compression.LZ4

    blocks = read_all_blocks(reader)
    assert len(blocks) == 2
    assert not blocks[0].is_compressed
    for block in blocks:
        assert block.data == bytes([42]) * 4_000
        block.validate_sample_count(IqFormat.INT16)
    reader.validate_totals()


def test_vector_3_partial_recovery():
    reader = GlosReader(io.BytesIO(build_test_vector_3()))
    ok_blocks = list(reader)

    assert len(ok_blocks) == 2
    assert reader.stats.blocks_corrupted > 0
    assert reader.stats.samples_recovered == 200


def test_large_file_streaming(tmp_path):
    path = tmp_path / "large.glos"
    block_samples = 512 * 1024 // 4
    num_blocks = 10

    with open(path, "wb") as fh:
        header = GlosHeader.create(SdrType.HACKRF, 10_000_000, 2_400_000_000)
        writer = GlosWriter(fh, header)
        for i in range(num_blocks):
            writer.write_block(IqBlock(i * 1_000_000, block_samples, bytes([42]) * (block_samples * 4)))
        writer.finish()

    with open(path, "rb") as fh:
        reader = GlosReader(fh)
        blocks = read_all_blocks(reader)
        assert len(blocks) == num_blocks
        reader.validate_totals()