# glos

Tools for the GLOS file format. GLOS is a compact binary container for raw IQ
samples captured from software-defined radios, aimed at GNSS work.

A GLOS file is a fixed 128-byte header followed by a stream of IQ blocks.
Block fields and the header CRC are always big-endian. The numeric header
fields (sample rate, centre frequency, gain, timestamps, total samples) are
big-endian unless bit 0 of the header's `flags` is set, in which case they are
little-endian. The header and every block carry a CRC32, so damaged data can
be detected and skipped. Block payloads may be LZ4-compressed.

The package provides:

- `glos.format` – `GlosHeader` and `IqBlock`, their binary encoding, the
  `SdrType`, `IqFormat` and `Compression` enums, `crc32_checksum`, LZ4
  handling, and the `GlosError` family of exceptions.
- `glos.serialization` – a streaming `GlosWriter`, a `GlosReader` that skips
  corrupted blocks and keeps `ReadStats`, and `read_all_blocks`.
- `glos.replayer` – `encode_udp_packet` / `decode_udp_packet` for framing
  blocks as UDP payloads, `ReplayMetrics` counters, and a `TimingController`
  that paces blocks in real time at a chosen speed.
- `glos.recorder` – a `RecordingPipeline` that streams chunks from a device
  into a `.glos` file, with a simulated device, metrics and a command line.
- `glos.demo` – a small command that writes and inspects recordings.

## Installation

```
pip install glos
```

For running the test suite:

```
pip install "glos[test]"
pytest
```

## Recording from the command line

Record ten seconds from the built-in simulated device:

```
glos-recorder --device sim --freq 1602MHz --rate 2MHz --duration 10 --output recording.glos
```

Frequencies accept `GHz`, `MHz`, `kHz` and `Hz` suffixes in any case, or a
plain whole number of hertz. Options:

- `-d`, `--device` – `sim`, `hackrf` or `pluto` (default `sim`)
- `-f`, `--freq` – centre frequency (default `1602MHz`)
- `-r`, `--rate` – sample rate (default `2MHz`)
- `-g`, `--gain` – receiver gain in dB (default 40.0)
- `-o`, `--output` – output file (default `recording.glos`)
- `--duration` – recording limit in seconds (default: until Ctrl+C)
- `--format` – `int8`, `int16` or `float32` (default `int16`)
- `--compress` – `none` or `lz4` (default `none`)
- `--block-samples` – IQ pairs per block (default 50000)
- `--ring-capacity` – chunk slots buffered between capture and writer (default 256)
- `--stats-interval` – seconds between progress reports (default 5)
- `-q`, `--quiet` – report errors only

Without `--duration`, recording runs until Ctrl+C. The current block is
finished, any partial block is written, and the header is rewritten with the
final sample count and end time. A second Ctrl+C exits at once with status 130.
The command exits with status 1 on bad options, device or recording failures,
or if any block could not be written.

## Demo command

```
glos-demo write out.glos --blocks 10 --samples 50000
glos-demo read out.glos
```

`write` stores a synthetic 1 kHz complex tone as Int16 IQ at 2 Msps (default
path `test_output.glos`). `read` validates a recording and prints its header,
read statistics, whether the sample total matches, and the first blocks
(default path `recording.glos`). With no sub-command it only prints a greeting.

## Library use

Writing a file:

```python
from glos.format import GlosHeader, IqBlock, IqFormat, SdrType
from glos.serialization import GlosWriter

header = GlosHeader.create(SdrType.HACKRF, 2_000_000, 1_602_000_000)
header.gain_db = 40.0
header.iq_format = IqFormat.INT16  # 4 bytes per I/Q pair

with open("signal.glos", "wb") as stream:
    with GlosWriter(stream, header) as writer:
        writer.write_block(IqBlock(0, 1000, bytes(4000)))
```

Leaving the `with GlosWriter(...)` block without an error calls `finish()`,
which rewrites the header with `total_samples` and `timestamp_end`. If the
header asks for LZ4, `write_block` compresses uncompressed blocks itself.

Reading it back:

```python
from glos.serialization import GlosReader, read_all_blocks

with open("signal.glos", "rb") as stream:
    reader = GlosReader(stream)
    blocks = read_all_blocks(reader)
    reader.validate_totals()
    print(reader.stats.blocks_ok, reader.stats.blocks_corrupted)
```

A `GlosReader` is also an iterator over blocks. Opening a file validates its
magic number, version and header CRC. Blocks are returned decompressed; those
whose CRC, compression or sample count do not check out are skipped and
counted in `reader.stats.blocks_corrupted`.

## What the package does not do

- Only the simulated device records. Choosing `hackrf` or `pluto` raises
  `DeviceNotFoundError`; there is no support for real radio hardware.
- `glos.replayer` frames packets and paces timing, but there is no command
  or socket code that sends a recording over the network.