from pathlib import Path

import pytest

from glos.format import Compression, IqFormat, SdrType
from glos.recorder.config import DeviceKind, RecorderConfig, parse_freq_hz


def test_parse_freq_hz():
    assert parse_freq_hz("1602MHz") == 1_602_000_000
    assert parse_freq_hz("1.602GHz") == 1_602_000_000
    assert parse_freq_hz("2000kHz") == 2_000_000
    assert parse_freq_hz("2000000Hz") == 2_000_000
    assert parse_freq_hz("2000000") == 2_000_000
    with pytest.raises(ValueError):
        parse_freq_hz("abc")


@pytest.mark.parametrize("text", ["1602mhz", "1602 MHz", "  1602MHZ  "])
def test_parse_freq_hz_case_and_spacing(text):
    assert parse_freq_hz(text) == 1_602_000_000


@pytest.mark.parametrize("text", ["", "-5", "1.5", "xMHz", "MHz"])
def test_parse_freq_hz_rejects_invalid(text):
    with pytest.raises(ValueError, match="Invalid frequency"):
        parse_freq_hz(text)


def test_device_kind_parse():
    assert DeviceKind.parse("sim") is DeviceKind.SIMULATED
    assert DeviceKind.parse("hackrf") is DeviceKind.HACKRF
    assert DeviceKind.parse("pluto") is DeviceKind.PLUTOSDR
    with pytest.raises(ValueError, match="Unknown device type"):
        DeviceKind.parse("unknown")


@pytest.mark.parametrize(
    "text,kind",
    [
        ("Simulated", DeviceKind.SIMULATED),
        ("HACKRF_ONE", DeviceKind.HACKRF),
        ("plutosdr", DeviceKind.PLUTOSDR),
        ("adalm-pluto", DeviceKind.PLUTOSDR),
    ],
)
def test_device_kind_aliases(text, kind):
    assert DeviceKind.parse(text) is kind


@pytest.mark.parametrize("kind", list(DeviceKind))
def test_device_kind_str_round_trip(kind):
    assert DeviceKind.parse(str(kind)) is kind


@pytest.mark.parametrize(
    "alias,shown",
    [("simulated", "sim"), ("hackrf_one", "hackrf"), ("adalm-pluto", "pluto")],
)
def test_device_kind_display(alias, shown):
    assert str(DeviceKind.parse(alias)) == shown


def test_recorder_config_defaults():
    cfg = RecorderConfig()
    assert cfg.device is DeviceKind.SIMULATED
    assert cfg.center_freq_hz == 1_602_000_000
    assert cfg.sample_rate_hz == 2_000_000
    assert cfg.gain_db == 40.0
    assert cfg.iq_format is IqFormat.INT16
    assert cfg.compression is Compression.NONE
    assert cfg.output_path == Path("recording.glos")
    assert cfg.duration_secs is None
    assert cfg.block_samples == 50_000
    assert cfg.ring_capacity == 64
    assert cfg.stats_interval_secs == 5


@pytest.mark.parametrize(
    "kind,sdr",
    [
        (DeviceKind.SIMULATED, SdrType.UNKNOWN),
        (DeviceKind.HACKRF, SdrType.HACKRF),
        (DeviceKind.PLUTOSDR, SdrType.PLUTOSDR),
    ],
)
def test_sdr_type_mapping(kind, sdr):
    assert RecorderConfig(device=kind).sdr_type() is sdr