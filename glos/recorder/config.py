"""Recording session configuration and frequency parsing."""

from __future__ import annotations

import enum
import math
import re
from dataclasses import dataclass, field
from pathlib import Path

from glos.format import Compression, IqFormat, SdrType

_U64_MAX = 2**64 - 1
_INT_RE = re.compile(r"\+?[0-9]+")
_SUFFIXES = (
    ("ghz", 1_000_000_000.0),
    ("mhz", 1_000_000.0),
    ("khz", 1_000.0),
    ("hz", 1.0),
)
_DEVICE_ALIASES = {
    "sim": "sim",
    "simulated": "sim",
    "hackrf": "hackrf",
    "hackrf_one": "hackrf",
    "pluto": "pluto",
    "plutosdr": "pluto",
    "adalm-pluto": "pluto",
}


class DeviceKind(enum.Enum):
    """SDR device chosen at start-up."""

    SIMULATED = "sim"
    HACKRF = "hackrf"
    PLUTOSDR = "pluto"

    @classmethod
    def parse(cls, text: str) -> DeviceKind:
        """Parse a device name or alias, case-insensitively."""
        key = _DEVICE_ALIASES.get(text.lower())
        if key is None:
            raise ValueError(f"Unknown device type: '{text}'. Use: sim, hackrf, pluto")
        return cls(key)

    def __str__(self) -> str:
        return self.value


@dataclass
class RecorderConfig:
    """Full configuration of a recording session."""

    device: DeviceKind = DeviceKind.SIMULATED
    center_freq_hz: int = 1_602_000_000
    sample_rate_hz: int = 2_000_000
    gain_db: float = 40.0
    iq_format: IqFormat = IqFormat.INT16
    compression: Compression = Compression.NONE
    output_path: Path = field(default_factory=lambda: Path("recording.glos"))
    duration_secs: int | None = None
    block_samples: int = 50_000
    ring_capacity: int = 64
    stats_interval_secs: int = 5

    def sdr_type(self) -> SdrType:
        """Receiver type to store in the file header."""
        return {
            DeviceKind.SIMULATED: SdrType.UNKNOWN,
            DeviceKind.HACKRF: SdrType.HACKRF,
            DeviceKind.PLUTOSDR: SdrType.PLUTOSDR,
        }[self.device]


def _round_half_away(x: float) -> float:
    return math.copysign(math.floor(abs(x) + 0.5), x)


def _to_u64(x: float) -> int:
    # Saturating conversion: NaN and negatives become 0, overflow the maximum.
    if math.isnan(x) or x <= 0:
        return 0
    if math.isinf(x) or x >= _U64_MAX:
        return _U64_MAX
    return int(x)


def parse_freq_hz(text: str) -> int:
    """Parse a frequency into hertz.

    Accepts the suffixes ``GHz``, ``MHz``, ``kHz`` and ``Hz`` in any case;
    without a suffix the text must be a whole number of hertz.
    """
    s = text.strip()
    lower = s.lower()

    for suffix, mult in _SUFFIXES:
        if lower.endswith(suffix):
            num_str = lower[: -len(suffix)].strip()
            break
    else:
        if not _INT_RE.fullmatch(s):
            raise ValueError(f"Invalid frequency '{s}': invalid digit found in string")
        value = int(s)
        if value > _U64_MAX:
            raise ValueError(f"Invalid frequency '{s}': number too large")
        return value

    try:
        if "_" in num_str or not num_str:
            raise ValueError("invalid float literal")
        n = float(num_str)
    except ValueError:
        raise ValueError(
            f"Invalid frequency value '{num_str}': invalid float literal"
        ) from None

    return _to_u64(_round_half_away(n * mult))