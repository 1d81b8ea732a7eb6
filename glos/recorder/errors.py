"""Errors raised by the recorder.

I/O failures surface as :class:`OSError` and file format failures as
:class:`glos.format.GlosError`.
"""

from __future__ import annotations


class RecorderError(Exception):
    """Base class for recorder errors."""


class DeviceNotFoundError(RecorderError):
    """The requested SDR device is not available."""

    def __init__(self, detail: str) -> None:
        super().__init__(f"SDR device not found: {detail}")
        self.detail = detail


class DeviceError(RecorderError):
    """The SDR device reported a failure."""

    def __init__(self, detail: str) -> None:
        super().__init__(f"SDR device error: {detail}")
        self.detail = detail


class BufferOverflowError(RecorderError):
    """The ring buffer overflowed: the producer outran the consumer."""

    def __init__(self, dropped: int) -> None:
        super().__init__(f"Ring buffer overflow: {dropped} samples dropped in last batch")
        self.dropped = dropped


class PipelineError(RecorderError):
    """Failure passing data between recorder threads."""

    def __init__(self, detail: str) -> None:
        super().__init__(f"Pipeline error: {detail}")
        self.detail = detail


class DurationElapsedError(RecorderError):
    """The recording stopped because its time limit was reached."""

    def __init__(self) -> None:
        super().__init__("Duration limit reached")