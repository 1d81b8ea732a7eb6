"""Recording IQ samples from a (simulated) SDR device into GLOS files."""

__version__ = "0.2.0"