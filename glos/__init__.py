"""GLOS IQ signal recordings: file format, streaming reader and writer, replay pacing and a recorder."""

__version__ = "0.2.0"