"""Hark: session bridge between a streaming voice assistant and its UI."""

__version__ = "0.1.0"
