"""Presence hub — real-time relay with face memory and voice commands."""

__version__ = "0.1.0"
