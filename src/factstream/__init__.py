"""Broadcast hub for Server-Sent-Events fact streams."""

__version__ = "0.1.0"
