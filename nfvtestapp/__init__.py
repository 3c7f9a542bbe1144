"""Packet payloads, headers, statistics, configuration and burst sockets for testing network functions."""

__version__ = "0.1.0"