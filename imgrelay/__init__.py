"""Relay an image between processes in packets over shared ring queues, verified by checksum."""

__version__ = "0.1.0"
__all__ = ["checksum", "message", "ringqueue", "sender", "receiver"]