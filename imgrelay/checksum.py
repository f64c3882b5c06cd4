"""Byte-sum checksum used to verify relayed images."""

_MASK = 0xFFFFFFFF


def simple_checksum(data):
    """Return the sum of all bytes in *data*, wrapped to an unsigned 32-bit value."""
    return sum(memoryview(data).cast("B")) & _MASK