"""Bounded FIFO of messages kept in a shared, file-backed memory map.

Any number of processes or threads may open the same queue; a file lock
guards every update, so it works as a cross-process mailbox.
"""

from __future__ import annotations

import errno
import fcntl
import mmap
import os
import struct
import tempfile
import threading
import time
from contextlib import contextmanager
from pathlib import Path

from .message import MESSAGE_SIZE, Message

MAX_QUEUE_MESSAGES = 100

QUEUE_PACKETS = "queue_packets"
QUEUE_CHECKSUMS = "queue_checksums"
QUEUE_RESULTS = "queue_results"

_HEADER = struct.Struct("<3i")  # head, tail, count
_DATA_OFFSET = 16
_REGION_SIZE = _DATA_OFFSET + MAX_QUEUE_MESSAGES * MESSAGE_SIZE
_POLL_INTERVAL = 0.005


class QueueFull(Exception):
    """Raised when a message is added to a queue that already holds its maximum."""


def _queue_path(name, directory):
    base = Path(directory) if directory is not None else Path(tempfile.gettempdir())
    stem = name.strip("/")
    if not stem or "/" in stem:
        raise ValueError(f"invalid queue name: {name!r}")
    return base / f"{stem}.ring"


def _slot_offset(index):
    return _DATA_OFFSET + index * MESSAGE_SIZE


class RingQueue:
    """A ring buffer of up to MAX_QUEUE_MESSAGES messages in shared memory."""

    def __init__(self, path, fd):
        self.path = Path(path)
        self._fd = fd
        self._map = mmap.mmap(fd, _REGION_SIZE)
        self._thread_lock = threading.Lock()
        self._closed = False

    @classmethod
    def create(cls, name, directory=None):
        """Create (or reset) the named queue and open it."""
        path = _queue_path(name, directory)
        path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(path, os.O_RDWR | os.O_CREAT, 0o666)
        try:
            fcntl.flock(fd, fcntl.LOCK_EX)
            try:
                os.ftruncate(fd, 0)
                os.ftruncate(fd, _REGION_SIZE)
            finally:
                fcntl.flock(fd, fcntl.LOCK_UN)
            return cls(path, fd)
        except BaseException:
            os.close(fd)
            raise

    @classmethod
    def attach(cls, name, directory=None, retries=50, delay=0.1):
        """Open a queue created elsewhere, waiting for it to appear."""
        path = _queue_path(name, directory)
        for attempt in range(retries):
            if attempt:
                time.sleep(delay)
            try:
                fd = os.open(path, os.O_RDWR)
            except FileNotFoundError:
                continue
            if os.fstat(fd).st_size >= _REGION_SIZE:
                try:
                    return cls(path, fd)
                except BaseException:
                    os.close(fd)
                    raise
            os.close(fd)
        raise FileNotFoundError(errno.ENOENT, "ring queue is not available", str(path))

    @contextmanager
    def _locked(self):
        if self._closed:
            raise ValueError("operation on a closed ring queue")
        with self._thread_lock:
            fcntl.flock(self._fd, fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(self._fd, fcntl.LOCK_UN)

    def enqueue(self, message):
        """Append *message*; raise QueueFull if the queue is at capacity."""
        raw = message.pack()
        with self._locked():
            head, tail, count = _HEADER.unpack_from(self._map, 0)
            if count >= MAX_QUEUE_MESSAGES:
                raise QueueFull(f"queue {self.path.stem!r} is full")
            start = _slot_offset(head)
            self._map[start:start + MESSAGE_SIZE] = raw
            _HEADER.pack_into(self._map, 0, (head + 1) % MAX_QUEUE_MESSAGES, tail, count + 1)

    def dequeue(self, timeout=None):
        """Remove and return the oldest message, waiting for one if needed.

        With a timeout, raise TimeoutError when nothing arrives in time.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            with self._locked():
                head, tail, count = _HEADER.unpack_from(self._map, 0)
                if count > 0:
                    start = _slot_offset(tail)
                    raw = bytes(self._map[start:start + MESSAGE_SIZE])
                    _HEADER.pack_into(
                        self._map, 0, head, (tail + 1) % MAX_QUEUE_MESSAGES, count - 1
                    )
                    return Message.unpack(raw)
            if deadline is not None and time.monotonic() >= deadline:
                raise TimeoutError(f"no message on queue {self.path.stem!r}")
            time.sleep(_POLL_INTERVAL)

    def close(self):
        """Release this handle; the queue itself stays in place."""
        if self._closed:
            return
        self._closed = True
        self._map.close()
        os.close(self._fd)

    def unlink(self):
        """Remove the queue's backing file."""
        self.path.unlink(missing_ok=True)

    def __len__(self):
        with self._locked():
            return _HEADER.unpack_from(self._map, 0)[2]

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()