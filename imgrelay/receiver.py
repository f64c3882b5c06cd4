"""Image-receiving side of the relay: packets in, checksum out, verdict in."""

from __future__ import annotations

import argparse
import logging
import time
from contextlib import ExitStack
from dataclasses import dataclass, field
from pathlib import Path

from .checksum import simple_checksum
from .message import Message, MessageType, reassemble
from .ringqueue import (
    QUEUE_CHECKSUMS,
    QUEUE_PACKETS,
    QUEUE_RESULTS,
    QueueFull,
    RingQueue,
)

log = logging.getLogger(__name__)

_RETRY_DELAY = 0.001
DEFAULT_OUTPUT = "reconstructed.jpg"


@dataclass(frozen=True)
class ReceiverReport:
    """Outcome of one image transfer as seen by the receiver."""

    packets_received: int
    checksum: int
    result: str
    data: bytes = field(repr=False)

    @property
    def size(self):
        """Number of bytes reconstructed."""
        return len(self.data)

    @property
    def match(self):
        """True when the sender reported that the checksums agree."""
        return self.result == "MATCH"


def _enqueue_blocking(queue, message):
    while True:
        try:
            queue.enqueue(message)
            return
        except QueueFull:
            time.sleep(_RETRY_DELAY)


def _await_result(queue):
    while True:
        message = queue.dequeue()
        if message.type is MessageType.RESULT_DATA:
            return message.text()
        log.info("unexpected %s message discarded", message.type.name)


def receive_image(packets, checksums, results, output=None):
    """Collect image packets, send their checksum back and wait for the verdict.

    When *output* is given, the reconstructed image is written to that path.
    """
    received = []

    def incoming():
        while True:
            message = packets.dequeue()
            if message.type is not MessageType.PACKET_DATA:
                log.info("unexpected %s message discarded", message.type.name)
                continue
            log.info("received packet #%d", message.packet_no)
            received.append(message)
            yield message

    data = reassemble(incoming())
    log.info("all %d packets received", len(received))

    if output is not None:
        Path(output).write_bytes(data)

    own = simple_checksum(data)
    _enqueue_blocking(checksums, Message.for_checksum(own))
    log.info("sent checksum: %d", own)

    result = _await_result(results)
    log.info("received result: %s", result)

    return ReceiverReport(
        packets_received=len(received),
        checksum=own,
        result=result,
        data=data,
    )


def _parse_args(argv):
    parser = argparse.ArgumentParser(
        prog="imgrelay-receive",
        description="Receive an image over shared ring queues and report its checksum.",
    )
    parser.add_argument(
        "output", nargs="?", default=DEFAULT_OUTPUT, help="file to write the image to"
    )
    parser.add_argument("--dir", dest="directory", default=None, help="directory holding the queues")
    return parser.parse_args(argv)


def main(argv=None):
    """Run the receiving side; return the process exit status."""
    args = _parse_args(argv)
    print("[B] Starting Process B")

    with ExitStack() as stack:
        packets = stack.enter_context(RingQueue.attach(QUEUE_PACKETS, args.directory))
        checksums = stack.enter_context(RingQueue.attach(QUEUE_CHECKSUMS, args.directory))
        results = stack.enter_context(RingQueue.attach(QUEUE_RESULTS, args.directory))
        report = receive_image(packets, checksums, results, args.output)

    print(f"[B-Receiver] Received {report.packets_received} packets ({report.size} bytes)")
    print(f"[B-Sender] Calculated checksum: {report.checksum}")
    print(f"[B-Receiver] Received result: {report.result}")
    print("[B] Finished")
    return 0