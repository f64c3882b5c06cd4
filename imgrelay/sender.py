"""Image-sending side of the relay: packets out, checksum in, verdict out."""

from __future__ import annotations

import argparse
import logging
import os
import time
from contextlib import ExitStack
from dataclasses import dataclass
from pathlib import Path

from .checksum import simple_checksum
from .message import MessageType, split_packets
from .message import Message
from .ringqueue import (
    QUEUE_CHECKSUMS,
    QUEUE_PACKETS,
    QUEUE_RESULTS,
    QueueFull,
    RingQueue,
)

log = logging.getLogger(__name__)

_RETRY_DELAY = 0.001
_IMAGE_WAIT = 0.5
DEFAULT_IMAGE = "cat.jpeg"


@dataclass(frozen=True)
class SenderReport:
    """Outcome of one image transfer as seen by the sender."""

    packets_sent: int
    checksum: int
    received_checksum: int
    result: str

    @property
    def match(self):
        """True when the receiver's checksum equals the sender's."""
        return self.checksum == self.received_checksum


def _enqueue_blocking(queue, message):
    while True:
        try:
            queue.enqueue(message)
            return
        except QueueFull:
            time.sleep(_RETRY_DELAY)


def _await_checksum(queue):
    while True:
        message = queue.dequeue()
        if message.type is MessageType.CHECKSUM_DATA:
            return message.checksum_value()
        log.info("unexpected %s message discarded", message.type.name)


def send_image(image, packets, checksums, results):
    """Send *image* as packets, wait for the receiver's checksum and reply with the verdict.

    *image* is either the image bytes or a path to the image file.
    """
    if isinstance(image, (str, os.PathLike)):
        data = Path(image).read_bytes()
    else:
        data = bytes(image)

    own = simple_checksum(data)
    log.info("real checksum: %d", own)

    sent = 0
    for message in split_packets(data):
        _enqueue_blocking(packets, message)
        sent += 1
        log.info("sent packet #%d", message.packet_no)

    received = _await_checksum(checksums)
    log.info("received checksum: %d", received)

    verdict = Message.for_result(received == own)
    _enqueue_blocking(results, verdict)
    log.info("sent result: %s", verdict.text())

    return SenderReport(
        packets_sent=sent,
        checksum=own,
        received_checksum=received,
        result=verdict.text(),
    )


def _parse_args(argv):
    parser = argparse.ArgumentParser(
        prog="imgrelay-send",
        description="Send an image over shared ring queues and verify its checksum.",
    )
    parser.add_argument("image", nargs="?", default=DEFAULT_IMAGE, help="image file to send")
    parser.add_argument("--dir", dest="directory", default=None, help="directory holding the queues")
    return parser.parse_args(argv)


def main(argv=None):
    """Run the sending side; return the process exit status."""
    args = _parse_args(argv)
    image = Path(args.image)
    print("[A] Starting Process A")

    with ExitStack() as stack:
        packets = stack.enter_context(RingQueue.create(QUEUE_PACKETS, args.directory))
        checksums = stack.enter_context(RingQueue.create(QUEUE_CHECKSUMS, args.directory))
        results = stack.enter_context(RingQueue.create(QUEUE_RESULTS, args.directory))

        while not image.is_file():
            print(f"[A-Sender] Waiting for {image}...")
            time.sleep(_IMAGE_WAIT)

        report = send_image(image, packets, checksums, results)

    print(f"[A-Sender] Real checksum: {report.checksum}")
    print(f"[A-Sender] Sent {report.packets_sent} packets")
    print(f"[A-Receiver] Received checksum: {report.received_checksum}")
    print(f"[A-Sender] Sent result: {report.result}")
    print("[A] Finished")
    return 0