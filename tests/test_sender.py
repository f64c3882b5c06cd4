import threading

import pytest

from imgrelay.checksum import simple_checksum
from imgrelay.message import Message, MessageType, reassemble, split_packets
from imgrelay.ringqueue import (
    MAX_QUEUE_MESSAGES,
    QUEUE_CHECKSUMS,
    QUEUE_PACKETS,
    QUEUE_RESULTS,
    RingQueue,
)
from imgrelay.sender import SenderReport, main, send_image


@pytest.fixture
def queues(tmp_path):
    packets = RingQueue.create("p", tmp_path)
    checksums = RingQueue.create("c", tmp_path)
    results = RingQueue.create("r", tmp_path)
    yield packets, checksums, results
    for queue in (packets, checksums, results):
        queue.close()


def _drain(queue):
    messages = []
    while len(queue):
        messages.append(queue.dequeue(timeout=1))
    return messages


def _sample(size):
    return bytes((i * 7 + 3) % 256 for i in range(size))


def test_matching_checksum_sends_match(queues):
    packets, checksums, results = queues
    data = _sample(3000)
    checksums.enqueue(Message.for_checksum(simple_checksum(data)))

    report = send_image(data, packets, checksums, results)

    assert report.match
    assert report.result == "MATCH"
    assert report.checksum == simple_checksum(data)
    assert report.packets_sent == len(list(split_packets(data)))
    assert reassemble(_drain(packets)) == data
    verdict = results.dequeue(timeout=1)
    assert verdict.type is MessageType.RESULT_DATA
    assert verdict.text() == "MATCH"


def test_wrong_checksum_sends_mismatch(queues):
    packets, checksums, results = queues
    data = _sample(1500)
    checksums.enqueue(Message.for_checksum(simple_checksum(data) + 1))

    report = send_image(data, packets, checksums, results)

    assert not report.match
    assert report.result == "MISMATCH"
    assert report.received_checksum == simple_checksum(data) + 1
    assert results.dequeue(timeout=1).text() == "MISMATCH"


def test_non_checksum_messages_are_skipped(queues):
    packets, checksums, results = queues
    data = _sample(100)
    checksums.enqueue(Message.for_result(False))
    checksums.enqueue(Message.for_checksum(simple_checksum(data)))

    report = send_image(data, packets, checksums, results)

    assert report.result == "MATCH"
    assert len(checksums) == 0


def test_empty_image_sends_no_packets(queues):
    packets, checksums, results = queues
    checksums.enqueue(Message.for_checksum(0))

    report = send_image(b"", packets, checksums, results)

    assert report == SenderReport(packets_sent=0, checksum=0, received_checksum=0, result="MATCH")
    assert len(packets) == 0


def test_image_path_is_read(queues, tmp_path):
    packets, checksums, results = queues
    data = _sample(2500)
    path = tmp_path / "picture.bin"
    path.write_bytes(data)
    checksums.enqueue(Message.for_checksum(simple_checksum(data)))

    report = send_image(path, packets, checksums, results)

    assert report.match
    assert reassemble(_drain(packets)) == data


def test_waits_when_packet_queue_is_full(queues):
    packets, checksums, results = queues
    data = _sample(1024 * (MAX_QUEUE_MESSAGES + 30) + 17)
    received = []

    def consume():
        while True:
            message = packets.dequeue(timeout=10)
            received.append(message)
            if message.is_last_packet:
                break
        checksums.enqueue(Message.for_checksum(simple_checksum(reassemble(received))))

    worker = threading.Thread(target=consume)
    worker.start()
    report = send_image(data, packets, checksums, results)
    worker.join(timeout=10)

    assert report.packets_sent > MAX_QUEUE_MESSAGES
    assert reassemble(received) == data
    assert report.match


def test_main_runs_full_exchange(tmp_path, capsys):
    data = _sample(4000)
    image = tmp_path / "cat.jpeg"
    image.write_bytes(data)
    outcome = {}

    def peer():
        with RingQueue.attach(QUEUE_PACKETS, tmp_path) as packets:
            chunks = []
            while True:
                message = packets.dequeue(timeout=10)
                chunks.append(message)
                if message.is_last_packet:
                    break
        rebuilt = reassemble(chunks)
        outcome["data"] = rebuilt
        with RingQueue.attach(QUEUE_CHECKSUMS, tmp_path) as checksums:
            checksums.enqueue(Message.for_checksum(simple_checksum(rebuilt)))
        with RingQueue.attach(QUEUE_RESULTS, tmp_path) as results:
            outcome["result"] = results.dequeue(timeout=10).text()

    worker = threading.Thread(target=peer)
    worker.start()
    status = main([str(image), "--dir", str(tmp_path)])
    worker.join(timeout=15)

    assert status == 0
    assert outcome["data"] == data
    assert outcome["result"] == "MATCH"
    out = capsys.readouterr().out
    assert "Sent result: MATCH" in out
    assert f"Real checksum: {simple_checksum(data)}" in out