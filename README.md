# imgrelay

Send an image from one process to another in 1024-byte packets, rebuild it
on the far side and check that both sides agree on its checksum.

The two processes talk through three bounded ring queues, each kept in a
memory-mapped file and guarded by a file lock:

* **packets** – the sender splits the image into numbered packets, the last
  one flagged, and pushes them to the receiver;
* **checksums** – the receiver rebuilds the image, sums its bytes and sends
  the sum back;
* **results** – the sender compares that sum with its own and answers
  `MATCH` or `MISMATCH`.

Each queue holds at most 100 messages. A side that finds a queue full waits
briefly and tries again until the reader has caught up.

The package runs on POSIX systems (it relies on `fcntl` file locking).

## Installing

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Command line

Start the sender in one terminal:

```
imgrelay-send [IMAGE] [--dir DIRECTORY]
```

and the receiver in another:

```
imgrelay-receive [OUTPUT] [--dir DIRECTORY]
```

`IMAGE` defaults to `cat.jpeg` and `OUTPUT` to `reconstructed.jpg`. Both
sides must use the same `--dir`; without it the queue files
(`queue_packets.ring`, `queue_checksums.ring`, `queue_results.ring`) live in
the system temporary directory.

The sender creates (or resets) the queues and, if the image file is not there
yet, waits for it, checking every half second. It then sends the packets,
waits for the receiver's checksum and sends back the verdict. It prints its
own checksum, the number of packets sent, the checksum it received and the
result.

The receiver attaches to the queues, retrying for up to about five seconds
if the sender has not created them yet. It rebuilds the image, writes it to
`OUTPUT`, sends its checksum and waits for the verdict. It prints the number
of packets and bytes received, the checksum it computed and the result.

## Library

```python
from imgrelay.checksum import simple_checksum
from imgrelay.message import Message, MessageType, split_packets, reassemble
from imgrelay.ringqueue import RingQueue, QueueFull

data = b"example image bytes"
packets = list(split_packets(data))
assert reassemble(packets) == data
print(simple_checksum(data))          # sum of all bytes, wrapped to 32 bits

reply = Message.for_checksum(simple_checksum(data))
print(reply.checksum_value())

verdict = Message.for_result(True)
print(verdict.text())                 # MATCH
```

### `imgrelay.message`

`Message` is a frozen dataclass with `type` (a `MessageType`:
`PACKET_DATA`, `CHECKSUM_DATA` or `RESULT_DATA`), `packet_no`,
`is_last_packet` and `payload` (at most 1024 bytes; longer raises
`ValueError`). `size` is the payload length. `pack()` and `Message.unpack()`
convert to and from a fixed-size wire record of `MESSAGE_SIZE` bytes.
`checksum_value()` reads the 32-bit value from a checksum message and
`text()` returns the payload up to its first NUL byte.

`split_packets(data)` yields the packet messages for a byte string.
`reassemble(messages)` accepts packets in any order, skips messages of other
types, stops at the packet flagged as last, and raises `ValueError` if the
stream ends early, a packet is missing, or a packet before the last is
shorter than 1024 bytes.

### `imgrelay.ringqueue`

`RingQueue.create(name, directory=None)` makes (or empties) a queue and
`RingQueue.attach(name, directory=None, retries=50, delay=0.1)` opens one
made elsewhere, raising `FileNotFoundError` if it never appears. `enqueue`
raises `QueueFull` when the queue already holds 100 messages; `dequeue`
waits for a message, or raises `TimeoutError` if a `timeout` is given and
nothing arrives. `len(queue)` is the number of queued messages. Queues are
context managers and are released with `close`; `unlink` removes the
queue's backing file.

### Running one side in code

`imgrelay.sender.send_image(image, packets, checksums, results)` takes the
image as bytes or a path and returns a `SenderReport` (`packets_sent`,
`checksum`, `received_checksum`, `result`, `match`).
`imgrelay.receiver.receive_image(packets, checksums, results, output=None)`
returns a `ReceiverReport` (`packets_received`, `checksum`, `result`,
`data`, `size`, `match`) and writes the image to `output` when given.

## What it does not do

* Both processes must be on the same machine and share a directory; there
  is no network transport.
* The commands never remove the queue files; call `RingQueue.unlink` to
  clean them up.
* The commands wait without a time limit for the other side's checksum or
  result.