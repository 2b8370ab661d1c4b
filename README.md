# netsamples

netsamples is a set of small socket programs. Each one shows one way of talking over a network:

- **TCP** (`netsamples.tcp`): a receiver accepts one connection and prints each message it gets. A sender connects to it and sends the words you type.
- **ICMP** (`netsamples.icmp`): sends echo requests over a raw socket, by default ten to 8.8.8.8 at one-second intervals. It prints the round-trip time of each reply.
- **UDP broadcast** (`netsamples.broadcast`): a sender broadcasts lines to port 53772. A receiver prints each one with the address it came from.
- **UDP multicast** (`netsamples.multicast`): a sender sends lines to the group 238.238.238.238 on port 55556. A receiver joins that group and prints what arrives.

The package needs Python 3.10 or later and a POSIX system. It uses only the standard library.

## Installation

```
pip install .
```

## Commands

### TCP

Start the receiver first. By default it listens on port 8080 on all interfaces (`--host`, `--port`):

```
netsamples-tcp-receiver
```

Then start the sender in a second terminal. By default it connects to 127.0.0.1:8080 (`--host`, `--port`):

```
netsamples-tcp-sender
```

The sender reads standard input and sends each whitespace-separated word as its own message. After each send it prints `Bytes sent: N`. It stops at the word `exit` or at the end of input, then closes the connection. The receiver prints `Message from client: ...` for each chunk it receives. When the sender disconnects, it prints `Client disconnected` and exits. It serves a single connection only.

### Ping

```
netsamples-ping [TARGET] [--count N] [--timeout SECONDS] [--interval SECONDS]
```

The defaults are target 8.8.8.8, count 10, timeout 1 second and interval 1 second. The command waits for the interval before each request. Each matching reply is printed like this:

```
64 bytes from 8.8.8.8: icmp_seq=0 ttl=117 time=12.34 ms
```

A reply matches when it is an echo reply with this process's identifier, the same sequence number and a valid checksum. If no matching reply arrives within the timeout, the command prints `Request timed out`. Opening a raw ICMP socket normally needs root privileges.

### Broadcast

```
netsamples-broadcast-receiver [--port PORT]
netsamples-broadcast [--bind-host HOST] [--bind-port PORT] [--host HOST] [--port PORT]
```

The receiver binds to port 53772 on all interfaces. It prints each datagram as `Received from HOST:PORT - TEXT` and runs until interrupted.

The sender binds to 127.0.0.1:53771 by default and sends each line you type to 255.255.255.255:53772. It stops at the end of input.

### Multicast

```
netsamples-multicast-receiver [--group ADDRESS] [--port PORT]
netsamples-multicast [--group ADDRESS] [--port PORT] [--bind-port PORT] [--ttl N] [--no-loopback]
```

The receiver joins the group and prints the sender's address and the text of each message. When it is interrupted, it leaves the group and prints `Left multicast group ...`.

The sender binds to port 55555. By default it uses a multicast TTL of 32 and has loopback turned on, so a receiver on the same host also gets the messages. It sends each line you type and stops at the end of input.

## Library use

Each command is built on classes that you can use directly. All of them work as context managers.

```python
from netsamples.tcp import TcpReceiver, TcpSender, serve_one, run_sender
from netsamples.icmp import Pinger, build_echo_request, checksum, parse_echo_reply, format_reply
from netsamples.broadcast import BroadcastSender, BroadcastReceiver, format_message
from netsamples.multicast import MulticastSender, MulticastReceiver, membership_request
```

- `checksum(data)` returns the Internet checksum of a byte string.
- `build_echo_request(identifier, sequence, payload=None)` builds an ICMP echo request. The default payload is 56 filler bytes.
- `parse_echo_reply(packet)` reads an IPv4 packet into an `EchoReply`, which records whether the ICMP checksum is valid.
- `Pinger.ping_once(sequence)` returns `(reply, elapsed_ms)`, or `None` on timeout.
- `BroadcastReceiver.receive()` and `MulticastReceiver.receive()` return `(text, (host, port))`. `BroadcastReceiver.messages()` yields such pairs until the socket is closed.
- `membership_request(group, interface="0.0.0.0")` returns the packed 8-byte group membership request. It raises `ValueError` if the group is not a multicast address.

Socket failures are raised as `OSError`, with a message that names the step that failed. Invalid arguments, such as an out-of-range TTL or sequence number, raise `ValueError`.