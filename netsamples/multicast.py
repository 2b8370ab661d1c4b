"""UDP multicast sender and receiver."""

from __future__ import annotations

import argparse
import contextlib
import ipaddress
import socket
import struct
import sys

from .tcp import _enable_reuse, _failure

SERVER_PORT = 55555
MULTICAST_ADDRESS = "238.238.238.238"
MULTICAST_PORT = 55556
ANY_ADDRESS = "0.0.0.0"
BUFFER_SIZE = 1024
MULTICAST_TTL = 32


def membership_request(group: str, interface: str = ANY_ADDRESS) -> bytes:
    """Return the packed ip_mreq structure for joining ``group`` on ``interface``."""
    group_address = ipaddress.IPv4Address(group)
    if not group_address.is_multicast:
        raise ValueError(f"{group} is not a multicast address")
    return group_address.packed + ipaddress.IPv4Address(interface).packed


class MulticastSender:
    """A UDP socket that sends datagrams to a multicast group."""

    def __init__(
        self,
        group: str = MULTICAST_ADDRESS,
        port: int = MULTICAST_PORT,
        bind_port: int = SERVER_PORT,
        ttl: int = MULTICAST_TTL,
        loopback: bool = True,
    ) -> None:
        if not 0 <= ttl <= 255:
            raise ValueError("ttl must be between 0 and 255")
        with _failure("Failed to create socket"):
            self._sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            _enable_reuse(self._sock)
            with _failure("Failed to set socket options: IP_MULTICAST_TTL"):
                self._sock.setsockopt(
                    socket.IPPROTO_IP, socket.IP_MULTICAST_TTL, struct.pack("B", ttl)
                )
            with _failure("Failed to set socket options: IP_MULTICAST_LOOP"):
                self._sock.setsockopt(
                    socket.IPPROTO_IP, socket.IP_MULTICAST_LOOP, struct.pack("B", int(loopback))
                )
            with _failure("Failed to bind socket"):
                self._sock.bind((ANY_ADDRESS, bind_port))
        except BaseException:
            self._sock.close()
            raise
        self.destination: tuple[str, int] = (group, port)
        self.address: tuple[str, int] = self._sock.getsockname()

    @property
    def ttl(self) -> int:
        return self._sock.getsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_TTL) & 0xFF

    @property
    def loopback(self) -> bool:
        return bool(self._sock.getsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_LOOP) & 0xFF)

    def send(self, message: str | bytes) -> int:
        """Send ``message`` to the group and return the bytes sent."""
        data = message.encode("utf-8") if isinstance(message, str) else bytes(message)
        with _failure("Failed to send message"):
            return self._sock.sendto(data, self.destination)

    def close(self) -> None:
        self._sock.close()

    def __enter__(self) -> MulticastSender:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


class MulticastReceiver:
    """A UDP socket that has joined a multicast group."""

    def __init__(self, group: str = MULTICAST_ADDRESS, port: int = MULTICAST_PORT) -> None:
        self._mreq = membership_request(group)
        self.group = group
        self._joined = False
        with _failure("Failed to create socket"):
            self._sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            _enable_reuse(self._sock)
            with _failure("Failed to bind socket"):
                self._sock.bind((ANY_ADDRESS, port))
            with _failure("Failed to join multicast group"):
                self._sock.setsockopt(socket.IPPROTO_IP, socket.IP_ADD_MEMBERSHIP, self._mreq)
        except BaseException:
            self._sock.close()
            raise
        self._joined = True
        self.address: tuple[str, int] = self._sock.getsockname()

    def receive(self) -> tuple[str, tuple[str, int]]:
        """Wait for one datagram; return its text and the sender's address."""
        with _failure("Failed to receive message"):
            data, sender = self._sock.recvfrom(BUFFER_SIZE)
        return data.decode("utf-8", errors="replace"), sender

    def close(self) -> None:
        """Leave the group, if still joined, and close the socket."""
        if self._joined:
            self._joined = False
            with contextlib.suppress(OSError):
                self._sock.setsockopt(socket.IPPROTO_IP, socket.IP_DROP_MEMBERSHIP, self._mreq)
        self._sock.close()

    def __enter__(self) -> MulticastReceiver:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


def sender_main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="multicast-sender", description="Send lines read from standard input to a group."
    )
    parser.add_argument("--group", default=MULTICAST_ADDRESS)
    parser.add_argument("--port", type=int, default=MULTICAST_PORT)
    parser.add_argument("--bind-port", type=int, default=SERVER_PORT)
    parser.add_argument("--ttl", type=int, default=MULTICAST_TTL)
    parser.add_argument("--no-loopback", action="store_true")
    args = parser.parse_args(argv)
    try:
        sender = MulticastSender(
            args.group, args.port, args.bind_port, args.ttl, not args.no_loopback
        )
    except (OSError, ValueError) as exc:
        print(exc, file=sys.stderr)
        return 1
    with sender:
        print(f"Set multicast TTL to {sender.ttl}")
        print(f"Multicast loopback {'enabled' if sender.loopback else 'disabled'}")
        while True:
            print("Enter a message to send: ", end="", flush=True)
            line = sys.stdin.readline()
            if not line:
                break
            print(f"Sending message to {args.group}:{args.port}")
            try:
                sender.send(line.rstrip("\n"))
            except OSError as exc:
                print(exc, file=sys.stderr)
                return 1
    return 0


def receiver_main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="multicast-receiver", description="Join a multicast group and print its messages."
    )
    parser.add_argument("--group", default=MULTICAST_ADDRESS)
    parser.add_argument("--port", type=int, default=MULTICAST_PORT)
    args = parser.parse_args(argv)
    try:
        receiver = MulticastReceiver(args.group, args.port)
    except (OSError, ValueError) as exc:
        print(exc, file=sys.stderr)
        return 1
    print(f"Successfully joined multicast group {args.group}")
    print(f"Listening for multicast messages on {args.group}:{args.port}", flush=True)
    status = 0
    try:
        while True:
            print("Waiting for multicast messages...", flush=True)
            text, (host, port) = receiver.receive()
            print(f"Received message from {host}:{port}")
            print(f"Message: {text}", flush=True)
    except KeyboardInterrupt:
        pass
    except OSError as exc:
        print(exc, file=sys.stderr)
        status = 1
    finally:
        receiver.close()
        print(f"Left multicast group {args.group}")
    return status