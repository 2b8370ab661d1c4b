"""UDP broadcast sender and receiver."""

from __future__ import annotations

import argparse
import socket
import sys
import time
from collections.abc import Iterator

from .tcp import _enable_reuse, _failure

SERVER_ADDRESS = "127.0.0.1"
SERVER_PORT = 53771
BROADCAST_ADDRESS = "255.255.255.255"
BROADCAST_PORT = 53772
ANY_ADDRESS = "0.0.0.0"
BUFFER_SIZE = 1024
BROADCAST_TIMEOUT_SECONDS = 1.0


class BroadcastSender:
    """A UDP socket allowed to send datagrams to a broadcast address."""

    def __init__(
        self,
        bind_host: str = SERVER_ADDRESS,
        bind_port: int = SERVER_PORT,
        broadcast_host: str = BROADCAST_ADDRESS,
        broadcast_port: int = BROADCAST_PORT,
    ) -> None:
        with _failure("Failed to create socket"):
            self._sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            _enable_reuse(self._sock)
            with _failure("Failed to set socket options: BROADCAST"):
                self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
            with _failure("Failed to bind socket"):
                self._sock.bind((bind_host, bind_port))
        except BaseException:
            self._sock.close()
            raise
        self.address: tuple[str, int] = self._sock.getsockname()
        self.destination: tuple[str, int] = (broadcast_host, broadcast_port)

    def send(self, message: str | bytes) -> int:
        """Send ``message`` to the broadcast address and return the bytes sent.

        Raises OSError if the whole message could not be sent within the timeout.
        """
        data = message.encode("utf-8") if isinstance(message, str) else bytes(message)
        deadline = time.monotonic() + BROADCAST_TIMEOUT_SECONDS
        total = 0
        while time.monotonic() < deadline:
            with _failure("Failed to send message"):
                total += self._sock.sendto(data, self.destination)
            if total == len(data):
                return total
        raise OSError("Failed to send message")

    def close(self) -> None:
        self._sock.close()

    def __enter__(self) -> BroadcastSender:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


class BroadcastReceiver:
    """A UDP socket bound on all interfaces to receive broadcast datagrams."""

    def __init__(self, port: int = BROADCAST_PORT) -> None:
        with _failure("Failed to create socket"):
            self._sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            _enable_reuse(self._sock)
            with _failure("Failed to bind socket"):
                self._sock.bind((ANY_ADDRESS, port))
        except BaseException:
            self._sock.close()
            raise
        self.address: tuple[str, int] = self._sock.getsockname()

    def receive(self) -> tuple[str, tuple[str, int]]:
        """Wait for one datagram; return its text and the sender's address."""
        with _failure("Failed to receive message"):
            data, sender = self._sock.recvfrom(BUFFER_SIZE - 1)
        return data.decode("utf-8", errors="replace"), sender

    def messages(self) -> Iterator[tuple[str, tuple[str, int]]]:
        """Yield received messages forever, skipping failed receives."""
        while self._sock.fileno() != -1:
            try:
                yield self.receive()
            except OSError as exc:
                print(exc, file=sys.stderr)

    def close(self) -> None:
        self._sock.close()

    def __enter__(self) -> BroadcastReceiver:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


def format_message(address: tuple[str, int], text: str) -> str:
    host, port = address[0], address[1]
    return f"Received from {host}:{port} - {text}"


def sender_main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="broadcast-sender", description="Broadcast lines read from standard input."
    )
    parser.add_argument("--bind-host", default=SERVER_ADDRESS)
    parser.add_argument("--bind-port", type=int, default=SERVER_PORT)
    parser.add_argument("--host", default=BROADCAST_ADDRESS)
    parser.add_argument("--port", type=int, default=BROADCAST_PORT)
    args = parser.parse_args(argv)
    try:
        sender = BroadcastSender(args.bind_host, args.bind_port, args.host, args.port)
    except OSError as exc:
        print(exc, file=sys.stderr)
        return 1
    with sender:
        print(f"Server bound to: {args.bind_host}:{args.bind_port}")
        print(f"Broadcast address: {args.host}:{args.port}")
        while True:
            print("Enter a message to send: ", end="", flush=True)
            line = sys.stdin.readline()
            if not line:
                break
            try:
                sender.send(line.rstrip("\n"))
            except OSError as exc:
                print(exc, file=sys.stderr)
    return 0


def receiver_main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="broadcast-receiver", description="Print broadcast messages received on a port."
    )
    parser.add_argument("--port", type=int, default=BROADCAST_PORT)
    args = parser.parse_args(argv)
    try:
        receiver = BroadcastReceiver(args.port)
    except OSError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    with receiver:
        print(f"Listening for broadcast messages on port {receiver.address[1]}", flush=True)
        try:
            for text, sender in receiver.messages():
                print(format_message(sender, text), flush=True)
        except KeyboardInterrupt:
            pass
    return 0