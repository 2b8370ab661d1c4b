"""Blocking TCP receiver and sender that exchange text messages."""

from __future__ import annotations

import argparse
import socket
import sys
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import TextIO

SERVER_ADDRESS = "127.0.0.1"
ANY_ADDRESS = "0.0.0.0"
SERVER_PORT = 8080
ANY_PORT = 0
BUFFER_SIZE = 1024
MAX_PENDING_CONNECTIONS = 5
EXIT_COMMAND = "exit"


@contextmanager
def _failure(message: str) -> Iterator[None]:
    """Re-raise any socket error with a message naming the failed step."""
    try:
        yield
    except OSError as exc:
        raise OSError(f"{message}: {exc}") from exc


def _enable_reuse(sock: socket.socket) -> None:
    with _failure("Failed to set SO_REUSEADDR"):
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    reuse_port = getattr(socket, "SO_REUSEPORT", None)
    if reuse_port is not None:
        with _failure("Failed to set SO_REUSEPORT"):
            sock.setsockopt(socket.SOL_SOCKET, reuse_port, 1)


def _new_tcp_socket() -> socket.socket:
    with _failure("Failed to create socket"):
        return socket.socket(socket.AF_INET, socket.SOCK_STREAM)


class TcpReceiver:
    """A listening TCP socket that accepts connections from senders."""

    def __init__(
        self,
        host: str = ANY_ADDRESS,
        port: int = SERVER_PORT,
        backlog: int = MAX_PENDING_CONNECTIONS,
    ) -> None:
        self._sock = _new_tcp_socket()
        try:
            _enable_reuse(self._sock)
            with _failure("Failed to bind socket"):
                self._sock.bind((host, port))
            with _failure("Failed to listen"):
                self._sock.listen(backlog)
        except BaseException:
            self._sock.close()
            raise
        self.address: tuple[str, int] = self._sock.getsockname()

    def accept(self) -> tuple[socket.socket, tuple[str, int]]:
        """Wait for one sender and return its connection and address."""
        with _failure("Failed to accept connection"):
            return self._sock.accept()

    def close(self) -> None:
        self._sock.close()

    def __enter__(self) -> TcpReceiver:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


def serve_one(receiver: TcpReceiver, out: TextIO | None = None) -> list[str]:
    """Accept one sender, echo its messages to ``out`` until it disconnects.

    Returns the text chunks received, in order.
    """
    if out is None:
        out = sys.stdout
    connection, _ = receiver.accept()
    print("Connection accepted", file=out)
    messages: list[str] = []
    with connection:
        while True:
            try:
                data = connection.recv(BUFFER_SIZE)
            except OSError:
                print("Failed to receive message from client", file=sys.stderr)
                break
            if not data:
                print("Client disconnected", file=out)
                break
            text = data.decode("utf-8", errors="replace")
            messages.append(text)
            print(f"Message from client: {text}", file=out)
    return messages


class TcpSender:
    """A TCP connection to a receiver."""

    def __init__(self, host: str = SERVER_ADDRESS, port: int = SERVER_PORT) -> None:
        self._sock = _new_tcp_socket()
        try:
            _enable_reuse(self._sock)
            with _failure("Failed to bind socket"):
                self._sock.bind((ANY_ADDRESS, ANY_PORT))
            with _failure("Failed to connect to server"):
                self._sock.connect((host, port))
        except BaseException:
            self._sock.close()
            raise

    def send(self, message: str | bytes) -> int:
        """Send a message and return the number of bytes the socket took."""
        data = message.encode("utf-8") if isinstance(message, str) else message
        with _failure("Failed to send message to server"):
            return self._sock.send(data)

    def close(self) -> None:
        self._sock.close()

    def __enter__(self) -> TcpSender:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


def run_sender(sender: TcpSender, lines: Iterable[str], out: TextIO | None = None) -> list[int]:
    """Send each whitespace-separated word of ``lines`` until ``exit``.

    Returns the byte counts of the messages sent.
    """
    if out is None:
        out = sys.stdout
    counts: list[int] = []
    for line in lines:
        for word in line.split():
            print("Enter message to send to server: ", end="", file=out)
            if word == EXIT_COMMAND:
                return counts
            try:
                sent = sender.send(word)
            except OSError:
                print("Bytes sent: -1", file=out)
                print("Failed to send message to server", file=sys.stderr)
                return counts
            print(f"Bytes sent: {sent}", file=out)
            if sent == 0:
                print("Server closed the connection", file=out)
                return counts
            counts.append(sent)
    return counts


def receiver_main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="tcp-receiver", description="Accept one TCP sender and print its messages."
    )
    parser.add_argument("--host", default=ANY_ADDRESS)
    parser.add_argument("--port", type=int, default=SERVER_PORT)
    args = parser.parse_args(argv)
    try:
        with TcpReceiver(args.host, args.port) as receiver:
            serve_one(receiver, sys.stdout)
    except OSError as exc:
        print(exc, file=sys.stderr)
        return 1
    return 0


def sender_main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="tcp-sender", description="Send words read from standard input to a TCP receiver."
    )
    parser.add_argument("--host", default=SERVER_ADDRESS)
    parser.add_argument("--port", type=int, default=SERVER_PORT)
    args = parser.parse_args(argv)
    try:
        with TcpSender(args.host, args.port) as sender:
            print("Connected to server")
            run_sender(sender, sys.stdin, sys.stdout)
    except OSError as exc:
        print(exc, file=sys.stderr)
        return 1
    return 0