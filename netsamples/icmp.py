"""ICMP echo packets and a raw-socket pinger."""

from __future__ import annotations

import argparse
import os
import socket
import struct
import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

DEFAULT_TARGET = "8.8.8.8"
PAYLOAD_SIZE = 56
HEADER_SIZE = 8
MAX_WAIT_TIME = 1.0
BUFFER_SIZE = 1024
DEFAULT_COUNT = 10
DEFAULT_INTERVAL = 1.0
ICMP_ECHO = 8
ICMP_ECHOREPLY = 0

_IPV4_MIN_HEADER = 20
_HEADER = struct.Struct("!BBHHH")


@contextmanager
def _failure(message: str) -> Iterator[None]:
    try:
        yield
    except OSError as exc:
        raise OSError(f"{message}: {exc}") from exc


def checksum(data: bytes) -> int:
    """Return the Internet checksum (ones' complement sum) of ``data``."""
    data = bytes(data)
    if len(data) % 2:
        data += b"\0"
    total = sum(word for (word,) in struct.iter_unpack("!H", data))
    while total >> 16:
        total = (total & 0xFFFF) + (total >> 16)
    return ~total & 0xFFFF


def default_payload(size: int = PAYLOAD_SIZE) -> bytes:
    """Return the filler payload: each byte is its offset in the packet, modulo 256."""
    if size < 0:
        raise ValueError("payload size must not be negative")
    return bytes((HEADER_SIZE + offset) % 256 for offset in range(size))


def build_echo_request(identifier: int, sequence: int, payload: bytes | None = None) -> bytes:
    """Build an ICMP echo request with a valid checksum."""
    if not 0 <= sequence <= 0xFFFF:
        raise ValueError("sequence must fit in 16 bits")
    if payload is None:
        payload = default_payload()
    identifier &= 0xFFFF
    unsigned = _HEADER.pack(ICMP_ECHO, 0, 0, identifier, sequence) + payload
    return _HEADER.pack(ICMP_ECHO, 0, checksum(unsigned), identifier, sequence) + payload


@dataclass(frozen=True)
class EchoReply:
    """The fields of an ICMP message received inside an IPv4 packet."""

    icmp_type: int
    code: int
    identifier: int
    sequence: int
    ttl: int
    checksum_valid: bool


def parse_echo_reply(packet: bytes) -> EchoReply:
    """Parse an IPv4 packet carrying an ICMP message."""
    packet = bytes(packet)
    if len(packet) < _IPV4_MIN_HEADER:
        raise ValueError("packet too short for an IPv4 header")
    header_length = (packet[0] & 0x0F) * 4
    if header_length < _IPV4_MIN_HEADER:
        raise ValueError("invalid IPv4 header length")
    icmp = packet[header_length:]
    if len(icmp) < HEADER_SIZE:
        raise ValueError("packet too short for an ICMP header")
    icmp_type, code, received, identifier, sequence = _HEADER.unpack_from(icmp)
    zeroed = icmp[:2] + b"\0\0" + icmp[4:]
    return EchoReply(
        icmp_type=icmp_type,
        code=code,
        identifier=identifier,
        sequence=sequence,
        ttl=packet[8],
        checksum_valid=checksum(zeroed) == received,
    )


def format_reply(target: str, sequence: int, ttl: int, elapsed_ms: float) -> str:
    return f"64 bytes from {target}: icmp_seq={sequence} ttl={ttl} time={elapsed_ms:.2f} ms"


class Pinger:
    """Sends ICMP echo requests over a raw socket and waits for replies."""

    def __init__(self, target: str = DEFAULT_TARGET, timeout: float = MAX_WAIT_TIME) -> None:
        self.target = target
        self.timeout = timeout
        self.identifier = os.getpid() & 0xFFFF
        self.payload = default_payload()
        with _failure("Failed to create socket"):
            self._sock = socket.socket(socket.AF_INET, socket.SOCK_RAW, socket.IPPROTO_ICMP)
        try:
            with _failure("Failed to set socket options"):
                self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
                reuse_port = getattr(socket, "SO_REUSEPORT", None)
                if reuse_port is not None:
                    self._sock.setsockopt(socket.SOL_SOCKET, reuse_port, 1)
            with _failure("Failed to bind socket"):
                self._sock.bind(("0.0.0.0", 0))
        except BaseException:
            self._sock.close()
            raise

    def _is_answer(self, reply: EchoReply, sequence: int) -> bool:
        return (
            reply.icmp_type == ICMP_ECHOREPLY
            and reply.identifier == self.identifier
            and reply.sequence == sequence
            and reply.checksum_valid
        )

    def ping_once(self, sequence: int = 0) -> tuple[EchoReply, float] | None:
        """Send one echo request; return the reply and round trip in ms, or None on timeout."""
        packet = build_echo_request(self.identifier, sequence, self.payload)
        start = time.perf_counter()
        with _failure("Failed to send ICMP packet"):
            sent = self._sock.sendto(packet, (self.target, 0))
        if sent <= 0:
            raise OSError("Failed to send ICMP packet")
        while (elapsed := time.perf_counter() - start) < self.timeout:
            self._sock.settimeout(self.timeout - elapsed)
            try:
                data, _ = self._sock.recvfrom(BUFFER_SIZE)
            except OSError:
                return None
            elapsed_ms = (time.perf_counter() - start) * 1000.0
            try:
                reply = parse_echo_reply(data)
            except ValueError:
                continue
            if self._is_answer(reply, sequence):
                return reply, elapsed_ms
        return None

    def close(self) -> None:
        self._sock.close()

    def __enter__(self) -> Pinger:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="icmp-ping", description="Send ICMP echo requests.")
    parser.add_argument("target", nargs="?", default=DEFAULT_TARGET)
    parser.add_argument("--count", type=int, default=DEFAULT_COUNT)
    parser.add_argument("--timeout", type=float, default=MAX_WAIT_TIME)
    parser.add_argument("--interval", type=float, default=DEFAULT_INTERVAL)
    args = parser.parse_args(argv)
    try:
        pinger = Pinger(args.target, args.timeout)
    except OSError as exc:
        print(exc, file=sys.stderr)
        return 1
    with pinger:
        for sequence in range(args.count):
            time.sleep(args.interval)
            try:
                result = pinger.ping_once(sequence & 0xFFFF)
            except OSError as exc:
                print(exc, file=sys.stderr)
                continue
            if result is None:
                print("Request timed out", file=sys.stderr)
                continue
            reply, elapsed_ms = result
            print(format_reply(args.target, reply.sequence, reply.ttl, elapsed_ms))
    return 0