import socket
import struct

import pytest

from netsamples.icmp import (
    ICMP_ECHO,
    ICMP_ECHOREPLY,
    PAYLOAD_SIZE,
    Pinger,
    build_echo_request,
    checksum,
    default_payload,
    format_reply,
    main,
    parse_echo_reply,
)


def _ip_header(ttl, words=5):
    header = bytes([0x40 | words, 0]) + bytes(6) + bytes([ttl, 1]) + bytes(10)
    return header + bytes(4 * (words - 5))


def _reply_for(request, sequence=None):
    icmp = bytearray(request)
    icmp[0] = ICMP_ECHOREPLY
    if sequence is not None:
        icmp[6:8] = struct.pack("!H", sequence)
    icmp[2:4] = b"\0\0"
    icmp[2:4] = struct.pack("!H", checksum(bytes(icmp)))
    return bytes(icmp)


class _FakeSocket:
    def __init__(self, mode, ttl=57):
        self.mode = mode
        self.ttl = ttl
        self.sent = []
        self.queue = []
        self.closed = False

    def setsockopt(self, *args):
        pass

    def bind(self, address):
        pass

    def settimeout(self, value):
        pass

    def sendto(self, data, address):
        self.sent.append((data, address))
        if self.mode == "stray":
            self.queue.append(_ip_header(self.ttl) + _reply_for(data, sequence=999))
            self.queue.append(b"\x45")
        if self.mode in ("reply", "stray"):
            self.queue.append(_ip_header(self.ttl) + _reply_for(data))
        return len(data)

    def recvfrom(self, size):
        if not self.queue:
            raise socket.timeout("timed out")
        return self.queue.pop(0), ("8.8.8.8", 0)

    def close(self):
        self.closed = True


def _install(monkeypatch, mode):
    fakes = []

    def factory(*args, **kwargs):
        fake = _FakeSocket(mode)
        fakes.append(fake)
        return fake

    monkeypatch.setattr(socket, "socket", factory)
    return fakes


def test_checksum_of_empty_data():
    assert checksum(b"") == 0xFFFF


def test_checksum_worked_example():
    assert checksum(bytes([0x00, 0x01, 0xF2, 0x03, 0xF4, 0xF5, 0xF6, 0xF7])) == 0x220D


def test_checksum_pads_odd_length():
    assert checksum(b"\x01\x02\x03") == checksum(b"\x01\x02\x03\x00")


def test_default_payload_follows_packet_offsets():
    payload = default_payload()
    assert len(payload) == PAYLOAD_SIZE
    assert payload[0] == 8
    assert all(b - a == 1 for a, b in zip(payload, payload[1:]))


def test_default_payload_rejects_negative_size():
    with pytest.raises(ValueError):
        default_payload(-1)


def test_default_request_is_64_bytes():
    assert len(build_echo_request(1, 0)) == 64


def test_request_header_and_checksum():
    packet = build_echo_request(0x1234, 7, b"abc")
    icmp_type, code, _, identifier, sequence = struct.unpack("!BBHHH", packet[:8])
    assert (icmp_type, code, identifier, sequence) == (ICMP_ECHO, 0, 0x1234, 7)
    assert packet[8:] == b"abc"
    assert checksum(packet) == 0


def test_request_rejects_large_sequence():
    with pytest.raises(ValueError):
        build_echo_request(1, 0x10000)


def test_parse_round_trip():
    request = build_echo_request(0x4242, 9, b"data")
    reply = parse_echo_reply(_ip_header(64) + request)
    assert reply.icmp_type == ICMP_ECHO
    assert reply.identifier == 0x4242
    assert reply.sequence == 9
    assert reply.ttl == 64
    assert reply.checksum_valid is True


def test_parse_detects_corruption():
    request = bytearray(build_echo_request(1, 2, b"data"))
    request[-1] ^= 0xFF
    assert parse_echo_reply(_ip_header(64) + bytes(request)).checksum_valid is False


def test_parse_honours_ip_options():
    request = _reply_for(build_echo_request(5, 6, b"xy"))
    reply = parse_echo_reply(_ip_header(30, words=6) + request)
    assert (reply.icmp_type, reply.sequence, reply.ttl) == (ICMP_ECHOREPLY, 6, 30)


@pytest.mark.parametrize("packet", [b"", bytes(19), _ip_header(64) + b"\x00\x00"])
def test_parse_rejects_short_packets(packet):
    with pytest.raises(ValueError):
        parse_echo_reply(packet)


def test_format_reply():
    assert format_reply("8.8.8.8", 3, 117, 12.3456) == (
        "64 bytes from 8.8.8.8: icmp_seq=3 ttl=117 time=12.35 ms"
    )


def test_ping_once_returns_matching_reply(monkeypatch):
    fakes = _install(monkeypatch, "reply")
    with Pinger("8.8.8.8", timeout=1.0) as pinger:
        result = pinger.ping_once(5)
    reply, elapsed = result
    assert reply.sequence == 5
    assert reply.ttl == 57
    assert elapsed >= 0
    assert fakes[0].sent[0][1] == ("8.8.8.8", 0)
    assert fakes[0].closed is True


def test_ping_once_skips_stray_packets(monkeypatch):
    _install(monkeypatch, "stray")
    with Pinger("8.8.8.8", timeout=1.0) as pinger:
        reply, _ = pinger.ping_once(4)
    assert reply.sequence == 4


def test_ping_once_times_out(monkeypatch):
    _install(monkeypatch, "silent")
    with Pinger("8.8.8.8", timeout=0.5) as pinger:
        assert pinger.ping_once(0) is None


def test_main_prints_replies(monkeypatch, capsys):
    _install(monkeypatch, "reply")
    status = main(["8.8.8.8", "--count", "2", "--interval", "0"])
    out = capsys.readouterr().out.splitlines()
    assert status == 0
    assert len(out) == 2
    assert out[0].startswith("64 bytes from 8.8.8.8: icmp_seq=0 ttl=57 time=")
    assert "icmp_seq=1" in out[1]


def test_main_reports_timeouts(monkeypatch, capsys):
    _install(monkeypatch, "silent")
    status = main(["--count", "1", "--interval", "0", "--timeout", "0.2"])
    assert status == 0
    assert "Request timed out" in capsys.readouterr().err


def test_main_fails_without_socket(monkeypatch, capsys):
    def refuse(*args, **kwargs):
        raise PermissionError("Operation not permitted")

    monkeypatch.setattr(socket, "socket", refuse)
    assert main(["--count", "1", "--interval", "0"]) == 1
    assert "Failed to create socket" in capsys.readouterr().err