import errno
import io
import os
import platform
import socket

import pytest

from mcastchat.chat import (
    MAXLINE,
    format_chat_message,
    format_datagram_report,
    format_presence,
    main,
    recv_all,
    recv_loop,
    send_all,
    send_loop,
)


class FakeSocket:
    """Stand-in socket that replays queued datagrams and errors."""

    def __init__(self, items, send_error=None):
        self.items = list(items)
        self.closed = False
        self.bufsizes = []
        self.send_error = send_error

    def recvfrom(self, bufsize):
        self.bufsizes.append(bufsize)
        if not self.items:
            self.closed = True
            raise OSError(errno.EBADF, "Bad file descriptor")
        item = self.items.pop(0)
        if isinstance(item, Exception):
            raise item
        return item, ("10.0.0.9", 4000)

    def sendto(self, data, dest):
        raise self.send_error

    def fileno(self):
        return -1 if self.closed else 3


@pytest.fixture
def udp_pair():
    receiver = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    receiver.bind(("127.0.0.1", 0))
    receiver.settimeout(2)
    sender = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    yield sender, receiver
    sender.close()
    receiver.close()


def test_format_chat_message():
    assert format_chat_message("node", "hello") == "node: hello"


def test_format_chat_message_fits_buffer():
    message = format_chat_message("node", "y" * 5000)
    assert len(message.encode("utf-8")) == MAXLINE - 1
    assert message.startswith("node: y")


def test_format_presence():
    assert format_presence("host", 42) == "host, PID=42"


def test_format_datagram_report():
    report = format_datagram_report("10.0.0.1", b"abc")
    assert report == "Datagram from 10.0.0.1 : abc (3 bytes)"


def test_recv_loop_prints_until_closed():
    sock = FakeSocket([b"alpha", b"beta"])
    out = io.StringIO()
    recv_loop(sock, out)
    assert out.getvalue() == "\n💬 alpha\n> \n💬 beta\n> "
    assert set(sock.bufsizes) == {MAXLINE}


def test_recv_loop_reports_errors_and_continues(capsys):
    sock = FakeSocket([b"a", OSError(errno.ECONNREFUSED, "refused"), b"b"])
    out = io.StringIO()
    recv_loop(sock, out)
    assert "💬 a" in out.getvalue()
    assert "💬 b" in out.getvalue()
    assert "recvfrom error" in capsys.readouterr().err


def test_send_loop_sends_each_line(udp_pair):
    sender, receiver = udp_pair
    out = io.StringIO()
    sent = send_loop(sender, receiver.getsockname(), ["hello\n", "world\n"], "node", out)
    assert sent == 2
    assert receiver.recv(MAXLINE) == b"node: hello"
    assert receiver.recv(MAXLINE) == b"node: world"
    assert out.getvalue() == "> " * 3


def test_send_loop_splits_long_lines(udp_pair):
    sender, receiver = udp_pair
    sent = send_loop(sender, receiver.getsockname(), ["x" * 1000 + "\n"], "node", io.StringIO())
    assert sent == 2
    first = receiver.recv(MAXLINE)
    second = receiver.recv(MAXLINE)
    assert first == b"node: " + b"x" * 899
    assert second == b"node: " + b"x" * 101


def test_send_loop_reports_send_errors(capsys):
    sock = FakeSocket([], send_error=OSError(errno.ENETUNREACH, "unreachable"))
    sent = send_loop(sock, ("10.0.0.1", 1), ["hi\n"], "node", io.StringIO())
    assert sent == 0
    assert "sendto error" in capsys.readouterr().err


def test_send_all_announces_presence(udp_pair):
    sender, receiver = udp_pair
    sent = send_all(sender, receiver.getsockname(), interval=0, limit=3)
    assert sent == 3
    expected = format_presence(platform.node(), os.getpid()).encode("utf-8")
    assert [receiver.recv(MAXLINE) for _ in range(3)] == [expected] * 3


def test_recv_all_reports_source(udp_pair):
    sender, receiver = udp_pair
    sender.sendto(b"hi", receiver.getsockname())
    out = io.StringIO()
    assert recv_all(receiver, out, limit=1) == 1
    assert out.getvalue() == "Datagram from 127.0.0.1 : hi (2 bytes)\n"


def test_recv_all_skips_errors(capsys):
    sock = FakeSocket([OSError(errno.EINTR, "interrupted"), b"data"])
    out = io.StringIO()
    assert recv_all(sock, out, limit=1) == 1
    assert out.getvalue() == "Datagram from 10.0.0.9 : data (4 bytes)\n"
    assert "recvfrom() error" in capsys.readouterr().err


def test_main_requires_three_arguments(capsys):
    assert main(["239.0.0.1", "5000"]) == 1
    assert "usage" in capsys.readouterr().err


def test_main_rejects_bad_address(capsys):
    assert main(["not-an-address", "5000", "lo"]) == 1
    assert "inet_pton error" in capsys.readouterr().err