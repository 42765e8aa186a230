"""Interactive multicast chat: every participant sends and receives on one group."""

from __future__ import annotations

import itertools
import os
import platform
import re
import socket
import sys
import threading
import time

from mcastchat.net import (
    MulticastError,
    mcast_join,
    mcast_set_loop,
    open_send_socket,
    set_multicast_interface,
    socket_family,
)

__all__ = [
    "MAXLINE",
    "SENDRATE",
    "format_chat_message",
    "format_presence",
    "format_datagram_report",
    "recv_loop",
    "send_loop",
    "send_all",
    "recv_all",
    "main",
]

MAXLINE = 1024
SENDRATE = 5
_INPUT_SIZE = 900
_USAGE = "usage: mcastchat  <IP-multicast-address> <port#> <if name>"


def _clip(text, limit=MAXLINE - 1):
    """Cut ``text`` so that its UTF-8 form fits in ``limit`` bytes."""
    data = text.encode("utf-8")
    if len(data) <= limit:
        return text
    return data[:limit].decode("utf-8", errors="ignore")


def _input_lines(lines, size=_INPUT_SIZE):
    """Yield input text the way a fixed-size line reader would see it.

    Lines longer than ``size - 1`` characters arrive in several pieces,
    and each piece is cut at its first newline.
    """
    for line in lines:
        while line:
            chunk, line = line[: size - 1], line[size - 1 :]
            yield chunk.split("\n", 1)[0]


def _atoi(text):
    match = re.match(r"\s*([+-]?\d+)", text)
    return int(match.group(1)) if match else 0


def format_chat_message(nodename, text):
    """Return the chat datagram text ``"<nodename>: <text>"``."""
    return _clip(f"{nodename}: {text}")


def format_presence(nodename, pid):
    """Return the periodic presence announcement for this host and process."""
    return _clip(f"{nodename}, PID={pid}")


def format_datagram_report(address, payload):
    """Describe a received datagram together with its sender and size."""
    text = payload.decode("utf-8", errors="replace")
    return f"Datagram from {address} : {text} ({len(payload)} bytes)"


def recv_loop(sock, out=None):
    """Print every incoming chat message until the socket is closed."""
    out = sys.stdout if out is None else out
    while True:
        try:
            data, _ = sock.recvfrom(MAXLINE)
        except OSError as exc:
            if sock.fileno() == -1:
                return
            print(f"recvfrom error: {exc.strerror or exc}", file=sys.stderr)
            continue
        out.write(f"\n💬 {data.decode('utf-8', errors='replace')}\n> ")
        out.flush()


def send_loop(sock, dest, lines=None, nodename=None, out=None):
    """Send each input line as a chat message; return the number sent."""
    lines = sys.stdin if lines is None else lines
    nodename = platform.node() if nodename is None else nodename
    out = sys.stdout if out is None else out
    sent = 0
    out.write("> ")
    out.flush()
    for text in _input_lines(lines):
        message = format_chat_message(nodename, text)
        try:
            sock.sendto(message.encode("utf-8"), dest)
        except OSError as exc:
            print(f"sendto error: {exc.strerror or exc}", file=sys.stderr)
        else:
            sent += 1
        out.write("> ")
        out.flush()
    return sent


def send_all(sock, dest, interval=SENDRATE, limit=None):
    """Announce this host and process every ``interval`` seconds.

    Runs forever unless ``limit`` caps the number of attempts; returns
    the number of datagrams actually sent.
    """
    line = format_presence(platform.node(), os.getpid()).encode("utf-8")
    attempts = itertools.count() if limit is None else range(limit)
    sent = 0
    for _ in attempts:
        try:
            sock.sendto(line, dest)
        except OSError as exc:
            print(f"sendto() error : {exc.strerror or exc}", file=sys.stderr)
        else:
            sent += 1
        time.sleep(interval)
    return sent


def recv_all(sock, out=None, limit=None):
    """Report each received datagram with its source address.

    Runs forever unless ``limit`` caps the number of datagrams reported;
    returns how many were reported.
    """
    out = sys.stdout if out is None else out
    received = 0
    while limit is None or received < limit:
        try:
            data, source = sock.recvfrom(MAXLINE)
        except OSError as exc:
            print(f"recvfrom() error: {exc.strerror or exc}", file=sys.stderr)
            continue
        out.write(format_datagram_report(source[0], data) + "\n")
        out.flush()
        received += 1
    return received


def _bind_to_device(sock, ifname):
    option = getattr(socket, "SO_BINDTODEVICE", None)
    if option is None:
        return
    try:
        sock.setsockopt(socket.SOL_SOCKET, option, ifname.encode())
    except OSError:
        pass


def _wildcard(family, port):
    if family == socket.AF_INET6:
        return ("::", port, 0, 0)
    return ("0.0.0.0", port)


def main(argv=None):
    """Run the chat on ``<group> <port> <interface>``; return the exit status."""
    args = sys.argv[1:] if argv is None else list(argv)
    if len(args) != 3:
        print(_USAGE, file=sys.stderr)
        return 1
    address, port_text, ifname = args
    port = _atoi(port_text) & 0xFFFF

    try:
        send_sock, dest = open_send_socket(address, port)
    except MulticastError as exc:
        print(exc.strerror, file=sys.stderr)
        return 1

    with send_sock:
        family = socket_family(send_sock)
        try:
            recv_sock = socket.socket(family, socket.SOCK_DGRAM)
        except OSError as exc:
            print(f"socket error : {exc.strerror}", file=sys.stderr)
            return 1
        with recv_sock:
            try:
                recv_sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            except OSError as exc:
                print(f"setsockopt error : {exc.strerror}", file=sys.stderr)
                return 1

            _bind_to_device(send_sock, ifname)
            try:
                set_multicast_interface(send_sock, family, ifname)
            except MulticastError as exc:
                print(f"setting local interface: {exc.strerror}", file=sys.stderr)
                return 1

            try:
                recv_sock.bind(_wildcard(family, port))
            except OSError as exc:
                print(f"bind error : {exc.strerror}", file=sys.stderr)
                return 1

            try:
                mcast_join(recv_sock, dest, ifname, 0)
            except MulticastError as exc:
                print(exc.strerror, file=sys.stderr)
                return 1

            try:
                mcast_set_loop(send_sock, True)
            except MulticastError:
                pass

            receiver = threading.Thread(
                target=recv_loop, args=(recv_sock, sys.stdout), daemon=True
            )
            receiver.start()
            try:
                send_loop(send_sock, dest, sys.stdin, platform.node(), sys.stdout)
                send_all(send_sock, dest)
            except KeyboardInterrupt:
                return 0
    return 0