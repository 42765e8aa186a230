"""Minimal one-way IPv4 multicast sender and receiver."""

from __future__ import annotations

import platform
import socket
import struct
import sys

from mcastchat.chat import MAXLINE, _atoi, _clip, _input_lines
from mcastchat.net import MulticastError, interface_ipv4_address

__all__ = [
    "DEFAULT_LOCAL_INTERFACE",
    "format_sender_message",
    "run_sender",
    "run_receiver",
    "sender_main",
    "receiver_main",
]

DEFAULT_LOCAL_INTERFACE = "192.168.56.101"


def _check_group(group):
    try:
        socket.inet_pton(socket.AF_INET, group)
    except (OSError, ValueError) as exc:
        raise MulticastError(22, f"invalid IPv4 group address {group!r}") from exc


def _local_address(ifname):
    """Return the IPv4 address of ``ifname``, or the default when unknown."""
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as probe:
        try:
            return interface_ipv4_address(probe, ifname)
        except (MulticastError, ImportError):
            return DEFAULT_LOCAL_INTERFACE


def format_sender_message(sysname, nodename, text):
    """Return the datagram text ``"[<sysname>@<nodename>]: <text>"``."""
    return _clip(f"[{sysname}@{nodename}]: {text}")


def run_sender(group, port, local_interface=DEFAULT_LOCAL_INTERFACE, lines=None, out=None):
    """Send each input line to ``group:port``; return the number sent."""
    _check_group(group)
    lines = sys.stdin if lines is None else lines
    out = sys.stdout if out is None else out
    uname = platform.uname()
    sent = 0
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        try:
            sock.setsockopt(
                socket.IPPROTO_IP,
                socket.IP_MULTICAST_IF,
                socket.inet_aton(local_interface),
            )
        except OSError:
            pass
        dest = (group, port)
        out.write("> ")
        out.flush()
        for text in _input_lines(lines):
            message = format_sender_message(uname.system, uname.node, text)
            try:
                sock.sendto(message.encode("utf-8"), dest)
            except OSError:
                pass
            else:
                sent += 1
            out.write("> ")
            out.flush()
    return sent


def run_receiver(group, port, local_interface=DEFAULT_LOCAL_INTERFACE, out=None, limit=None):
    """Join ``group`` and print every datagram received on ``port``.

    Runs forever unless ``limit`` caps the number of datagrams printed;
    returns how many were printed.
    """
    _check_group(group)
    out = sys.stdout if out is None else out
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind(("", port))
        except OSError as exc:
            raise MulticastError(exc.errno, f"bind error : {exc.strerror}") from exc
        try:
            mreq = struct.pack(
                "=4s4s", socket.inet_aton(group), socket.inet_aton(local_interface)
            )
            sock.setsockopt(socket.IPPROTO_IP, socket.IP_ADD_MEMBERSHIP, mreq)
        except OSError as exc:
            print(f"IP_ADD_MEMBERSHIP: {exc.strerror or exc}", file=sys.stderr)

        received = 0
        while limit is None or received < limit:
            try:
                data = sock.recv(MAXLINE)
            except OSError as exc:
                print(f"recvfrom error: {exc.strerror or exc}", file=sys.stderr)
                continue
            out.write(f"💬 {data.decode('utf-8', errors='replace')}\n")
            out.flush()
            received += 1
    return received


def _parse_args(argv, prog):
    args = sys.argv[1:] if argv is None else list(argv)
    if len(args) != 3:
        print(f"usage: {prog} <multicast_addr> <port> <interface>", file=sys.stderr)
        return None
    group, port_text, ifname = args
    return group, _atoi(port_text) & 0xFFFF, ifname


def sender_main(argv=None):
    """Command entry for the sender; return the exit status."""
    parsed = _parse_args(argv, "mcastchat-sender")
    if parsed is None:
        return 1
    group, port, ifname = parsed
    try:
        run_sender(group, port, _local_address(ifname))
    except MulticastError as exc:
        print(exc.strerror, file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 0
    return 0


def receiver_main(argv=None):
    """Command entry for the receiver; return the exit status."""
    parsed = _parse_args(argv, "mcastchat-receiver")
    if parsed is None:
        return 1
    group, port, ifname = parsed
    try:
        run_receiver(group, port, _local_address(ifname))
    except MulticastError as exc:
        print(exc.strerror, file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 0
    return 0