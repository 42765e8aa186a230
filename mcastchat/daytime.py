"""Broadcast-capable UDP round-trip probe against a daytime-style echo service."""

from __future__ import annotations

import socket
import struct
import sys
import time
from dataclasses import dataclass

__all__ = [
    "DAYTIME_PORT",
    "MAXLINE",
    "ProbeResult",
    "pack_timeval",
    "unpack_timeval",
    "round_trip",
    "probe",
    "main",
]

DAYTIME_PORT = 13
MAXLINE = 500

# Two native 64-bit fields: seconds and microseconds.
_TIMEVAL = struct.Struct("=qq")


class _SetupError(OSError):
    """A socket could not be prepared; ``status`` is the exit status to use."""

    def __init__(self, status, errno_, message):
        super().__init__(errno_, message)
        self.status = status


@dataclass(frozen=True)
class ProbeResult:
    """One reply: who sent it, how many bytes, and the round trip in seconds."""

    host: str
    port: int
    nbytes: int
    rtt: float

    @property
    def rtt_ms(self):
        return self.rtt * 1000.0


def pack_timeval(seconds):
    """Encode a timestamp as seconds and microseconds, as a timeval carries it."""
    sec, usec = divmod(round(seconds * 1_000_000), 1_000_000)
    return _TIMEVAL.pack(sec, usec)


def unpack_timeval(data):
    """Decode a timeval back into seconds as a float."""
    if len(data) < _TIMEVAL.size:
        raise ValueError(
            f"timeval needs {_TIMEVAL.size} bytes, got {len(data)}"
        )
    sec, usec = _TIMEVAL.unpack_from(data)
    return sec + usec / 1_000_000


def round_trip(sent, now):
    """Return the seconds elapsed between ``sent`` and ``now``."""
    return now - sent


def _open_socket(address, timeout):
    try:
        socket.inet_pton(socket.AF_INET, address)
    except (OSError, ValueError) as exc:
        raise ValueError(f"AF_INET inet_pton error for {address}") from exc
    try:
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    except OSError as exc:
        raise _SetupError(2, exc.errno, f"AF_INET socket error : {exc.strerror}") from exc
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
    except OSError as exc:
        sock.close()
        raise _SetupError(
            3, exc.errno, f"SO_BROADCAST setsockopt error : {exc.strerror}"
        ) from exc
    try:
        sock.settimeout(timeout)
    except (OSError, ValueError) as exc:
        sock.close()
        raise _SetupError(4, getattr(exc, "errno", None), f"SO_RCVTIMEO error : {exc}") from exc
    return sock


def probe(address, port=DAYTIME_PORT, attempts=4, timeout=3.0, deadline=6.0, out=None):
    """Send timestamped datagrams to ``address:port`` and time the replies.

    Up to ``attempts`` requests are made, each waiting ``timeout`` seconds
    for an answer; no new request starts once ``deadline`` seconds have
    passed. Returns the replies received, in order.
    """
    out = sys.stdout if out is None else out
    results = []
    with _open_socket(address, timeout) as sock:
        start = time.monotonic()
        for _ in range(attempts):
            if time.monotonic() - start >= deadline:
                out.write(
                    f"⏱️ Listening time exceeded {deadline:g} seconds – stopping.\n"
                )
                break
            sock.sendto(pack_timeval(time.time()), (address, port))
            try:
                data, peer = sock.recvfrom(_TIMEVAL.size)
            except (TimeoutError, BlockingIOError):
                out.write("⏳ No response, retrying...\n")
                continue
            now = time.time()
            try:
                sent = unpack_timeval(data)
            except ValueError:
                sent = now
            result = ProbeResult(peer[0], peer[1], len(data), round_trip(sent, now))
            results.append(result)
            out.write(f"📨 Reply from {result.host}:{result.port}\n")
            out.write(f"⏱️ RTT: {result.rtt_ms:.3f} ms\n\n")
        if results:
            last = results[-1]
            out.write(f"Received {last.nbytes} bytes from {last.host}:{last.port}\n")
        out.flush()
    return results


def main(argv=None):
    """Probe ``<IPaddress>`` on the daytime port; return the exit status."""
    args = sys.argv[1:] if argv is None else list(argv)
    if len(args) != 1:
        print("usage: mcastchat-daytime <IPaddress> ", file=sys.stderr)
        return 1
    try:
        probe(args[0])
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    except _SetupError as exc:
        print(exc.strerror, file=sys.stderr)
        return exc.status
    except OSError as exc:
        print(f"sendto error: {exc.strerror or exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 0
    return 0