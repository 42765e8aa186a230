"""Socket helpers for joining and sending to IP multicast groups."""

from __future__ import annotations

import errno
import ipaddress
import socket
import struct

__all__ = [
    "MulticastError",
    "parse_group_address",
    "open_send_socket",
    "family_to_level",
    "interface_index",
    "interface_ipv4_address",
    "socket_family",
    "mcast_join",
    "mcast_set_loop",
    "set_multicast_interface",
]

# Linux ioctl request that fetches an interface's IPv4 address.
_SIOCGIFADDR = 0x8915
_IFNAMSIZ = 16

_IPV6_JOIN_GROUP = getattr(
    socket, "IPV6_JOIN_GROUP", getattr(socket, "IPV6_ADD_MEMBERSHIP", 20)
)


class MulticastError(OSError):
    """Raised when a multicast socket cannot be set up."""


def parse_group_address(address, port):
    """Return ``(family, sockaddr)`` for a numeric IPv6 or IPv4 address.

    IPv6 is tried first, then IPv4, as with a textual address lookup.
    """
    try:
        socket.inet_pton(socket.AF_INET6, address)
    except (OSError, ValueError):
        pass
    else:
        return socket.AF_INET6, (address, port, 0, 0)
    try:
        socket.inet_pton(socket.AF_INET, address)
    except (OSError, ValueError) as exc:
        raise MulticastError(
            errno.EINVAL, f"AF_INET inet_pton error for {address}"
        ) from exc
    return socket.AF_INET, (address, port)


def open_send_socket(address, port):
    """Open a UDP socket for ``address``; return ``(sock, sockaddr)``."""
    family, sockaddr = parse_group_address(address, port)
    try:
        sock = socket.socket(family, socket.SOCK_DGRAM)
    except OSError as exc:
        name = "AF_INET6" if family == socket.AF_INET6 else "AF_INET"
        raise MulticastError(exc.errno, f"{name} socket error: {exc.strerror}") from exc
    return sock, sockaddr


def family_to_level(family):
    """Return the socket option level for an address family."""
    if family == socket.AF_INET:
        return socket.IPPROTO_IP
    if family == socket.AF_INET6:
        return socket.IPPROTO_IPV6
    raise MulticastError(errno.EAFNOSUPPORT, f"unsupported address family {family!r}")


def interface_index(ifname):
    """Return the index of the named network interface."""
    try:
        index = socket.if_nametoindex(ifname)
    except OSError as exc:
        raise MulticastError(errno.ENXIO, f"no such interface: {ifname}") from exc
    if index == 0:
        raise MulticastError(errno.ENXIO, f"no such interface: {ifname}")
    return index


def interface_ipv4_address(sock, ifname):
    """Return the IPv4 address bound to ``ifname`` as dotted text."""
    import fcntl

    request = struct.pack("256s", ifname.encode()[: _IFNAMSIZ - 1])
    try:
        reply = fcntl.ioctl(sock.fileno(), _SIOCGIFADDR, request)
    except OSError as exc:
        raise MulticastError(
            exc.errno or errno.ENXIO, f"cannot get address of {ifname}: {exc.strerror}"
        ) from exc
    return socket.inet_ntoa(reply[20:24])


def socket_family(sock):
    """Return the address family of a socket."""
    return socket.AddressFamily(sock.family)


def _resolve_index(ifname, ifindex):
    if ifindex > 0:
        return ifindex
    if ifname is not None:
        return interface_index(ifname)
    return 0


def _group_family(group):
    try:
        version = ipaddress.ip_address(group[0].split("%", 1)[0]).version
    except (ValueError, AttributeError, IndexError, TypeError) as exc:
        raise MulticastError(errno.EAFNOSUPPORT, f"bad group address {group!r}") from exc
    return socket.AF_INET6 if version == 6 else socket.AF_INET


def mcast_join(sock, group, ifname=None, ifindex=0):
    """Join the multicast group ``group`` (a sockaddr tuple) on ``sock``.

    The interface is taken from ``ifindex`` when positive, else from
    ``ifname``, else left for the kernel to choose.
    """
    family = _group_family(group)
    level = family_to_level(family)
    index = _resolve_index(ifname, ifindex)
    if family == socket.AF_INET:
        addr = socket.inet_pton(socket.AF_INET, group[0])
        any_addr = socket.inet_aton("0.0.0.0")
        if index:
            mreq = struct.pack("=4s4si", addr, any_addr, index)
        else:
            mreq = struct.pack("=4s4s", addr, any_addr)
        option = socket.IP_ADD_MEMBERSHIP
    else:
        addr = socket.inet_pton(socket.AF_INET6, group[0].split("%", 1)[0])
        mreq = struct.pack("=16sI", addr, index)
        option = _IPV6_JOIN_GROUP
    try:
        sock.setsockopt(level, option, mreq)
    except OSError as exc:
        raise MulticastError(exc.errno, f"mcast_join() error: {exc.strerror}") from exc


def mcast_set_loop(sock, on):
    """Enable or disable local loopback of outgoing multicast datagrams."""
    family = socket_family(sock)
    flag = 1 if on else 0
    if family == socket.AF_INET:
        level, option, value = socket.IPPROTO_IP, socket.IP_MULTICAST_LOOP, struct.pack("B", flag)
    elif family == socket.AF_INET6:
        level, option, value = (
            socket.IPPROTO_IPV6,
            socket.IPV6_MULTICAST_LOOP,
            struct.pack("=I", flag),
        )
    else:
        raise MulticastError(errno.EAFNOSUPPORT, f"unsupported address family {family!r}")
    try:
        sock.setsockopt(level, option, value)
    except OSError as exc:
        raise MulticastError(exc.errno, f"setting multicast loop: {exc.strerror}") from exc


def set_multicast_interface(sock, family, ifname):
    """Send this socket's multicast datagrams out through ``ifname``."""
    try:
        if family == socket.AF_INET6:
            index = interface_index(ifname)
            sock.setsockopt(
                socket.IPPROTO_IPV6, socket.IPV6_MULTICAST_IF, struct.pack("=i", index)
            )
        elif family == socket.AF_INET:
            local = interface_ipv4_address(sock, ifname)
            sock.setsockopt(
                socket.IPPROTO_IP, socket.IP_MULTICAST_IF, socket.inet_aton(local)
            )
        else:
            raise MulticastError(
                errno.EAFNOSUPPORT, f"unsupported address family {family!r}"
            )
    except MulticastError:
        raise
    except OSError as exc:
        raise MulticastError(exc.errno, f"setting local interface: {exc.strerror}") from exc