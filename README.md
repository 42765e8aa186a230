# mcastchat

A small set of command-line UDP tools for Linux:

- a chat over IPv4 or IPv6 multicast, bound to one network interface;
- a plain IPv4 multicast sender and receiver pair;
- a broadcast-capable probe that sends timestamps to the daytime port (13)
  and reports the round-trip time of each reply.

It needs only the Python standard library, Python 3.10 or newer.

## Installing

```
pip install .
```

To run the tests, install the `test` extra and run `pytest`:

```
pip install ".[test]"
pytest
```

## Multicast chat

```
mcastchat <IP-multicast-address> <port> <interface>
```

For example, `mcastchat 239.0.0.1 5000 eth0` or `mcastchat ff02::1:3 5000 eth0`.

The address may be IPv6 or IPv4 (IPv6 is tried first). The program binds a
receiving socket to the wildcard address on the given port, joins the group on
the named interface, and sends through that interface with multicast loopback
turned on. Then:

- each line you type is sent to the group as `<hostname>: <text>`;
- every datagram received from the group is printed as `💬 <text>`, followed
  by a fresh `> ` prompt.

When standard input ends, it announces itself to the group every five seconds
with `<hostname>, PID=<pid>` until interrupted. Setup failures are reported on
standard error and the command exits with status 1.

## Simple sender and receiver

```
mcastchat-sender <multicast-address> <port> <interface>
mcastchat-receiver <multicast-address> <port> <interface>
```

Both use IPv4 only. The interface's IPv4 address is used as the local
multicast interface; if it cannot be found, `192.168.56.101` is used instead.

The sender reads lines from standard input and sends each one as
`[<system>@<hostname>]: <text>`. The receiver joins the group and prints each
datagram it receives as `💬 <text>`.

## Daytime probe

```
mcastchat-daytime <IPv4-address>
```

This sends the current time, encoded as seconds and microseconds, to port 13
of the address, which may be a broadcast address, up to four times. Each
attempt waits up to three seconds for a reply (printing `No response,
retrying...` if none comes), and no new attempt starts once six seconds have
gone by. For every reply it prints the sender and the round-trip time in
milliseconds, computed from the timestamp carried in the reply; at the end it
reports the size and sender of the last reply.

Exit status is 0 on success, 1 for a usage error, an invalid address or a send
failure, 2 if the socket cannot be created, 3 if broadcast cannot be enabled,
and 4 if the receive timeout cannot be set.

## Using it from Python

- `mcastchat.net`: `parse_group_address`, `open_send_socket`,
  `family_to_level`, `interface_index`, `interface_ipv4_address`,
  `socket_family`, `mcast_join`, `mcast_set_loop` and
  `set_multicast_interface`; failures raise `MulticastError`, a subclass of
  `OSError`.
- `mcastchat.chat`: the message formatters `format_chat_message`,
  `format_presence` and `format_datagram_report`, the loops `recv_loop`,
  `send_loop`, `send_all` and `recv_all` (the last two take an optional
  `limit`), and `main`.
- `mcastchat.simple`: `format_sender_message`, `run_sender`, `run_receiver`,
  `sender_main` and `receiver_main`.
- `mcastchat.daytime`: `pack_timeval`, `unpack_timeval`, `round_trip` and
  `probe`, which returns a list of `ProbeResult` values (`host`, `port`,
  `nbytes`, `rtt`, and `rtt_ms`), and `main`.

## What it does not do

The chat keeps no history, has no user names beyond the host name, and
neither encrypts nor authenticates messages. The daytime probe only sends
requests; no server that answers them is included. Looking up an interface's
IPv4 address relies on a Linux-specific ioctl.