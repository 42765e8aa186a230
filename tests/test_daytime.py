import io
import socket
import struct
import threading

import pytest

from mcastchat.daytime import (
    ProbeResult,
    main,
    pack_timeval,
    probe,
    round_trip,
    unpack_timeval,
)


@pytest.fixture
def echo_server():
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(("127.0.0.1", 0))
    sock.settimeout(0.05)
    stop = threading.Event()

    def serve():
        while not stop.is_set():
            try:
                data, peer = sock.recvfrom(64)
            except (TimeoutError, OSError):
                continue
            sock.sendto(data, peer)

    thread = threading.Thread(target=serve, daemon=True)
    thread.start()
    yield sock.getsockname()[1]
    stop.set()
    thread.join()
    sock.close()


@pytest.fixture
def silent_port():
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(("127.0.0.1", 0))
    yield sock.getsockname()[1]
    sock.close()


def test_pack_timeval_wire_layout():
    assert pack_timeval(1.5) == struct.pack("=qq", 1, 500000)


def test_pack_timeval_size():
    assert len(pack_timeval(1234.25)) == 16


@pytest.mark.parametrize("value", [0.0, 1.5, 1700000000.123456, 42.999999])
def test_timeval_round_trip(value):
    assert unpack_timeval(pack_timeval(value)) == pytest.approx(value, abs=1e-6)


def test_unpack_timeval_short_data_raises():
    with pytest.raises(ValueError):
        unpack_timeval(b"\x00" * 8)


def test_round_trip_difference():
    assert round_trip(10.0, 10.25) == pytest.approx(0.25)


def test_probe_result_ms():
    result = ProbeResult("127.0.0.1", 13, 16, 0.5)
    assert result.rtt_ms == pytest.approx(500.0)


def test_probe_against_echo_server(echo_server):
    out = io.StringIO()
    results = probe("127.0.0.1", echo_server, attempts=3, timeout=1.0, out=out)
    assert len(results) == 3
    for result in results:
        assert result.host == "127.0.0.1"
        assert result.port == echo_server
        assert result.nbytes == 16
        assert 0 <= result.rtt < 1.0
    text = out.getvalue()
    assert text.count("RTT:") == 3
    assert f"Received 16 bytes from 127.0.0.1:{echo_server}" in text


def test_probe_without_reply_retries(silent_port):
    out = io.StringIO()
    results = probe("127.0.0.1", silent_port, attempts=2, timeout=0.05, out=out)
    assert results == []
    assert out.getvalue().count("No response") == 2


def test_probe_stops_at_deadline(echo_server):
    out = io.StringIO()
    results = probe("127.0.0.1", echo_server, attempts=4, timeout=0.5, deadline=0, out=out)
    assert results == []
    assert "stopping" in out.getvalue()


def test_probe_rejects_bad_address():
    with pytest.raises(ValueError):
        probe("not-an-address", 13, out=io.StringIO())


def test_main_usage_error():
    assert main([]) == 1


def test_main_bad_address():
    assert main(["999.1.1.1"]) == 1