import socket
import threading
import time

import pytest

from portrelay.ports import (
    MAX_PORT_RESERVED_DURATION,
    NoAvailablePort,
    PortAlreadyUsed,
    PortError,
    PortManager,
    PortNotAllowed,
    PortUnavailable,
)


def free_port(kind=socket.SOCK_STREAM):
    with socket.socket(socket.AF_INET, kind) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def test_acquire_specific_port_records_context():
    port = free_port()
    mgr = PortManager("tcp", "127.0.0.1", {port})
    assert mgr.acquire("web", port) == port
    ctx = mgr.used_ports[port]
    assert ctx.port == port
    assert ctx.proxy_name == "web"
    assert port not in mgr.free_ports


def test_acquire_used_port_twice_fails():
    port = free_port()
    mgr = PortManager("tcp", "127.0.0.1", {port})
    mgr.acquire("web", port)
    with pytest.raises(PortAlreadyUsed):
        mgr.acquire("other", port)


def test_port_outside_allowed_set():
    allowed = free_port()
    mgr = PortManager("tcp", "127.0.0.1", {allowed})
    with pytest.raises(PortNotAllowed):
        mgr.acquire("web", allowed + 1 if allowed < 65535 else allowed - 1)


def test_release_then_reacquire():
    port = free_port()
    mgr = PortManager("tcp", "127.0.0.1", {port})
    mgr.acquire("web", port)
    mgr.release(port)
    assert port in mgr.free_ports
    assert mgr.reserved_ports["web"].closed is True
    assert mgr.acquire("other", port) == port


def test_random_port_comes_from_allowed_set():
    ports = {free_port(), free_port()}
    mgr = PortManager("tcp", "127.0.0.1", ports)
    got = mgr.acquire("web", 0)
    assert got in ports


def test_reserved_port_returned_to_same_name():
    ports = {free_port(), free_port(), free_port()}
    mgr = PortManager("tcp", "127.0.0.1", ports)
    first = mgr.acquire("web", 0)
    mgr.release(first)
    assert mgr.acquire("web", 0) == first


def test_busy_tcp_port_is_unavailable():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as holder:
        holder.bind(("127.0.0.1", 0))
        holder.listen()
        port = holder.getsockname()[1]
        mgr = PortManager("tcp", "127.0.0.1", {port})
        assert mgr.is_port_available(port) is False
        with pytest.raises(PortUnavailable):
            mgr.acquire("web", port)
        with pytest.raises(NoAvailablePort):
            mgr.acquire("web", 0)


def test_busy_udp_port_is_unavailable():
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as holder:
        holder.bind(("127.0.0.1", 0))
        port = holder.getsockname()[1]
        mgr = PortManager("udp", "127.0.0.1", {port})
        with pytest.raises(PortUnavailable):
            mgr.acquire("dns", port)
    assert mgr.acquire("dns", port) == port


def test_errors_share_base_class():
    assert issubclass(NoAvailablePort, PortError)
    assert str(PortNotAllowed()) == "port not allowed"


def test_clean_removes_only_expired_closed_reservations():
    port_a, port_b = free_port(), free_port()
    mgr = PortManager("tcp", "127.0.0.1", {port_a, port_b})
    mgr.acquire("closed", port_a)
    mgr.acquire("open", port_b)
    mgr.release(port_a)

    mgr.clean_reserved_ports(time.monotonic())
    assert set(mgr.reserved_ports) == {"closed", "open"}

    mgr.clean_reserved_ports(time.monotonic() + MAX_PORT_RESERVED_DURATION + 1)
    assert set(mgr.reserved_ports) == {"open"}


def test_run_cleaner_stops_when_event_set():
    mgr = PortManager("tcp", "127.0.0.1", {free_port()})
    stop = threading.Event()
    stop.set()
    worker = threading.Thread(target=mgr.run_cleaner, args=(stop,))
    worker.start()
    worker.join(timeout=2)
    assert worker.is_alive() is False