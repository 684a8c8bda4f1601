"""Allocation of public ports to proxies, with per-name reservations."""

import os
import random
import socket
import threading
import time
from dataclasses import dataclass, field

MIN_PORT = 1
MAX_PORT = 65535
MAX_PORT_RESERVED_DURATION = 24 * 60 * 60.0
CLEAN_RESERVED_PORTS_INTERVAL = 60 * 60.0
MAX_TRY_TIMES = 5


class PortError(Exception):
    """Base class for port allocation errors."""

    message = "port error"

    def __init__(self, message=None):
        super().__init__(message or self.message)


class PortAlreadyUsed(PortError):
    message = "port already used"


class PortNotAllowed(PortError):
    message = "port not allowed"


class PortUnavailable(PortError):
    message = "port unavailable"


class NoAvailablePort(PortError):
    message = "no available port"


@dataclass
class PortCtx:
    """Allocation record for one proxy's port."""

    proxy_name: str
    port: int = 0
    closed: bool = False
    update_time: float = field(default_factory=time.monotonic)


class PortManager:
    """Hands out ports from an allowed set and remembers the last port of each proxy."""

    def __init__(self, net_type, bind_addr, allow_ports=None):
        self.net_type = net_type
        self.bind_addr = bind_addr
        self.reserved_ports: dict[str, PortCtx] = {}
        self.used_ports: dict[int, PortCtx] = {}
        allowed = set(allow_ports or ())
        self.free_ports: set[int] = allowed or set(range(MIN_PORT, MAX_PORT + 1))
        self._lock = threading.Lock()

    def acquire(self, name, port):
        """Allocate ``port`` (or any free port when 0) to proxy ``name``."""
        ctx = PortCtx(proxy_name=name)
        with self._lock:
            real_port = self._acquire_locked(name, port, ctx)
            ctx.port = real_port
            return real_port

    def _take(self, port, name, ctx):
        self.used_ports[port] = ctx
        self.reserved_ports[name] = ctx
        self.free_ports.discard(port)
        return port

    def _acquire_locked(self, name, port, ctx):
        if port == 0:
            reserved = self.reserved_ports.get(name)
            if reserved is not None and self.is_port_available(reserved.port):
                return self._take(reserved.port, name, ctx)

            tries = min(MAX_TRY_TIMES, len(self.free_ports))
            for candidate in random.sample(list(self.free_ports), tries):
                if self.is_port_available(candidate):
                    return self._take(candidate, name, ctx)
            raise NoAvailablePort()

        if port in self.free_ports:
            if self.is_port_available(port):
                return self._take(port, name, ctx)
            raise PortUnavailable()
        if port in self.used_ports:
            raise PortAlreadyUsed()
        raise PortNotAllowed()

    def is_port_available(self, port):
        """Return whether ``port`` can currently be bound on the bind address."""
        kind = socket.SOCK_DGRAM if self.net_type == "udp" else socket.SOCK_STREAM
        try:
            infos = socket.getaddrinfo(
                self.bind_addr or None, port, type=kind, flags=socket.AI_PASSIVE
            )
        except (OSError, UnicodeError):
            return False
        if not infos:
            return False
        family, socktype, proto, _, sockaddr = infos[0]
        try:
            with socket.socket(family, socktype, proto) as sock:
                if kind == socket.SOCK_STREAM:
                    if os.name != "nt":
                        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
                    sock.bind(sockaddr)
                    sock.listen()
                else:
                    sock.bind(sockaddr)
        except OSError:
            return False
        return True

    def release(self, port):
        """Return ``port`` to the free set, keeping its reservation."""
        with self._lock:
            ctx = self.used_ports.pop(port, None)
            if ctx is not None:
                self.free_ports.add(port)
                ctx.closed = True
                ctx.update_time = time.monotonic()

    def clean_reserved_ports(self, now=None):
        """Drop reservations of closed ports unused for longer than the reservation period."""
        if now is None:
            now = time.monotonic()
        with self._lock:
            expired = [
                name
                for name, ctx in self.reserved_ports.items()
                if ctx.closed and now - ctx.update_time > MAX_PORT_RESERVED_DURATION
            ]
            for name in expired:
                del self.reserved_ports[name]

    def run_cleaner(self, stop_event):
        """Clean reservations periodically until ``stop_event`` is set."""
        while not stop_event.wait(CLEAN_RESERVED_PORTS_INTERVAL):
            self.clean_reserved_ports()