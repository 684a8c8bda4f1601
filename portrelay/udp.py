"""UDP packet wrapping and forwarding between sockets and queues.

A queue is treated as closed once ``None`` is read from it.
"""

import base64
import binascii
import queue
import socket
import threading
from contextlib import suppress
from dataclasses import dataclass
from typing import Optional

REPLY_TIMEOUT = 30.0


@dataclass
class UDPPacket:
    """A datagram carried over a work connection, content base64 encoded."""

    content: str
    local_addr: Optional[tuple] = None
    remote_addr: Optional[tuple] = None


def new_udp_packet(buf, laddr, raddr):
    """Wrap raw bytes into a packet."""
    return UDPPacket(
        content=base64.b64encode(bytes(buf)).decode("ascii"),
        local_addr=laddr,
        remote_addr=raddr,
    )


def get_content(packet):
    """Return the raw bytes of a packet; raise ValueError on bad encoding."""
    try:
        return base64.b64decode(packet.content, validate=True)
    except binascii.Error as exc:
        raise ValueError(f"invalid packet content: {exc}") from exc


def forward_user_conn(udp_sock, read_queue, send_queue, buf_size):
    """Relay datagrams from ``udp_sock`` into ``send_queue`` and replies from ``read_queue`` back.

    Blocks until reading from the socket fails.
    """

    def reply():
        for packet in iter(read_queue.get, None):
            try:
                buf = get_content(packet)
            except ValueError:
                continue
            with suppress(OSError):
                udp_sock.sendto(buf, packet.remote_addr)

    threading.Thread(target=reply, daemon=True).start()

    while True:
        try:
            data, remote_addr = udp_sock.recvfrom(buf_size)
        except OSError:
            return
        with suppress(queue.Full):
            send_queue.put_nowait(new_udp_packet(data, None, remote_addr))


def _dial_udp(dst_addr):
    host, port = dst_addr[0], dst_addr[1]
    family, socktype, proto, _, sockaddr = socket.getaddrinfo(
        host, port, type=socket.SOCK_DGRAM
    )[0]
    sock = socket.socket(family, socktype, proto)
    try:
        sock.connect(sockaddr)
    except OSError:
        sock.close()
        raise
    return sock


def _addr_key(addr):
    return tuple(addr[:2])


def forwarder(dst_addr, read_queue, send_queue, buf_size):
    """Send packets from ``read_queue`` to ``dst_addr``, one socket per remote address.

    Replies are wrapped and put on ``send_queue``. Returns the dispatching thread.
    """
    lock = threading.Lock()
    conns = {}

    def pump(raddr, sock):
        key = _addr_key(raddr)
        try:
            sock.settimeout(REPLY_TIMEOUT)
            while True:
                try:
                    data = sock.recv(buf_size)
                except OSError:
                    return
                with suppress(queue.Full):
                    send_queue.put_nowait(new_udp_packet(data, None, raddr))
        finally:
            with lock:
                conns.pop(key, None)
            sock.close()

    def dispatch():
        for packet in iter(read_queue.get, None):
            try:
                buf = get_content(packet)
            except ValueError:
                continue
            key = _addr_key(packet.remote_addr)
            with lock:
                sock = conns.get(key)
                fresh = sock is None
                if fresh:
                    try:
                        sock = _dial_udp(dst_addr)
                    except OSError:
                        continue
                    conns[key] = sock
            try:
                sock.send(buf)
            except OSError:
                sock.close()
            if fresh:
                threading.Thread(
                    target=pump, args=(packet.remote_addr, sock), daemon=True
                ).start()

    thread = threading.Thread(target=dispatch, daemon=True)
    thread.start()
    return thread