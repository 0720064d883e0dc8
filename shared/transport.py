"""
TCP transport used by philosopher nodes and the coordinator.

Every send is a synchronous request/acknowledge exchange: the receiving
server answers only after the message is queued, so two messages from one
sender to one receiver are always queued in send order.
"""
import socket
import threading
import time
import logging
from typing import Any, Callable, Tuple

from core.messages import Message
from shared.models import encode_msg, decode_msg, message_request

Address = Tuple[str, int]


def send_request(host: str, port: int, msg: dict, timeout: float = 5.0) -> dict:
    """Send one JSON request over TCP and return the response."""
    s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    s.settimeout(timeout)
    try:
        s.connect((host, port))
        s.sendall(encode_msg(msg))
        data = b''
        while True:
            chunk = s.recv(4096)
            if not chunk:
                break
            data += chunk
            if b'\n' in data:
                break
        return decode_msg(data)
    finally:
        s.close()


def read_request(conn: socket.socket) -> bytes:
    data = b''
    while True:
        chunk = conn.recv(4096)
        if not chunk:
            break
        data += chunk
        if b'\n' in data:
            break
    return data


class TcpTransport:
    """
    Transport interface (send / schedule / now) on top of TCP and threads.

    Args:
        on_timer: called from a timer thread when a scheduled delay expires;
                  the node turns it into an inbox event
        time_scale: seconds per delay unit (delays are milliseconds)
    """

    def __init__(self, on_timer: Callable[[], None] = None,
                 time_scale: float = 0.001, timeout: float = 5.0):
        self.on_timer = on_timer
        self.time_scale = time_scale
        self.timeout = timeout
        self.timers = []
        self.lock = threading.Lock()
        self.logger = logging.getLogger('TcpTransport')

    def now(self) -> float:
        return time.monotonic()

    def send(self, sender: Any, recipient: Address, message: Message) -> None:
        host, port = recipient
        resp = send_request(host, port, message_request(message), timeout=self.timeout)
        if not resp.get('ok'):
            raise ConnectionError(
                f"{recipient} refused {message.type}: {resp.get('error', 'unknown')}")

    def schedule(self, address: Any, delay: int) -> None:
        if self.on_timer is None:
            raise RuntimeError("This transport does not support timers")
        timer = threading.Timer(delay * self.time_scale, self.on_timer)
        timer.daemon = True
        with self.lock:
            self.timers = [t for t in self.timers if t.is_alive()]
            self.timers.append(timer)
        timer.start()

    def cancel_timers(self) -> None:
        with self.lock:
            for timer in self.timers:
                timer.cancel()
            self.timers = []
