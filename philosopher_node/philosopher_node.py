#!/usr/bin/env python3
"""
Philosopher Node — TCP server hosting one philosopher.

Incoming messages and timer expiries go through one inbox queue, drained by
a single worker thread, so the philosopher never handles two events at once.

Handles these request types:
  MESSAGE    → queue a core message (Fork, ForkRequest, WireNeighbors, Start)
  GET_TRACE  → returns the philosopher's trace
  GET_STATE  → returns the philosopher snapshot and any fatal failure
  HALT       → stop processing events; the trace stays readable
  PING
"""
import os
import queue
import socket
import threading
import logging
from typing import Optional, Tuple

from core.delays import RandomDelays
from core.errors import ProtocolViolation
from core.messages import Init
from core.philosopher import Philosopher
from shared.models import encode_msg, decode_msg, message_from_request, trace_to_dicts
from shared.transport import TcpTransport, read_request

logging.basicConfig(level=logging.INFO, format='%(asctime)s [%(name)s] %(message)s')

_TIMER = object()
_STOP = object()


class PhilosopherNode:
    def __init__(self, philosopher_id: int, n: int, coordinator: Tuple[str, int],
                 delays, host: str = '127.0.0.1', port: int = 0,
                 advertise_host: Optional[str] = None):
        self.init = Init(philosopher_id, n)
        self.coordinator = coordinator
        self.delays = delays
        self.host = host
        self.port = port
        self.advertise_host = advertise_host or host

        self.inbox: queue.Queue = queue.Queue()
        self.transport = TcpTransport(on_timer=lambda: self.inbox.put(_TIMER))
        self.philosopher: Optional[Philosopher] = None
        self.lock = threading.Lock()
        self.halted = threading.Event()
        self.failure: Optional[str] = None

        self.server: Optional[socket.socket] = None
        self.threads = []
        self.logger = logging.getLogger(f"Node-{philosopher_id}")

    @property
    def address(self) -> Tuple[str, int]:
        return (self.advertise_host, self.port)

    # ── Lifecycle ────────────────────────────────────────────────────────────

    def start(self) -> 'PhilosopherNode':
        """Bind, start serving and working, then register via Init."""
        self.server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self.server.bind((self.host, self.port))
        self.server.listen(50)
        self.port = self.server.getsockname()[1]
        self.philosopher = Philosopher(self.address, self.coordinator,
                                       self.transport, self.delays)
        self.logger.info(f"Listening on {self.host}:{self.port}")

        for target in (self._serve_forever, self._work):
            t = threading.Thread(target=target, daemon=True)
            t.start()
            self.threads.append(t)
        self.inbox.put(self.init)
        return self

    def halt(self):
        """Stop handling events. External shutdown: nothing else is scheduled."""
        self.halted.set()
        self.transport.cancel_timers()

    def stop(self):
        self.halt()
        self.inbox.put(_STOP)
        if self.server is not None:
            self.server.close()

    def serve(self):
        """Run until the worker dies (fatal violation) or the process is killed."""
        self.start()
        self.threads[1].join()

    # ── Worker ───────────────────────────────────────────────────────────────

    def _work(self):
        while True:
            item = self.inbox.get()
            if item is _STOP:
                break
            if self.halted.is_set():
                continue
            with self.lock:
                try:
                    if item is _TIMER:
                        self.philosopher.on_timer()
                    else:
                        self.philosopher.handle(item)
                except ProtocolViolation as e:
                    self.logger.critical(f"Protocol violation, stopping: {e}")
                    self.failure = str(e)
                    self.halt()
                    break
                except OSError as e:
                    self.logger.critical(f"Transport failure, stopping: {e}")
                    self.failure = str(e)
                    self.halt()
                    break

    # ── Request handlers ─────────────────────────────────────────────────────

    def handle_message(self, msg: dict) -> dict:
        if not self.halted.is_set():
            self.inbox.put(message_from_request(msg))
        return {'ok': True}

    def handle_get_trace(self) -> dict:
        with self.lock:
            return {'ok': True, 'trace': trace_to_dicts(self.philosopher.trace)}

    def handle_get_state(self) -> dict:
        with self.lock:
            return {'ok': True, 'state': self.philosopher.snapshot(),
                    'failure': self.failure, 'halted': self.halted.is_set()}

    def handle_halt(self) -> dict:
        self.halt()
        return {'ok': True}

    # ── TCP dispatch ─────────────────────────────────────────────────────────

    def dispatch(self, msg: dict) -> dict:
        req_type = msg.get('type')
        try:
            if req_type == 'MESSAGE':
                return self.handle_message(msg)
            elif req_type == 'GET_TRACE':
                return self.handle_get_trace()
            elif req_type == 'GET_STATE':
                return self.handle_get_state()
            elif req_type == 'HALT':
                return self.handle_halt()
            elif req_type == 'PING':
                return {'ok': True}
            else:
                return {'ok': False, 'error': f'Unknown request type: {req_type}'}
        except Exception as e:
            self.logger.error(f"Error handling {req_type}: {e}")
            return {'ok': False, 'error': str(e)}

    # ── Server loop ───────────────────────────────────────────────────────────

    def _serve_forever(self):
        while True:
            try:
                conn, addr = self.server.accept()
            except OSError:
                break   # socket closed by stop()
            threading.Thread(
                target=self._handle_connection,
                args=(conn,),
                daemon=True
            ).start()

    def _handle_connection(self, conn: socket.socket):
        try:
            data = read_request(conn)
            if data:
                msg = decode_msg(data)
                response = self.dispatch(msg)
                conn.sendall(encode_msg(response))
        except Exception as e:
            self.logger.error(f"Connection error: {e}")
        finally:
            conn.close()


if __name__ == '__main__':
    philosopher_id = int(os.environ.get('PHILOSOPHER_ID', 0))
    n = int(os.environ.get('N_PHILOSOPHERS', 5))
    port = int(os.environ.get('PORT', 7000 + philosopher_id))
    coordinator = (os.environ.get('COORD_HOST', '127.0.0.1'),
                   int(os.environ.get('COORD_PORT', 6000)))
    think_ms = int(os.environ.get('THINK_MS', 2000))
    eat_ms = int(os.environ.get('EAT_MS', 2000))
    seed = int(os.environ.get('SEED', philosopher_id))

    node = PhilosopherNode(
        philosopher_id, n, coordinator,
        RandomDelays(seed, think=(100, think_ms), eat=(1, eat_ms)),
        host=os.environ.get('HOST', '0.0.0.0'), port=port,
        advertise_host=os.environ.get('ADVERTISE_HOST', '127.0.0.1'),
    )
    node.serve()
