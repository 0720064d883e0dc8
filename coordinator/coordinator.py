#!/usr/bin/env python3
"""
Bootstrap Coordinator — TCP front end for the table.

For one dinner:
  1. Collect a Register from every philosopher node
  2. Send each node the addresses of its two neighbours, collect WireAcks
  3. Broadcast Start

After Start the coordinator is idle: forks and fork requests travel
directly between neighbouring nodes.
"""
import os
import socket
import threading
import logging
from typing import Optional, Tuple

from core.errors import ProtocolViolation
from core.table import Table
from shared.models import encode_msg, decode_msg, message_from_request
from shared.transport import TcpTransport, read_request

logging.basicConfig(level=logging.INFO, format='%(asctime)s [%(name)s] %(message)s')


class Coordinator:
    """
    Networked bootstrap coordinator for ``n`` philosophers.

    Messages are applied to the table under a lock, one at a time.
    """

    def __init__(self, n: int, host: str = '127.0.0.1', port: int = 0,
                 advertise_host: Optional[str] = None):
        self.n = n
        self.host = host
        self.port = port
        self.advertise_host = advertise_host or host
        self.transport = TcpTransport()
        self.lock = threading.Lock()
        self.failure: Optional[str] = None
        self.server: Optional[socket.socket] = None
        self.logger = logging.getLogger('Coordinator')
        # reject n < 2 before any node is spawned
        self.table = Table(n, self.address, self.transport)

    @property
    def address(self) -> Tuple[str, int]:
        return (self.advertise_host, self.port)

    # ── Request handlers ─────────────────────────────────────────────────────

    def handle_message(self, msg: dict) -> dict:
        message = message_from_request(msg)
        with self.lock:
            try:
                self.table.handle(message)
            except ProtocolViolation as e:
                self.logger.critical(f"Handshake violation: {e}")
                self.failure = str(e)
                raise
        return {'ok': True}

    def handle_get_status(self) -> dict:
        with self.lock:
            return {
                'ok': True,
                'phase': self.table.phase.name,
                'registered': self.table.registered,
                'acknowledged': len(self.table.acks),
                'n': self.n,
                'failure': self.failure,
            }

    # ── TCP server ────────────────────────────────────────────────────────────

    def dispatch(self, msg: dict) -> dict:
        req_type = msg.get('type')
        try:
            if req_type == 'MESSAGE':
                return self.handle_message(msg)
            elif req_type in ('GET_STATUS', 'GET_STATE'):
                return self.handle_get_status()
            elif req_type == 'PING':
                return {'ok': True}
            else:
                return {'ok': False, 'error': f'Unknown type: {req_type}'}
        except Exception as e:
            self.logger.error(f"Error handling {req_type}: {e}")
            return {'ok': False, 'error': str(e)}

    def start(self) -> 'Coordinator':
        self.server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self.server.bind((self.host, self.port))
        self.server.listen(100)
        self.port = self.server.getsockname()[1]
        self.table.address = self.address
        self.logger.info(f"Coordinator for {self.n} philosophers listening on {self.host}:{self.port}")
        threading.Thread(target=self._serve_forever, daemon=True).start()
        return self

    def serve(self):
        self.start()
        threading.Event().wait()

    def stop(self):
        if self.server is not None:
            self.server.close()

    def _serve_forever(self):
        while True:
            try:
                conn, addr = self.server.accept()
            except OSError:
                break
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
    n = int(os.environ.get('N_PHILOSOPHERS', 5))
    port = int(os.environ.get('PORT', 6000))

    coord = Coordinator(n, host=os.environ.get('HOST', '0.0.0.0'), port=port,
                        advertise_host=os.environ.get('ADVERTISE_HOST', '127.0.0.1'))
    coord.serve()
