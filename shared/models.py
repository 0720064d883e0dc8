"""
Wire models for the networked dinner (philosopher nodes and coordinator).
"""
import json
from typing import List

from core.messages import Message, parse_message, to_dict
from core.trace import TraceEvent


# ─── TCP message protocol ────────────────────────────────────────────────────
# All messages are newline-delimited JSON objects, one request per connection.
#
# Request types:
#   MESSAGE      → deliver a core message ({"message": {"type": ...}})
#   GET_TRACE    → returns the node's trace events
#   GET_STATE    → returns the philosopher snapshot (node) / phase (coordinator)
#   GET_STATUS   → coordinator handshake progress
#   HALT         → stop processing events (trace stays readable)
#   PING
#
# Response:
#   { "ok": true/false, ... , "error": str }

def encode_msg(msg: dict) -> bytes:
    return (json.dumps(msg) + '\n').encode('utf-8')

def decode_msg(data: bytes) -> dict:
    return json.loads(data.decode('utf-8').strip())


def message_request(message: Message) -> dict:
    return {'type': 'MESSAGE', 'message': to_dict(message)}

def message_from_request(msg: dict) -> Message:
    return parse_message(msg['message'])


def trace_to_dicts(trace: List[TraceEvent]) -> List[dict]:
    return [event.to_dict() for event in trace]

def trace_from_dicts(entries: List[dict]) -> List[TraceEvent]:
    return [TraceEvent.from_dict(entry) for entry in entries]
