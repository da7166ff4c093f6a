"""
Transfer Module - Framing, Stream I/O, Sender and Receiver

Handles single-file TCP transfers between a client and a server.
"""

from .protocol import Frame, encode, encode_prefix, decode_header, split_body
from .stream import send_all, recv_all
from .sender import send_file, send_file_sync, SendResult
from .receiver import FileServer, ConnectionHandler, HandlerState, ServerStats

__all__ = [
    'Frame',
    'encode',
    'encode_prefix',
    'decode_header',
    'split_body',
    'send_all',
    'recv_all',
    'send_file',
    'send_file_sync',
    'SendResult',
    'FileServer',
    'ConnectionHandler',
    'HandlerState',
    'ServerStats',
]
