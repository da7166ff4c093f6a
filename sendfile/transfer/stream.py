"""
Stream I/O

Reliable whole-buffer send/receive over an asyncio stream pair, plus the
connection setup helpers the sender needs.

A single read on a TCP stream may return fewer bytes than asked for, and a
frame may arrive split across any number of segments. recv_all() and
send_all() loop until the whole buffer has moved or the connection fails;
they never report success after a partial transfer.

Both take an optional deadline (seconds) applied to every underlying read or
drain. None blocks for as long as the peer stays silent.
"""

import asyncio
import logging
import socket
from typing import Optional

from ..errors import (
    ConnectionClosed, SendFailed, RecvFailed,
    HostResolutionError, ConnectError
)

logger = logging.getLogger(__name__)

# Upper bound for a single read or write call
DEFAULT_CHUNK_SIZE = 64 * 1024


async def send_all(writer: asyncio.StreamWriter, data: bytes,
                   chunk_size: int = DEFAULT_CHUNK_SIZE,
                   timeout: Optional[float] = None):
    """
    Send every byte of data.

    Raises:
        ConnectionClosed: the peer went away before all bytes were sent
        SendFailed: any other send error, or the deadline expired
    """
    view = memoryview(data)
    sent = 0

    while sent < len(view):
        if writer.is_closing():
            raise ConnectionClosed(f"after {sent} of {len(view)} bytes sent")

        piece = view[sent:sent + chunk_size]
        try:
            writer.write(bytes(piece))
            await asyncio.wait_for(writer.drain(), timeout)
        except asyncio.TimeoutError:
            raise SendFailed(f"timed out after {sent} of {len(view)} bytes")
        except (ConnectionResetError, BrokenPipeError) as e:
            raise ConnectionClosed(f"after {sent} of {len(view)} bytes sent") from e
        except OSError as e:
            raise SendFailed(str(e)) from e

        sent += len(piece)


async def recv_all(reader: asyncio.StreamReader, n: int,
                   timeout: Optional[float] = None,
                   chunk_size: int = DEFAULT_CHUNK_SIZE) -> bytes:
    """
    Receive exactly n bytes.

    Raises:
        ConnectionClosed: EOF before n bytes arrived
        RecvFailed: any other receive error, or the deadline expired
    """
    buf = bytearray()

    while len(buf) < n:
        try:
            packet = await asyncio.wait_for(
                reader.read(min(chunk_size, n - len(buf))),
                timeout
            )
        except asyncio.TimeoutError:
            raise RecvFailed(f"timed out after {len(buf)} of {n} bytes")
        except ConnectionResetError as e:
            raise ConnectionClosed(f"after {len(buf)} of {n} bytes received") from e
        except OSError as e:
            raise RecvFailed(str(e)) from e

        if not packet:
            raise ConnectionClosed(f"after {len(buf)} of {n} bytes received")
        buf += packet

    return bytes(buf)


# === Connection setup ===

async def resolve_host(host: str, port: int) -> str:
    """
    Map a host name to an IPv4 address.

    Raises:
        HostResolutionError: the name could not be resolved
    """
    loop = asyncio.get_running_loop()
    try:
        infos = await loop.getaddrinfo(
            host, port,
            family=socket.AF_INET,
            type=socket.SOCK_STREAM
        )
    except (socket.gaierror, UnicodeError) as e:
        raise HostResolutionError(host) from e

    if not infos:
        raise HostResolutionError(host)

    address = infos[0][4][0]
    logger.debug(f"Resolved {host} -> {address}")
    return address


async def open_stream(address: str, port: int,
                      timeout: Optional[float] = None):
    """
    Open a TCP connection.

    Returns:
        (reader, writer) stream pair

    Raises:
        ConnectError: connection refused, unreachable, or timed out
    """
    try:
        return await asyncio.wait_for(
            asyncio.open_connection(address, port),
            timeout=timeout
        )
    except asyncio.TimeoutError:
        raise ConnectError(f"{address}:{port} timed out")
    except OSError as e:
        raise ConnectError(f"{address}:{port}: {e.strerror or e}") from e


async def close_stream(writer: asyncio.StreamWriter):
    """Close a connection and wait for the transport to shut down."""
    writer.close()
    try:
        await writer.wait_closed()
    except OSError as e:
        # Peer already reset the connection; nothing left to flush
        logger.debug(f"Error while closing connection: {e}")
