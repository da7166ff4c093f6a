"""
File Sender

Client side of a transfer: one file, one frame, one connection.

Send Flow:
1. Open the file (fails before any socket exists)
2. Measure it
3. Resolve the host to an IPv4 address
4. Connect
5. Send the frame prefix, then stream the payload
6. Close; no acknowledgement is read back
"""

import os
import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import aiofiles

from ..config import Config
from ..errors import FileOpenError, InvalidFileName
from .protocol import HEADER_SIZE, encode_prefix
from .stream import send_all, resolve_host, open_stream, close_stream

logger = logging.getLogger(__name__)


@dataclass
class SendResult:
    """Outcome of a completed transfer."""
    name: str
    payload_length: int
    total_length: int
    address: str
    port: int


async def send_file(path: Union[str, Path], host: str, port: int,
                    name: Optional[str] = None,
                    config: Optional[Config] = None) -> SendResult:
    """
    Send a single file to a listening server.

    Args:
        path: File to send
        host: Server host name or address
        port: Server port
        name: Name to store the file under (defaults to the basename)
        config: Chunk size and timeouts (uses defaults if not provided)

    Raises:
        FileOpenError, InvalidFileName, HostResolutionError, ConnectError,
        ConnectionClosed, SendFailed
    """
    config = config or Config()
    path = Path(path)
    wire_name = name if name is not None else path.name

    try:
        f = await aiofiles.open(path, 'rb')
    except OSError as e:
        raise FileOpenError(f"{path}: {e.strerror or e}") from e

    try:
        # Measure the file
        await f.seek(0, os.SEEK_END)
        file_size = await f.tell()
        await f.seek(0, os.SEEK_SET)

        try:
            prefix = encode_prefix(os.fsencode(wire_name), file_size)
        except ValueError as e:
            raise InvalidFileName(str(e)) from e

        address = await resolve_host(host, port)
        reader, writer = await open_stream(address, port, config.connect_timeout)
        logger.debug(f"Connected to {address}:{port}")

        try:
            await send_all(writer, prefix, config.chunk_size, config.io_timeout)

            remaining = file_size
            while remaining > 0:
                data = await f.read(min(config.chunk_size, remaining))
                if not data:
                    raise FileOpenError(
                        f"{path}: file shrank while sending "
                        f"({file_size - remaining} of {file_size} bytes read)"
                    )
                await send_all(writer, data, config.chunk_size, config.io_timeout)
                remaining -= len(data)
        finally:
            await close_stream(writer)
    finally:
        await f.close()

    logger.debug(f"Sent {wire_name} ({file_size:,} bytes) to {address}:{port}")

    return SendResult(
        name=wire_name,
        payload_length=file_size,
        total_length=len(prefix) - HEADER_SIZE + file_size,
        address=address,
        port=port,
    )


def send_file_sync(path: Union[str, Path], host: str, port: int,
                   name: Optional[str] = None,
                   config: Optional[Config] = None) -> SendResult:
    """Blocking wrapper around send_file() for callers without an event loop."""
    return asyncio.run(send_file(path, host, port, name=name, config=config))
