r"""
File Receiver

Design Decision: Concurrency Model
==================================

Options Considered:
1. Serve one connection at a time
   - Simple, but one slow client stalls everyone

2. Worker pool with a fixed size
   - Bounded resources
   - Extra queueing logic, and a full pool still stalls new clients

3. One task per accepted connection
   - Every transfer independent, no shared state beyond the console
   - Unbounded; a flood of clients means a flood of tasks

Decision: One asyncio task per connection.
- The accept loop only accepts and spawns; it never touches the file store
- Each handler owns its connection and its destination file
- The console reporter is the only shared resource

Handler states:
```
AWAITING_HEADER -> AWAITING_BODY -> WRITING_FILE -> DONE
       \                 \                \
        +-----------------+----------------+--> FAILED
```
"""

import os
import socket
import asyncio
import logging
from contextlib import suppress
from dataclasses import dataclass, asdict
from enum import Enum
from pathlib import Path
from typing import Optional, Set, Tuple

import aiofiles

from ..config import Config
from ..console import ConsoleReporter, reporter as default_reporter
from ..errors import (
    SendfileError, FileWriteError, UnsafeFileName,
    SocketOpenError, BindError, ListenError, AcceptError, HandlerSpawnError
)
from .protocol import HEADER_SIZE, decode_header, check_length, split_body
from .stream import recv_all, close_stream

logger = logging.getLogger(__name__)


class HandlerState(Enum):
    """Connection handler states."""
    AWAITING_HEADER = "AWAITING_HEADER"
    AWAITING_BODY = "AWAITING_BODY"
    WRITING_FILE = "WRITING_FILE"
    DONE = "DONE"
    FAILED = "FAILED"


@dataclass
class ServerStats:
    """Counters across all handlers of one server."""
    transfers_completed: int = 0
    transfers_failed: int = 0
    bytes_received: int = 0
    active_handlers: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


def resolve_destination(output_dir: Path, raw_name: bytes) -> Path:
    """
    Map a received name to a path inside output_dir.

    Only bare file names are accepted. Anything that could land outside
    output_dir is refused.

    Raises:
        UnsafeFileName: empty, '.', '..', absolute, or containing a separator
    """
    name = os.fsdecode(raw_name)

    if name in ('', '.', '..'):
        raise UnsafeFileName(repr(name))
    if '/' in name or '\\' in name or '\x00' in name or os.path.isabs(name):
        raise UnsafeFileName(repr(name))

    return Path(output_dir) / name


def display_name(raw_name: bytes) -> str:
    """Printable form of a received name; undecodable bytes become \\xNN escapes."""
    return raw_name.decode('utf-8', 'backslashreplace')


class ConnectionHandler:
    """
    Receives one frame from one connection and writes it to disk.

    Owns its stream pair and its destination file for its whole lifetime.
    Errors end this handler only; they are reported once and never
    propagate to the listener.
    """

    def __init__(self, reader: asyncio.StreamReader,
                 writer: asyncio.StreamWriter,
                 config: Config,
                 reporter: ConsoleReporter,
                 peer: Optional[Tuple[str, int]] = None):
        self.reader = reader
        self.writer = writer
        self.config = config
        self.reporter = reporter
        self.peer = peer

        self.state = HandlerState.AWAITING_HEADER
        self.name: Optional[str] = None
        self.path: Optional[Path] = None
        self.bytes_written = 0

    @property
    def peer_label(self) -> str:
        if not self.peer:
            return 'unknown peer'
        return f"{self.peer[0]}:{self.peer[1]}"

    async def run(self) -> HandlerState:
        """Drive the handler to DONE or FAILED, then close the connection."""
        try:
            await self._receive()
        except SendfileError as e:
            self.state = HandlerState.FAILED
            self.reporter.error(f"{self.peer_label}: {e}")
        except Exception as e:
            self.state = HandlerState.FAILED
            logger.exception(f"Unexpected error handling {self.peer_label}")
            self.reporter.error(f"{self.peer_label}: {e}")
        finally:
            await close_stream(self.writer)
            logger.debug(f"Connection closed: {self.peer_label}")

        return self.state

    async def _receive(self):
        timeout = self.config.io_timeout

        self.state = HandlerState.AWAITING_HEADER
        header = await recv_all(self.reader, HEADER_SIZE, timeout)
        total_length = check_length(decode_header(header),
                                    self.config.max_frame_size)

        self.state = HandlerState.AWAITING_BODY
        body = await recv_all(self.reader, total_length, timeout,
                              self.config.chunk_size)
        raw_name, payload = split_body(body)

        self.state = HandlerState.WRITING_FILE
        self.name = display_name(raw_name)
        self.path = resolve_destination(self.config.output_dir, raw_name)

        self.reporter.info(f"writing file: {self.name}")
        await self._write_file(self.path, payload)
        self.bytes_written = len(payload)

        self.reporter.info(f"received {self.name} ({self.bytes_written} bytes)")
        self.state = HandlerState.DONE

    async def _write_file(self, path: Path, payload: bytes):
        """Truncate-create path and write payload in full."""
        opened = False
        try:
            async with aiofiles.open(path, 'wb') as f:
                opened = True
                await f.write(payload)
        except OSError as e:
            if opened:
                # Don't leave a truncated file behind
                with suppress(OSError):
                    path.unlink()
            raise FileWriteError(
                f"{display_name(os.fsencode(path))}: {e.strerror or e}"
            ) from e


class FileServer:
    """
    TCP server that accepts file transfers.

    One frame per connection, one handler task per connection, no cap on
    the number of concurrent handlers.
    """

    def __init__(self, config: Optional[Config] = None,
                 reporter: Optional[ConsoleReporter] = None):
        self.config = config or Config()
        self.reporter = reporter or default_reporter
        self.port: Optional[int] = None
        self.stats = ServerStats()

        self._sock: Optional[socket.socket] = None
        self._accept_task: Optional[asyncio.Task] = None
        self._handlers: Set[asyncio.Task] = set()

    async def start(self) -> int:
        """
        Bind and listen, then report the bound port.

        Returns:
            The port actually bound (the OS picks one when config.port is 0)
        """
        output_dir = Path(self.config.output_dir)
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FileWriteError(f"{output_dir}: {e.strerror or e}") from e

        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        except OSError as e:
            raise SocketOpenError(str(e)) from e

        try:
            try:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            except OSError as e:
                raise SocketOpenError(f"setsockopt failed: {e}") from e

            try:
                sock.bind((self.config.host, self.config.port))
            except OSError as e:
                raise BindError(
                    f"{self.config.host}:{self.config.port}: {e.strerror or e}"
                ) from e

            try:
                sock.listen(self.config.backlog)
            except OSError as e:
                raise ListenError(str(e)) from e

            sock.setblocking(False)
        except SendfileError:
            sock.close()
            raise

        self._sock = sock
        self.port = sock.getsockname()[1]
        logger.info(f"File server listening on {self.config.host}:{self.port}")
        self.reporter.info(f"Port: {self.port}")

        return self.port

    async def serve_forever(self):
        """
        Accept connections until cancelled.

        Raises:
            AcceptError: accept() failed; the server cannot continue
            HandlerSpawnError: a handler task could not be created
        """
        if self._sock is None:
            await self.start()

        loop = asyncio.get_running_loop()
        self._accept_task = asyncio.current_task()

        while True:
            try:
                conn, addr = await loop.sock_accept(self._sock)
            except OSError as e:
                raise AcceptError(str(e)) from e

            logger.debug(f"New connection from {addr}")
            self._spawn(conn, addr)

    async def run(self):
        """
        Serve until cancelled, then stop.

        A normal shutdown lets in-flight transfers finish. A fatal
        accept-loop error ends the process, so in-flight handlers are
        cancelled instead of awaited before the error is re-raised.
        """
        drain = True
        try:
            await self.serve_forever()
        except SendfileError as e:
            logger.error(f"File server failed: {e}")
            drain = False
            raise
        finally:
            await self.stop(drain=drain)

    async def stop(self, drain: bool = True):
        """
        Stop accepting connections.

        Args:
            drain: wait for in-flight transfers to finish; when False they
                are cancelled
        """
        task = self._accept_task
        if task and not task.done() and task is not asyncio.current_task():
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
        self._accept_task = None

        if self._sock is not None:
            self._sock.close()
            self._sock = None

        if self._handlers:
            if not drain:
                logger.warning(f"Cancelling {len(self._handlers)} in-flight transfers")
                for handler_task in self._handlers:
                    handler_task.cancel()
            await asyncio.gather(*self._handlers, return_exceptions=True)

        logger.info(f"File server stopped. Received {self.stats.transfers_completed} "
                    f"files, {self.stats.bytes_received:,} bytes")

    def _spawn(self, conn: socket.socket, addr: Tuple[str, int]):
        try:
            task = asyncio.create_task(self._handle_connection(conn, addr))
        except RuntimeError as e:
            conn.close()
            raise HandlerSpawnError(str(e)) from e

        self._handlers.add(task)
        task.add_done_callback(self._handlers.discard)

    async def _handle_connection(self, conn: socket.socket,
                                 addr: Tuple[str, int]):
        """Run one handler for an accepted socket and record the outcome."""
        try:
            reader, writer = await asyncio.open_connection(sock=conn)
        except OSError as e:
            conn.close()
            self.stats.transfers_failed += 1
            self.reporter.error(f"{addr[0]}:{addr[1]}: {e}")
            return

        handler = ConnectionHandler(reader, writer, self.config,
                                    self.reporter, peer=addr)

        self.stats.active_handlers += 1
        try:
            state = await handler.run()
        finally:
            self.stats.active_handlers -= 1

        if state is HandlerState.DONE:
            self.stats.transfers_completed += 1
            self.stats.bytes_received += handler.bytes_written
        else:
            self.stats.transfers_failed += 1

    def get_stats(self) -> dict:
        """Get server statistics."""
        stats = self.stats.to_dict()
        stats['port'] = self.port
        return stats
