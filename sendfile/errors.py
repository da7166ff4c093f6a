"""
Error Taxonomy

Every failure the transfer core can report is a SendfileError subclass.
Low-level OSErrors are translated at the seam where they happen, so callers
only ever deal with this hierarchy.

Propagation:
- Client side: any error aborts the transfer and ends the process.
- Server side: a handler error ends only that connection; listener errors
  (bind/listen/accept) end the whole server.
"""


class SendfileError(Exception):
    """Base class for all transfer errors."""

    message = "transfer error"

    def __init__(self, detail: str = ''):
        self.detail = detail
        super().__init__(f"{self.message}: {detail}" if detail else self.message)


# === File store ===

class FileOpenError(SendfileError):
    message = "file opening error"


class InvalidFileName(SendfileError):
    """Name cannot be carried in a frame."""
    message = "invalid file name"


class FileWriteError(SendfileError):
    message = "file writing error"


class UnsafeFileName(FileWriteError):
    """Received name would escape the output directory."""
    message = "unsafe file name"


# === Client connection setup ===

class SocketOpenError(SendfileError):
    message = "error opening socket"


class HostResolutionError(SendfileError):
    message = "host not found"


class ConnectError(SendfileError):
    message = "connect error"


# === Stream I/O ===

class ConnectionClosed(SendfileError):
    """Peer closed the connection before a frame was complete."""
    message = "connection closed by peer"


class SendFailed(SendfileError):
    message = "send failed"


class RecvFailed(SendfileError):
    message = "recv error"


class MalformedFrame(SendfileError):
    message = "malformed frame"


class FrameTooLarge(MalformedFrame):
    message = "frame too large"


# === Listener ===

class BindError(SendfileError):
    message = "bind failed"


class ListenError(SendfileError):
    message = "listen failed"


class AcceptError(SendfileError):
    message = "accept error"


class HandlerSpawnError(SendfileError):
    """A connection handler task could not be started."""
    message = "handler creation error"
