"""Guest-side listener that accepts host-initiated vsock connections with retries."""

from __future__ import annotations

import errno
import socket
import time
from typing import Any, Optional

from .dial import DialConfig, is_temporary_net_err

_VMADDR_CID_ANY = 0xFFFFFFFF


class VsockListener:
    """Wraps a listening socket; ``accept`` retries temporary failures until ``retry_timeout``."""

    def __init__(self, sock: Any, port: int, config: Optional[DialConfig] = None) -> None:
        self._sock = sock
        self.port = port
        self.config = config or DialConfig()

    def accept(self) -> Any:
        """Return the next accepted connection.

        Raises TimeoutError after ``retry_timeout`` seconds of temporary
        failures, and ConnectionError on any other failure.
        """
        logger = self.config.logger
        deadline = time.monotonic() + self.config.retry_timeout
        attempt = 0
        last_error: Optional[BaseException] = None
        while True:
            time.sleep(self.config.retry_interval)
            attempt += 1
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise TimeoutError(
                    f"vsock accept on port {self.port} timed out after {attempt - 1} attempts"
                ) from last_error
            try:
                return self._try_accept(remaining)
            except OSError as exc:
                if is_temporary_net_err(exc):
                    logger.debug("attempt %d: temporary vsock accept failure: %s", attempt, exc)
                    last_error = exc
                    continue
                logger.error("attempt %d: non-temporary vsock accept failure: %s", attempt, exc)
                raise ConnectionError(f"non-temporary vsock accept failure: {exc}") from exc

    def _try_accept(self, timeout: float) -> Any:
        previous = self._sock.gettimeout()
        self._sock.settimeout(timeout)
        try:
            conn, _ = self._sock.accept()
        finally:
            self._sock.settimeout(previous)
        return conn

    def close(self) -> None:
        """Close the underlying listening socket."""
        self._sock.close()

    def addr(self) -> Any:
        """Return the address the listener is bound to."""
        return self._sock.getsockname()

    def __enter__(self) -> "VsockListener":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


def listen(port: int, config: Optional[DialConfig] = None) -> VsockListener:
    """Listen for host-side vsock connections on ``port`` inside the guest."""
    family = getattr(socket, "AF_VSOCK", None)
    if family is None:
        raise OSError(errno.EAFNOSUPPORT, "vsock sockets are not supported on this platform")
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        sock.bind((getattr(socket, "VMADDR_CID_ANY", _VMADDR_CID_ANY), port))
        sock.listen()
    except BaseException:
        sock.close()
        raise
    return VsockListener(sock, port, config)