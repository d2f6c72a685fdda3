"""Host-side dialing of a guest vsock listener through the VMM's unix socket."""

from __future__ import annotations

import errno
import logging
import socket
import time
from dataclasses import dataclass, field
from typing import Optional

_TEMPORARY_ERRNOS = frozenset(
    {
        errno.EINTR,
        errno.EMFILE,
        errno.ENFILE,
        errno.ECONNRESET,
        errno.ECONNABORTED,
        errno.EAGAIN,
        errno.EWOULDBLOCK,
        errno.ETIMEDOUT,
    }
)


@dataclass
class DialConfig:
    """Timeouts (in seconds) and logger used when dialing or accepting vsock connections."""

    dial_timeout: float = 0.1
    retry_timeout: float = 20.0
    retry_interval: float = 0.1
    connect_msg_timeout: float = 0.1
    ack_msg_timeout: float = 1.0
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("microvmkit.vsock"))


class _HandshakeError(ConnectionError):
    temporary = False
    _prefix = "vsock handshake failure"

    def __init__(self, cause: BaseException) -> None:
        super().__init__(f"{self._prefix}: {cause}")
        self.cause = cause
        self.__cause__ = cause

    @property
    def timeout(self) -> bool:
        """Handshake failures are never reported as timeouts."""
        return False


class ConnectMsgError(_HandshakeError):
    """Writing the CONNECT message failed; this is not retried."""

    temporary = False
    _prefix = "vsock connect message failure"


class AckError(_HandshakeError):
    """The acknowledgement was missing or malformed; this is retried."""

    temporary = True
    _prefix = "vsock ack message failure"


def connect_msg(port: int) -> str:
    """Return the message that asks the VMM to connect to a guest listener on ``port``."""
    return f"CONNECT {port}\n"


def is_temporary_net_err(err: Optional[BaseException]) -> bool:
    """Return whether ``err`` (or the first network error in its cause chain) is retriable."""
    seen = set()
    while err is not None and id(err) not in seen:
        seen.add(id(err))
        temporary = getattr(err, "temporary", None)
        if isinstance(temporary, bool):
            return temporary
        if isinstance(err, OSError):
            if isinstance(err, TimeoutError):
                return True
            if err.errno is not None:
                return err.errno in _TEMPORARY_ERRNOS
        err = err.__cause__
    return False


def _wrapped(message: str, exc: BaseException) -> ConnectionError:
    error = ConnectionError(f"{message}: {exc}")
    error.__cause__ = exc
    return error


def _write_all(sock: socket.socket, message: str, timeout: float) -> None:
    data = message.encode()
    sock.settimeout(timeout)
    try:
        written = sock.send(data)
    finally:
        sock.settimeout(None)
    if written != len(data):
        raise ConnectionError(
            f"incomplete write, expected {len(data)} bytes but wrote {written}"
        )


def _read_line(sock: socket.socket, timeout: float) -> str:
    # Byte-at-a-time so nothing after the acknowledgement is consumed.
    buf = bytearray()
    sock.settimeout(timeout)
    try:
        while True:
            chunk = sock.recv(1)
            if not chunk:
                raise ConnectionError(f"unexpected EOF after reading {bytes(buf)!r}")
            buf += chunk
            if chunk == b"\n":
                break
    finally:
        sock.settimeout(None)
    return buf.decode(errors="replace")


def try_connect(path: str, port: int, config: Optional[DialConfig] = None) -> socket.socket:
    """Make one attempt to reach the guest listener on ``port`` through the unix socket at ``path``."""
    config = config or DialConfig()
    sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    try:
        sock.settimeout(config.dial_timeout)
        try:
            sock.connect(path)
        except OSError as exc:
            raise _wrapped(f"failed to dial {path!r} within {config.dial_timeout}s", exc) from exc
        sock.settimeout(None)

        message = connect_msg(port)
        try:
            _write_all(sock, message, config.connect_msg_timeout)
        except OSError as exc:
            raise ConnectMsgError(
                _wrapped(f"failed to write {message!r} within {config.connect_msg_timeout}s", exc)
            ) from exc

        try:
            line = _read_line(sock, config.ack_msg_timeout)
        except OSError as exc:
            raise AckError(
                _wrapped(f'failed to read "OK <port>" within {config.ack_msg_timeout}s', exc)
            ) from exc

        # The reply is "OK <host-side port>\n"; the port itself is not needed.
        if not line.startswith("OK "):
            raise AckError(ValueError(f'expected to read "OK <port>", but instead read {line!r}'))
    except BaseException:
        try:
            sock.close()
        except OSError as close_exc:
            config.logger.error("failed to close vsock socket after previous error: %s", close_exc)
        raise
    return sock


def dial(path: str, port: int, config: Optional[DialConfig] = None) -> socket.socket:
    """Connect to the guest listener on ``port`` through the VMM's unix socket at ``path``.

    Temporary failures are retried every ``retry_interval`` seconds; a
    TimeoutError is raised once ``retry_timeout`` seconds have passed. Other
    failures raise ConnectionError at once.
    """
    config = config or DialConfig()
    deadline = time.monotonic() + config.retry_timeout
    attempt = 0
    last_error: Optional[BaseException] = None
    while True:
        time.sleep(config.retry_interval)
        attempt += 1
        if time.monotonic() > deadline:
            raise TimeoutError(
                f"vsock dial to {path!r} timed out after {attempt - 1} attempts"
            ) from last_error
        try:
            return try_connect(path, port, config)
        except OSError as exc:
            if is_temporary_net_err(exc):
                config.logger.debug("attempt %d: temporary vsock dial failure: %s", attempt, exc)
                last_error = exc
                continue
            config.logger.error("attempt %d: non-temporary vsock dial failure: %s", attempt, exc)
            raise ConnectionError(f"non-temporary vsock dial failure: {exc}") from exc