"""SSH session management built on Paramiko."""

from __future__ import annotations

import io
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Optional

import paramiko

from mupctl.core.exceptions import MupError
from mupctl.core.logging import StructuredLogger
from mupctl.sessions.credentials import SessionDescriptor

logger = StructuredLogger("sessions.ssh")

# Transport options understood by paramiko.SSHClient.connect
CONNECT_OPTIONS = ("port", "timeout", "banner_timeout", "auth_timeout", "compress")

KEY_CLASSES = (paramiko.RSAKey, paramiko.ECDSAKey, paramiko.Ed25519Key)


class SSHConnectionError(MupError):
    """Raised when an SSH connection cannot be established."""

    def __init__(self, server: str, error: str):
        super().__init__(f"Unable to connect to server \"{server}\"", {"error": error})
        self.server = server


@dataclass
class SSHCommandResult:
    command: str
    stdout: str
    stderr: str
    exit_status: int

    @property
    def ok(self) -> bool:
        return self.exit_status == 0


def load_private_key(pem: str) -> paramiko.PKey:
    """Parse private key text, trying each supported key type."""
    last_error: Exception | None = None
    for key_class in KEY_CLASSES:
        try:
            return key_class.from_private_key(io.StringIO(pem))
        except paramiko.SSHException as e:
            last_error = e
    raise paramiko.SSHException(f"Unsupported private key: {last_error}")


class SSHSession:
    """Lazily connected paramiko client for one :class:`SessionDescriptor`."""

    def __init__(
        self,
        descriptor: SessionDescriptor,
        *,
        client_factory: Callable[[], paramiko.SSHClient] | None = None,
    ) -> None:
        self.descriptor = descriptor
        self._client_factory = client_factory or paramiko.SSHClient
        self._client: Optional[paramiko.SSHClient] = None

    def __enter__(self) -> "SSHSession":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # type: ignore[override]
        self.close()

    def connect_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``SSHClient.connect``."""
        auth = self.descriptor.auth
        kwargs: dict[str, Any] = {
            "hostname": self.descriptor.host,
            "username": auth.username,
            "look_for_keys": False,
            "allow_agent": auth.agent is not None,
        }
        for key in CONNECT_OPTIONS:
            if key in self.descriptor.transport_options:
                kwargs[key] = self.descriptor.transport_options[key]
        if auth.pem is not None:
            kwargs["pkey"] = load_private_key(auth.pem)
        elif auth.password is not None:
            kwargs["password"] = auth.password
        return kwargs

    def connect(self) -> None:
        if self._client:
            return
        client = self._client_factory()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        try:
            client.connect(**self.connect_kwargs())
        except (paramiko.SSHException, OSError) as exc:
            client.close()
            raise SSHConnectionError(self.descriptor.name, str(exc))
        logger.debug("Connected", server=self.descriptor.name)
        self._client = client

    def close(self) -> None:
        if self._client:
            self._client.close()
            self._client = None

    def run(self, command: str, *, timeout: Optional[int] = None) -> SSHCommandResult:
        """Execute a command on the server and wait for it to finish."""
        if not self._client:
            self.connect()
        assert self._client is not None

        logger.debug("Running command", server=self.descriptor.name, command=command)
        _, stdout, stderr = self._client.exec_command(command, timeout=timeout)
        exit_status = stdout.channel.recv_exit_status()

        return SSHCommandResult(
            command=command,
            stdout=stdout.read().decode("utf-8", errors="replace").strip(),
            stderr=stderr.read().decode("utf-8", errors="replace").strip(),
            exit_status=exit_status,
        )
