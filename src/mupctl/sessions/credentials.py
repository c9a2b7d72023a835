"""Resolve server login details into session descriptors."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any

from mupctl.core.exceptions import CredentialFileUnreadable, CredentialMissing
from mupctl.core.logging import StructuredLogger
from mupctl.core.utils import resolve_path

logger = StructuredLogger("sessions.credentials")


@dataclass(frozen=True)
class SessionAuth:
    """Resolved authentication for one server.

    Exactly one of ``pem``, ``password`` or ``agent`` is set.
    """

    username: str | None
    pem: str | None = field(default=None, repr=False)
    password: str | None = field(default=None, repr=False)
    agent: str | None = None

    @property
    def method(self) -> str:
        if self.pem is not None:
            return "pem"
        if self.password is not None:
            return "password"
        return "agent"


@dataclass(frozen=True)
class SessionDescriptor:
    """How to reach and authenticate against one server."""

    name: str
    host: str | None
    auth: SessionAuth
    transport_options: Mapping[str, Any] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def to_dict(self) -> dict[str, Any]:
        """Summary without credential material, for display."""
        return {
            "name": self.name,
            "host": self.host,
            "username": self.auth.username,
            "auth": self.auth.method,
        }


def read_pem(server: str, pem: str) -> str:
    """Read a private key file for ``server``."""
    path = resolve_path(pem)
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise CredentialFileUnreadable(server, str(path))
    except (OSError, UnicodeDecodeError) as e:
        raise CredentialFileUnreadable(server, str(path), str(e))


def resolve_session(
    name: str,
    info: Mapping[str, Any],
    agent_socket: str | None = None,
) -> SessionDescriptor:
    """Resolve one ``servers`` entry into a :class:`SessionDescriptor`.

    Precedence is pem file, then password, then a running ssh-agent
    (``agent_socket`` set and present on disk). The entry's ``opts`` are
    passed through as transport options untouched.

    Raises:
        CredentialFileUnreadable: ``pem`` is set but cannot be read
        CredentialMissing: no authentication method is available
    """
    if not isinstance(info, Mapping):
        # a bare value such as "servers: {one: 1.2.3.4}" carries no credentials
        info = {}

    username = info.get("username")
    opts = info.get("opts") or {}
    if isinstance(opts, Mapping):
        opts = MappingProxyType(dict(opts))

    if info.get("pem"):
        auth = SessionAuth(username=username, pem=read_pem(name, info["pem"]))
    elif info.get("password"):
        auth = SessionAuth(username=username, password=info["password"])
    elif agent_socket and Path(agent_socket).exists():
        auth = SessionAuth(username=username, agent=agent_socket)
    else:
        raise CredentialMissing(name)

    logger.debug("Resolved credentials", server=name, method=auth.method)

    return SessionDescriptor(
        name=name,
        host=info.get("host"),
        auth=auth,
        transport_options=opts,
    )
