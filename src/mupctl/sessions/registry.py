"""Session registry and module-scoped session selection."""

from __future__ import annotations

import os
from collections.abc import Callable, Iterable, Mapping
from types import MappingProxyType
from typing import Any

from mupctl.config import module_server_names
from mupctl.core.logging import StructuredLogger
from mupctl.sessions.credentials import SessionDescriptor, resolve_session

logger = StructuredLogger("sessions.registry")

SessionMap = Mapping[str, SessionDescriptor]


class SessionRegistry:
    """Builds the server name to session map once per invocation.

    The config is assumed not to change while a command runs, so the map is
    never rebuilt or invalidated.
    """

    def __init__(
        self,
        config_loader: Callable[[], dict[str, Any]],
        agent_socket: str | None = None,
    ):
        self._config_loader = config_loader
        self._agent_socket = agent_socket
        self._sessions: SessionMap | None = None

    @property
    def loaded(self) -> bool:
        return self._sessions is not None

    def load(self) -> SessionMap:
        """Return the session map, resolving every server on first call."""
        if self._sessions is None:
            self._sessions = self._build()
        return self._sessions

    def _build(self) -> SessionMap:
        config = self._config_loader()
        servers = config.get("servers") or {}
        if not isinstance(servers, Mapping):
            servers = {}
        agent_socket = self._agent_socket
        if agent_socket is None:
            agent_socket = os.environ.get("SSH_AUTH_SOCK")

        sessions: dict[str, SessionDescriptor] = {}
        for name, info in servers.items():
            sessions[name] = resolve_session(name, info, agent_socket)

        logger.debug("Loaded sessions", count=len(sessions))
        return MappingProxyType(sessions)


def select_sessions(
    config: Mapping[str, Any],
    sessions: SessionMap,
    modules: Iterable[str] = (),
) -> dict[str, SessionDescriptor]:
    """Pick the sessions for the servers used by ``modules``.

    Modules missing from the config and servers missing from ``sessions``
    are skipped. A server shared by several modules appears once. The result
    follows the enumeration order of ``sessions``.
    """
    wanted: set[str] = set()
    for module in modules:
        module_config = config.get(module)
        if not module_config:
            continue
        wanted.update(module_server_names(module_config))

    return {name: session for name, session in sessions.items() if name in wanted}
