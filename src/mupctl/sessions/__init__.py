"""Server credentials, session registry and SSH sessions."""

from mupctl.sessions.credentials import SessionAuth, SessionDescriptor, resolve_session
from mupctl.sessions.registry import SessionRegistry, select_sessions
from mupctl.sessions.ssh import SSHCommandResult, SSHConnectionError, SSHSession

__all__ = [
    "SessionAuth",
    "SessionDescriptor",
    "resolve_session",
    "SessionRegistry",
    "select_sessions",
    "SSHCommandResult",
    "SSHConnectionError",
    "SSHSession",
]
