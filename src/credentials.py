"""Bearer credential provider for the signed-in session.

The login collaborator writes the token and role; sync operations only read
them, once per request, so a new sign-in takes effect on the next call.
"""

from __future__ import annotations

import config


class SessionCredentials:
    """Token and role of the current session. Injected into every sync operation."""

    def __init__(self, token: str | None = None, role: str | None = None) -> None:
        self._token = token
        self._role = role

    @classmethod
    def from_env(cls) -> SessionCredentials:
        """Seed from TASKDESK_TOKEN / TASKDESK_ROLE (both optional)."""
        return cls(token=config.session_token(), role=config.session_role())

    def sign_in(self, token: str, role: str | None = None) -> None:
        if not token or not token.strip():
            raise ValueError("token must be a non-empty string")
        self._token = token.strip()
        self._role = role

    def sign_out(self) -> None:
        self._token = None
        self._role = None

    def bearer_token(self) -> str | None:
        return self._token

    def role(self) -> str | None:
        return self._role

    @property
    def is_authenticated(self) -> bool:
        return self._token is not None
