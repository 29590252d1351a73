from __future__ import annotations

import enum

from .models import Identity


class SessionPhase(enum.Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"


class SessionState:
    """
    Owns the credential and the authenticated identity.
    Both are set together by begin() and dropped together by end().
    """

    def __init__(self) -> None:
        self._credential: str | None = None
        self._identity: Identity | None = None

    @property
    def credential(self) -> str | None:
        return self._credential

    @property
    def identity(self) -> Identity | None:
        return self._identity

    @property
    def phase(self) -> SessionPhase:
        if self._credential is None:
            return SessionPhase.UNAUTHENTICATED
        return SessionPhase.AUTHENTICATED

    @property
    def authenticated(self) -> bool:
        return self.phase is SessionPhase.AUTHENTICATED

    def begin(self, credential: str, identity: Identity) -> None:
        if self.authenticated:
            raise RuntimeError("Session already authenticated; call end() first")
        if not credential:
            raise ValueError("credential must not be empty")
        self._credential = credential
        self._identity = identity

    def end(self) -> None:
        self._credential = None
        self._identity = None

    def __repr__(self) -> str:
        # never print the token
        login = self._identity.login if self._identity else None
        return f"SessionState(phase={self.phase.value}, login={login!r})"
