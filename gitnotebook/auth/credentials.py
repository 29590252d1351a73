from __future__ import annotations

from typing import Protocol

from PySide6.QtCore import QSettings

from gitnotebook.logging_setup import log
from gitnotebook.settings import SettingsKeys, get_str


class CredentialProvider(Protocol):
    def obtain(self) -> str | None:
        ...


class CredentialStore:
    """Keeps the personal access token in QSettings between launches."""

    def __init__(self, settings: QSettings):
        self._settings = settings

    def get_credential(self) -> str | None:
        token = get_str(self._settings, SettingsKeys.AUTH_TOKEN, "").strip()
        return token or None

    def store_credential(self, token: str) -> None:
        token = (token or "").strip()
        if not token:
            raise ValueError("Refusing to store an empty credential")
        self._settings.setValue(SettingsKeys.AUTH_TOKEN, token)
        self._settings.sync()
        log.info("Credential stored")

    def clear_credential(self) -> None:
        self._settings.remove(SettingsKeys.AUTH_TOKEN)
        self._settings.sync()
        log.info("Credential cleared")


class StoredCredentialProvider:
    """Silent startup login from a previously stored token."""

    def __init__(self, store: CredentialStore):
        self._store = store

    def obtain(self) -> str | None:
        return self._store.get_credential()


class PromptCredentialProvider:
    """Asks the user for a token in a password dialog."""

    def __init__(self, parent=None):
        self._parent = parent

    def obtain(self) -> str | None:
        from PySide6.QtWidgets import QInputDialog, QLineEdit

        token, ok = QInputDialog.getText(
            self._parent,
            "GitHub login",
            "Enter your GitHub Personal Access Token (with repo scope):",
            QLineEdit.EchoMode.Password,
        )
        token = (token or "").strip()
        if not ok or not token:
            return None
        return token
