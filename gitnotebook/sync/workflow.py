from __future__ import annotations

import enum
import threading
from functools import wraps
from typing import Callable

from gitnotebook.core.directory import NoteDirectory
from gitnotebook.core.errors import (
    AuthError,
    NotebookError,
    NotFound,
    OperationInProgress,
    Outcome,
    PreconditionFailed,
    TransportError,
)
from gitnotebook.core.filenames import filename_for, safe_filename
from gitnotebook.core.models import EditorBuffer, Identity, NoteFile
from gitnotebook.core.session import SessionState
from gitnotebook.logging_setup import log
from gitnotebook.settings import (
    NEW_NOTE_TEMPLATE,
    PLACEHOLDER_MESSAGE,
    PLACEHOLDER_NAME,
    PLACEHOLDER_TEXT,
    StoreConfig,
)
from gitnotebook.store.client import RemoteStoreClient

ClientFactory = Callable[[str], RemoteStoreClient]


class WorkflowState(enum.Enum):
    UNAUTHENTICATED = "unauthenticated"
    NO_NOTE_OPEN = "authenticated/no-note-open"
    NOTE_OPEN = "authenticated/note-open"


def serialized(func):
    """
    At most one workflow operation in flight.
    A call made while another one runs gets an OperationInProgress outcome;
    NotebookError raised inside becomes Outcome.failure.
    """

    @wraps(func)
    def wrapper(self: "SyncWorkflow", *args, **kwargs) -> Outcome:
        if not self._op_lock.acquire(blocking=False):
            log.warning("%s rejected: another operation is in flight", func.__name__)
            return Outcome.failure(OperationInProgress(f"{func.__name__}: another operation is in progress"))
        try:
            return Outcome.success(func(self, *args, **kwargs))
        except NotebookError as e:
            log.warning("%s failed: kind=%s %s", func.__name__, e.kind.value, e)
            return Outcome.failure(e)
        finally:
            self._op_lock.release()

    return wrapper


class SyncWorkflow:
    """
    create / open / save of notes against the remote store.

    Owns the session, the note directory and the editor buffer; every public
    operation returns an Outcome instead of raising.
    """

    def __init__(self, config: StoreConfig, *, client_factory: ClientFactory | None = None):
        self.config = config
        self.session = SessionState()
        self.directory = NoteDirectory()
        self.buffer: EditorBuffer | None = None

        self._client_factory: ClientFactory = client_factory or (lambda token: RemoteStoreClient(config, token))
        self._client: RemoteStoreClient | None = None
        self._directory_seen = False
        self._op_lock = threading.Lock()

    # ───────────────────────── state ─────────────────────────

    @property
    def state(self) -> WorkflowState:
        if not self.session.authenticated:
            return WorkflowState.UNAUTHENTICATED
        if self.buffer is None:
            return WorkflowState.NO_NOTE_OPEN
        return WorkflowState.NOTE_OPEN

    @property
    def identity(self) -> Identity | None:
        return self.session.identity

    @property
    def busy(self) -> bool:
        return self._op_lock.locked()

    def note_path(self, note_id: str) -> str:
        return self.config.note_path(filename_for(note_id))

    # ───────────────────────── operations ─────────────────────────

    @serialized
    def authenticate(self, credential: str) -> Identity:
        if self.session.authenticated:
            raise PreconditionFailed("Already authenticated; log out first")
        credential = (credential or "").strip()
        if not credential:
            raise AuthError("Empty credential")

        client = self._client_factory(credential)
        try:
            identity = client.fetch_identity()
        except NotebookError:
            client.close()
            raise

        self._client = client
        self.session.begin(credential, identity)
        log.info("Authenticated as %s", identity.login)

        # listing failure is reported, the session stays authenticated
        try:
            self._refresh_directory()
        except AuthError as e:
            # /user accepted the credential; the notes path is out of its reach
            raise TransportError(
                f"Signed in as {identity.login}, but {self.config.notes_path} could not be read: {e}",
                path=e.path,
                status=e.status,
            ) from e
        return identity

    @serialized
    def logout(self) -> None:
        login = self.session.identity.login if self.session.identity else None
        if self._client is not None:
            self._client.close()
            self._client = None
        self.session.end()
        self.directory.clear()
        self.buffer = None
        self._directory_seen = False
        log.info("Logged out: %s", login)

    @serialized
    def refresh_directory(self) -> list[str]:
        self._require_session()
        return self._refresh_directory()

    @serialized
    def open_note(self, note_id: str) -> EditorBuffer:
        self._require_session()
        return self._open_note(note_id)

    @serialized
    def clear_selection(self) -> None:
        self._require_session()
        if self.buffer is not None:
            log.debug("Selection cleared: %s", self.buffer.note_id)
        self.buffer = None

    @serialized
    def create_note(self, name: str, initial_content: str | None = None) -> EditorBuffer:
        client = self._require_session()
        note_id = safe_filename(name)
        if not note_id:
            raise PreconditionFailed(f"Invalid note name: {name!r}")

        content = NEW_NOTE_TEMPLATE.format(name=note_id) if initial_content is None else initial_content
        filename = filename_for(note_id)
        client.create_file(self.config.note_path(filename), content, f"Create {filename}")
        log.info("Note created: %s", note_id)

        self._refresh_directory()
        return self._open_note(note_id)

    @serialized
    def save_note(self) -> NoteFile:
        client = self._require_session()
        buffer = self.buffer
        if buffer is None:
            raise PreconditionFailed("Please select a note to save")

        text = buffer.text
        filename = filename_for(buffer.note_id)
        path = self.config.note_path(filename)

        # always fetch the current sha right before writing: the buffer may be stale
        current = client.read_file(path)
        saved = client.update_file(path, text, current.sha, f"Update {filename}")

        buffer.mark_saved(text)
        log.info("Note saved: %s sha=%s", buffer.note_id, saved.sha)
        return saved

    def edit(self, text: str) -> None:
        """Local edit of the open note; nothing is sent to the store."""
        if self.buffer is None:
            raise PreconditionFailed("No note is open")
        self.buffer.text = text

    # ───────────────────────── internal ─────────────────────────

    def _require_session(self) -> RemoteStoreClient:
        if not self.session.authenticated or self._client is None:
            raise PreconditionFailed("Not authenticated")
        return self._client

    def _refresh_directory(self) -> list[str]:
        client = self._require_session()
        try:
            entries = client.list_files(self.config.notes_path)
        except NotFound:
            if self._directory_seen:
                raise
            self._bootstrap(client)
            entries = client.list_files(self.config.notes_path)

        # bootstrap is only for a notes path that was never seen
        self._directory_seen = True
        ids = self.directory.rebuild(entries)
        log.info("Directory listed: path=%s notes=%d", self.config.notes_path, len(ids))
        return ids

    def _bootstrap(self, client: RemoteStoreClient) -> None:
        path = self.config.note_path(PLACEHOLDER_NAME)
        log.info("Notes path %s does not exist, creating placeholder %s", self.config.notes_path, path)
        client.create_file(path, PLACEHOLDER_TEXT, PLACEHOLDER_MESSAGE)
        self._directory_seen = True

    def _open_note(self, note_id: str) -> EditorBuffer:
        client = self._require_session()
        if not note_id:
            raise PreconditionFailed("Empty note id")
        note = client.read_file(self.note_path(note_id))

        previous = self.buffer
        if previous is not None and previous.dirty and previous.note_id != note_id:
            log.info("Discarding unsaved edits of %s", previous.note_id)
        self.buffer = EditorBuffer.opened(note_id, note.content)
        log.info("Note opened: %s sha=%s", note_id, note.sha)
        return self.buffer
