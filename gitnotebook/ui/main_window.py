from __future__ import annotations

from typing import Callable

from PySide6.QtCore import Qt, QTimer, QThreadPool, QSettings, Slot
from PySide6.QtGui import QAction
from PySide6.QtWidgets import (
    QMainWindow, QWidget, QHBoxLayout, QVBoxLayout,
    QListWidget, QTextEdit, QComboBox, QLabel, QPushButton,
    QMessageBox, QInputDialog, QSplitter,
)
from PySide6.QtWebEngineWidgets import QWebEngineView

from gitnotebook.auth.credentials import (
    CredentialProvider,
    CredentialStore,
    PromptCredentialProvider,
    StoredCredentialProvider,
)
from gitnotebook.core.errors import ErrorKind, Outcome
from gitnotebook.logging_setup import log
from gitnotebook.services.markdown_renderer import MarkdownRenderer
from gitnotebook.settings import PREVIEW_DEBOUNCE_MS, SettingsKeys
from gitnotebook.sync.workflow import SyncWorkflow, WorkflowState
from gitnotebook.ui.worker import SyncTaskWorker

SELECTOR_PLACEHOLDER = "Select a note to edit"

_ERROR_TITLES = {
    ErrorKind.AUTH: "Authentication failed",
    ErrorKind.NOT_FOUND: "Not found",
    ErrorKind.CONFLICT: "Version conflict",
    ErrorKind.TRANSPORT: "Connection problem",
    ErrorKind.DECODE: "Unreadable note",
    ErrorKind.PRECONDITION: "Nothing to do",
    ErrorKind.BUSY: "Please wait",
}


class NotesApp(QMainWindow):
    """
    Главное окно: список заметок, редактор, превью.
    Все обращения к GitHub идут через SyncWorkflow в фоновом потоке;
    пока операция выполняется, кнопки и редактор заблокированы.
    """

    def __init__(
        self,
        workflow: SyncWorkflow,
        *,
        settings: QSettings,
        prompt_provider: CredentialProvider | None = None,
    ):
        super().__init__()
        self.workflow = workflow
        self.settings = settings
        self.credentials = CredentialStore(settings)
        self.prompt_provider = prompt_provider or PromptCredentialProvider(self)
        self.renderer = MarkdownRenderer()

        self.setWindowTitle(f"gitnotebook: {workflow.config.owner_repo}@{workflow.config.branch}")

        self._pool = QThreadPool.globalInstance()
        self._req_id = 0  # monotonically increasing; results with an older id are dropped
        self._busy = False
        self._handlers: dict[str, Callable[[Outcome], None]] = {
            "login": self._on_login_done,
            "logout": self._on_logout_done,
            "list": self._on_list_done,
            "open": self._on_open_done,
            "clear": self._on_clear_done,
            "create": self._on_open_done,
            "save": self._on_save_done,
        }
        # token that authenticated in the pending "login" task, stored only on success
        self._pending_token: str | None = None

        # UI
        self.user_label = QLabel("")
        self.login_btn = QPushButton("Login with GitHub")
        self.logout_btn = QPushButton("Logout")

        self.note_list = QListWidget()
        self.new_note_btn = QPushButton("New note")

        self.note_selector = QComboBox()
        self.editor = QTextEdit()
        self.editor.setAcceptRichText(False)
        self.preview = QWebEngineView()
        self.save_btn = QPushButton("Save")

        header = QHBoxLayout()
        header.addWidget(self.user_label)
        header.addStretch(1)
        header.addWidget(self.login_btn)
        header.addWidget(self.logout_btn)

        left = QWidget()
        left_layout = QVBoxLayout(left)
        left_layout.setContentsMargins(8, 8, 8, 8)
        left_layout.addWidget(self.note_list)
        left_layout.addWidget(self.new_note_btn)

        editors = QSplitter(Qt.Orientation.Horizontal)
        editors.addWidget(self.editor)
        editors.addWidget(self.preview)

        right = QWidget()
        right_layout = QVBoxLayout(right)
        right_layout.setContentsMargins(8, 8, 8, 8)
        right_layout.addWidget(self.note_selector)
        right_layout.addWidget(editors, 1)
        right_layout.addWidget(self.save_btn, 0, Qt.AlignmentFlag.AlignRight)

        self.splitter = QSplitter(Qt.Orientation.Horizontal)
        self.splitter.addWidget(left)
        self.splitter.addWidget(right)
        self.splitter.setStretchFactor(0, 1)
        self.splitter.setStretchFactor(1, 3)

        root = QWidget()
        root_layout = QVBoxLayout(root)
        root_layout.setContentsMargins(0, 0, 0, 0)
        root_layout.addLayout(header)
        root_layout.addWidget(self.splitter, 1)
        self.setCentralWidget(root)

        # Preview debounce (не рендерим markdown на каждый символ)
        self.preview_timer = QTimer(self)
        self.preview_timer.setInterval(PREVIEW_DEBOUNCE_MS)
        self.preview_timer.setSingleShot(True)
        self.preview_timer.timeout.connect(self._render_preview_from_editor)

        # Signals
        self.login_btn.clicked.connect(self.login)
        self.logout_btn.clicked.connect(self.logout)
        self.new_note_btn.clicked.connect(self.create_note_dialog)
        self.save_btn.clicked.connect(self.save_note)
        self.note_list.itemClicked.connect(lambda it: self.request_open(it.text()))
        self.note_selector.currentIndexChanged.connect(self._on_selector_changed)
        self.editor.textChanged.connect(self._on_text_changed)

        self._build_menu()
        self._restore_geometry()
        self._sync_controls()
        self._render_preview("")

    # ───────────────────────── setup ─────────────────────────

    def _build_menu(self):
        filem = self.menuBar().addMenu("File")

        self.act_login = QAction("Login…", self)
        self.act_login.triggered.connect(self.login)

        self.act_new = QAction("New note…", self)
        self.act_new.setShortcut("Ctrl+N")
        self.act_new.triggered.connect(self.create_note_dialog)

        self.act_save = QAction("Save", self)
        self.act_save.setShortcut("Ctrl+S")
        self.act_save.triggered.connect(self.save_note)

        self.act_refresh = QAction("Refresh list", self)
        self.act_refresh.setShortcut("F5")
        self.act_refresh.triggered.connect(self.refresh_list)

        self.act_logout = QAction("Logout", self)
        self.act_logout.triggered.connect(self.logout)

        filem.addAction(self.act_login)
        filem.addAction(self.act_new)
        filem.addAction(self.act_save)
        filem.addAction(self.act_refresh)
        filem.addSeparator()
        filem.addAction(self.act_logout)

    def _restore_geometry(self) -> None:
        geo = self.settings.value(SettingsKeys.UI_GEOMETRY)
        if geo:
            self.restoreGeometry(geo)
        else:
            self.resize(1100, 700)

    def closeEvent(self, event):  # type: ignore[override]
        if self.preview_timer.isActive():
            self.preview_timer.stop()
        buffer = self.workflow.buffer
        if buffer is not None and buffer.dirty and not self._confirm_discard(buffer.note_id):
            event.ignore()
            return
        self.settings.setValue(SettingsKeys.UI_GEOMETRY, self.saveGeometry())
        super().closeEvent(event)

    # ───────────────────────── task plumbing ─────────────────────────

    def _start(self, op: str, fn: Callable[[], Outcome]) -> bool:
        """Run one workflow operation in the background; refuse while another one is pending."""
        if self._busy:
            log.debug("Action %s ignored: operation in flight", op)
            return False
        self._busy = True
        self._req_id += 1
        self._sync_controls()

        worker = SyncTaskWorker(req_id=self._req_id, op=op, fn=fn)
        worker.signals.finished.connect(self._on_task_finished)
        worker.signals.failed.connect(self._on_task_failed)
        self._pool.start(worker)
        return True

    @Slot(int, str, object)
    def _on_task_finished(self, req_id: int, op: str, outcome: Outcome):
        if req_id != self._req_id:
            log.debug("Stale result dropped: op=%s req_id=%d", op, req_id)
            return
        self._busy = False
        try:
            self._handlers[op](outcome)
        finally:
            self._sync_controls()

    @Slot(int, str, str)
    def _on_task_failed(self, req_id: int, op: str, err: str):
        if req_id != self._req_id:
            return
        self._busy = False
        self._sync_controls()
        log.error("Background operation %s crashed: %s", op, err)
        QMessageBox.critical(self, "Unexpected error", err)

    def _report_failure(self, outcome: Outcome, *, text: str | None = None) -> None:
        kind = outcome.kind
        title = _ERROR_TITLES.get(kind, "Error")
        body = text or outcome.message
        if kind in (ErrorKind.PRECONDITION, ErrorKind.BUSY):
            QMessageBox.information(self, title, body)
        elif kind in (ErrorKind.CONFLICT, ErrorKind.NOT_FOUND):
            QMessageBox.warning(self, title, body)
        else:
            QMessageBox.critical(self, title, body)

    # ───────────────────────── auth ─────────────────────────

    def try_stored_login(self) -> None:
        """Startup: silent login with a previously stored token, if any."""
        self._login_with(StoredCredentialProvider(self.credentials))

    def login(self) -> None:
        if self.workflow.state is not WorkflowState.UNAUTHENTICATED:
            return
        self._login_with(self.prompt_provider)

    def _login_with(self, provider: CredentialProvider) -> None:
        token = provider.obtain()
        if not token:
            return
        self._pending_token = token
        if not self._start("login", lambda: self.workflow.authenticate(token)):
            self._pending_token = None

    def _on_login_done(self, outcome: Outcome) -> None:
        token, self._pending_token = self._pending_token, None
        if not self.workflow.session.authenticated:
            if outcome.kind is ErrorKind.AUTH:
                self.credentials.clear_credential()
            self._report_failure(outcome, text=f"Failed to authenticate with GitHub.\n\n{outcome.message}")
            return

        if token:
            self.credentials.store_credential(token)
        identity = self.workflow.identity
        log.info("Вход выполнен: %s", identity.login if identity else "?")
        self._refresh_views()
        if not outcome.ok:
            self._report_failure(outcome)

    def logout(self) -> None:
        if self.workflow.state is WorkflowState.UNAUTHENTICATED:
            return
        buffer = self.workflow.buffer
        if buffer is not None and buffer.dirty and not self._confirm_discard(buffer.note_id):
            return
        self._start("logout", self.workflow.logout)

    def _on_logout_done(self, outcome: Outcome) -> None:
        if not outcome.ok:
            self._report_failure(outcome)
            return
        self.credentials.clear_credential()
        self._refresh_views()
        self._show_buffer()

    # ───────────────────────── notes ─────────────────────────

    def refresh_list(self) -> None:
        if self.workflow.state is WorkflowState.UNAUTHENTICATED:
            return
        self._start("list", self.workflow.refresh_directory)

    def _on_list_done(self, outcome: Outcome) -> None:
        self._refresh_views()
        if not outcome.ok:
            self._report_failure(outcome)

    def request_open(self, note_id: str) -> None:
        buffer = self.workflow.buffer
        if buffer is not None and buffer.note_id == note_id:
            return
        if buffer is not None and buffer.dirty and not self._confirm_discard(buffer.note_id):
            # вернуть выделение на текущую заметку
            self._select_current()
            return
        if not self._start("open", lambda: self.workflow.open_note(note_id)):
            self._select_current()

    def _on_open_done(self, outcome: Outcome) -> None:
        self._refresh_views()
        self._show_buffer()
        if not outcome.ok:
            self._report_failure(outcome)

    def _on_selector_changed(self, index: int) -> None:
        if index < 0:
            return
        note_id = self.note_selector.itemData(index)
        if note_id:
            self.request_open(note_id)
            return
        buffer = self.workflow.buffer
        if buffer is None:
            return
        if buffer.dirty and not self._confirm_discard(buffer.note_id):
            self._select_current()
            return
        self._start("clear", self.workflow.clear_selection)

    def _on_clear_done(self, outcome: Outcome) -> None:
        self._show_buffer()
        self._select_current()
        if not outcome.ok:
            self._report_failure(outcome)

    def create_note_dialog(self) -> None:
        if self.workflow.state is WorkflowState.UNAUTHENTICATED:
            return
        buffer = self.workflow.buffer
        if buffer is not None and buffer.dirty and not self._confirm_discard(buffer.note_id):
            return
        name, ok = QInputDialog.getText(self, "New note", "Enter a name for your new note:")
        name = (name or "").strip()
        if not ok or not name:
            return
        self._start("create", lambda: self.workflow.create_note(name))

    def save_note(self) -> None:
        if self.workflow.state is not WorkflowState.NOTE_OPEN:
            QMessageBox.information(self, "Save", "Please select a note to save")
            return
        self._start("save", self.workflow.save_note)

    def _on_save_done(self, outcome: Outcome) -> None:
        if outcome.ok:
            QMessageBox.information(self, "Save", "Note saved successfully!")
            return
        if outcome.kind is ErrorKind.CONFLICT:
            self._report_failure(
                outcome,
                text=(
                    "The note was changed on GitHub after it was loaded.\n"
                    "Your edits are still in the editor; copy them, reopen the note and save again."
                ),
            )
            return
        self._report_failure(outcome, text=f"Failed to save note.\n\n{outcome.message}")

    def _confirm_discard(self, note_id: str) -> bool:
        answer = QMessageBox.question(
            self,
            "Unsaved changes",
            f"Note '{note_id}' has unsaved changes. Discard them?",
            QMessageBox.StandardButton.Discard | QMessageBox.StandardButton.Cancel,
            QMessageBox.StandardButton.Cancel,
        )
        return answer == QMessageBox.StandardButton.Discard

    # ───────────────────────── view sync ─────────────────────────

    def _refresh_views(self) -> None:
        """Rebuild sidebar list and selector from the note directory."""
        identity = self.workflow.identity
        self.user_label.setText(f"Signed in as {identity.login}" if identity else "Not signed in")

        ids = self.workflow.directory.ids
        self.note_list.blockSignals(True)
        self.note_list.clear()
        self.note_list.addItems(ids)
        self.note_list.blockSignals(False)

        self.note_selector.blockSignals(True)
        self.note_selector.clear()
        self.note_selector.addItem(SELECTOR_PLACEHOLDER, None)
        for note_id in ids:
            self.note_selector.addItem(note_id, note_id)
        self.note_selector.blockSignals(False)

        self._select_current()

    def _select_current(self) -> None:
        buffer = self.workflow.buffer
        current = buffer.note_id if buffer else None

        self.note_selector.blockSignals(True)
        idx = self.note_selector.findData(current) if current else 0
        self.note_selector.setCurrentIndex(max(idx, 0))
        self.note_selector.blockSignals(False)

        self.note_list.blockSignals(True)
        self.note_list.clearSelection()
        for i in range(self.note_list.count()):
            if self.note_list.item(i).text() == current:
                self.note_list.setCurrentRow(i)
                break
        self.note_list.blockSignals(False)

    def _show_buffer(self) -> None:
        buffer = self.workflow.buffer
        text = buffer.text if buffer else ""
        self.editor.blockSignals(True)
        self.editor.setPlainText(text)
        self.editor.blockSignals(False)
        self._render_preview(text)

    def _sync_controls(self) -> None:
        state = self.workflow.state
        authed = state is not WorkflowState.UNAUTHENTICATED
        idle = not self._busy

        self.login_btn.setVisible(not authed)
        self.logout_btn.setVisible(authed)
        self.login_btn.setEnabled(idle)
        self.act_login.setEnabled(idle and not authed)
        self.logout_btn.setEnabled(idle)
        self.act_logout.setEnabled(idle and authed)

        for w in (self.new_note_btn, self.act_new, self.act_refresh, self.note_list, self.note_selector):
            w.setEnabled(idle and authed)
        for w in (self.save_btn, self.act_save):
            w.setEnabled(idle and state is WorkflowState.NOTE_OPEN)
        self.editor.setReadOnly(not idle or state is not WorkflowState.NOTE_OPEN)

    # ───────────────────────── editor / preview ─────────────────────────

    def _on_text_changed(self) -> None:
        if self.workflow.buffer is None:
            return
        self.workflow.edit(self.editor.toPlainText())
        self.preview_timer.start()

    def _render_preview_from_editor(self) -> None:
        self._render_preview(self.editor.toPlainText())

    def _render_preview(self, text: str) -> None:
        self.preview.setHtml(self.renderer.render_page(text))
