"""App entrypoint.

Заметки в markdown, которые хранятся в GitHub-репозитории:
- вход по Personal Access Token
- список заметок из папки репозитория
- открыть / создать / редактировать / сохранить, превью markdown
"""

from __future__ import annotations

import argparse

from PySide6.QtCore import QSettings
from PySide6.QtWidgets import QApplication

from gitnotebook.logging_setup import SESSION_ID, install_global_exception_hooks, log, setup_logging
from gitnotebook.settings import (
    APP_NAME,
    DEFAULT_BRANCH,
    DEFAULT_NOTES_PATH,
    load_store_config,
)
from gitnotebook.sync.workflow import SyncWorkflow
from gitnotebook.ui.main_window import NotesApp


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog=APP_NAME, description="Markdown notebook stored in a GitHub repository")
    p.add_argument("--repo", help="Repository as owner/repo (remembered between launches)")
    p.add_argument("--branch", help=f"Branch to read and commit to (default: {DEFAULT_BRANCH})")
    p.add_argument("--notes-path", help=f"Folder inside the repository (default: {DEFAULT_NOTES_PATH})")
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging()
    install_global_exception_hooks()

    app = QApplication([])
    app.setApplicationName(APP_NAME)
    settings = QSettings(APP_NAME, APP_NAME)

    try:
        config = load_store_config(settings, repo=args.repo, branch=args.branch, notes_path=args.notes_path)
    except ValueError as e:
        log.error("Invalid repository configuration: %s", e)
        print(f"{APP_NAME}: {e}\nRun with --repo owner/repo once; it is remembered afterwards.")
        return 2

    win = NotesApp(SyncWorkflow(config), settings=settings)
    win.show()
    log.info("Приложение запущено, repo=%s branch=%s SID=%s", config.owner_repo, config.branch, SESSION_ID)
    win.try_stored_login()
    return app.exec()


if __name__ == "__main__":
    raise SystemExit(main())
