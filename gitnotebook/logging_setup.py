from __future__ import annotations

import logging
import sys
import uuid
from logging.handlers import RotatingFileHandler

from gitnotebook import settings
from gitnotebook.settings import APP_NAME

SESSION_ID = uuid.uuid4().hex[:8]

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s | sid=%(session)s"


class EnsureSessionFilter(logging.Filter):
    """Make sure record.session exists so the formatter never crashes."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "session"):
            record.session = SESSION_ID
        return True


class SessionAdapter(logging.LoggerAdapter):
    def process(self, msg, kwargs):
        extra = kwargs.setdefault("extra", {})
        extra.setdefault("session", SESSION_ID)
        return msg, kwargs


def owned_handlers(logger: logging.Logger) -> list[logging.Handler]:
    """Handlers installed by setup_logging(), ignoring ones added by test runners or embedders."""
    return [h for h in logger.handlers if getattr(h, "_gitnotebook_owned", False)]


def setup_logging(*, console: bool = True) -> logging.Logger:
    """
    Configure the application logger once.
    Handlers are attached to the "gitnotebook" logger only; repeated calls are no-ops.
    """
    logger = logging.getLogger(APP_NAME)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    if owned_handlers(logger):
        return logger

    settings.LOG_DIR.mkdir(parents=True, exist_ok=True)

    fmt = logging.Formatter(LOG_FORMAT)
    session_filter = EnsureSessionFilter()

    fh = RotatingFileHandler(
        settings.LOG_PATH, maxBytes=2 * 1024 * 1024, backupCount=5, encoding="utf-8"
    )
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(fmt)
    fh.addFilter(session_filter)
    fh._gitnotebook_owned = True
    logger.addHandler(fh)

    if console:
        ch = logging.StreamHandler(sys.stdout or sys.stderr)
        ch.setLevel(logging.INFO)
        ch.setFormatter(fmt)
        ch.addFilter(session_filter)
        ch._gitnotebook_owned = True
        logger.addHandler(ch)

    logger.info("Logging initialized. log_file=%s", settings.LOG_PATH)
    return logger


# Module-level adapter: everything logs through it, handlers appear after setup_logging().
log = SessionAdapter(logging.getLogger(APP_NAME), {})


def install_global_exception_hooks() -> None:
    def _excepthook(exc_type, exc, tb):
        log.critical("Uncaught exception", exc_info=(exc_type, exc, tb))
        sys.__excepthook__(exc_type, exc, tb)

    sys.excepthook = _excepthook

    try:
        from PySide6.QtCore import QtMsgType, qInstallMessageHandler

        levels = {
            QtMsgType.QtDebugMsg: logging.DEBUG,
            QtMsgType.QtInfoMsg: logging.INFO,
            QtMsgType.QtWarningMsg: logging.WARNING,
            QtMsgType.QtCriticalMsg: logging.ERROR,
            QtMsgType.QtFatalMsg: logging.CRITICAL,
        }

        def _qt_message_handler(mode, context, message):
            file = getattr(context, "file", None)
            line = getattr(context, "line", None)
            func = getattr(context, "function", None)
            where = f"{file}:{line} {func}" if file or line or func else "unknown"
            log.log(levels.get(mode, logging.WARNING), "Qt: %s | where=%s", message, where)

        qInstallMessageHandler(_qt_message_handler)
        log.info("Qt message handler installed")
    except Exception:
        log.exception("Failed to install Qt message handler")
