from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

APP_NAME = "gitnotebook"
LOG_DIR = Path.home() / f".{APP_NAME}" / "logs"
LOG_PATH = LOG_DIR / f"{APP_NAME}.log"

GITHUB_API_URL = "https://api.github.com"
DEFAULT_BRANCH = "main"
DEFAULT_NOTES_PATH = "notes"

# fixed suffix of every note file; NoteId = filename without it
NOTE_SUFFIX = ".md"

# placeholder written once when the notes folder does not exist yet
PLACEHOLDER_NAME = "README.md"
PLACEHOLDER_TEXT = "# My Notebook\n\nThis folder contains my notes."
PLACEHOLDER_MESSAGE = "Create notes folder"

NEW_NOTE_TEMPLATE = "# {name}\n\nStart writing here..."

HTTP_TIMEOUT_S = 20.0
PREVIEW_DEBOUNCE_MS = 200


@dataclass(frozen=True)
class SettingsKeys:
    AUTH_TOKEN: str = "auth/github_token"
    STORE_REPO: str = "store/owner_repo"
    STORE_BRANCH: str = "store/branch"
    STORE_NOTES_PATH: str = "store/notes_path"
    UI_GEOMETRY: str = "ui/geometry"


@dataclass(frozen=True)
class StoreConfig:
    """Which repository, branch and folder the notebook works against."""

    owner_repo: str
    branch: str = DEFAULT_BRANCH
    notes_path: str = DEFAULT_NOTES_PATH
    api_url: str = GITHUB_API_URL

    def __post_init__(self) -> None:
        owner_repo = (self.owner_repo or "").strip().strip("/")
        parts = owner_repo.split("/")
        if len(parts) != 2 or not all(p.strip() for p in parts):
            raise ValueError(f"owner_repo must look like 'owner/repo', got {self.owner_repo!r}")
        branch = (self.branch or "").strip() or DEFAULT_BRANCH
        notes_path = (self.notes_path or "").strip().strip("/")
        if not notes_path:
            raise ValueError("notes_path must not be empty")

        # frozen dataclass: normalize through object.__setattr__
        object.__setattr__(self, "owner_repo", owner_repo)
        object.__setattr__(self, "branch", branch)
        object.__setattr__(self, "notes_path", notes_path)
        object.__setattr__(self, "api_url", (self.api_url or GITHUB_API_URL).rstrip("/"))

    def note_path(self, filename: str) -> str:
        return f"{self.notes_path}/{filename}"


def get_str(settings, key: str, default: str) -> str:
    try:
        val = settings.value(key, default)
        return str(val) if val is not None else default
    except Exception:
        return default


def load_store_config(
    settings,
    *,
    repo: str | None = None,
    branch: str | None = None,
    notes_path: str | None = None,
) -> StoreConfig:
    """
    Explicit value -> last used value from QSettings -> default.
    The effective values are written back so the next launch needs no arguments.
    """
    config = StoreConfig(
        owner_repo=repo or get_str(settings, SettingsKeys.STORE_REPO, ""),
        branch=branch or get_str(settings, SettingsKeys.STORE_BRANCH, DEFAULT_BRANCH),
        notes_path=notes_path or get_str(settings, SettingsKeys.STORE_NOTES_PATH, DEFAULT_NOTES_PATH),
    )
    settings.setValue(SettingsKeys.STORE_REPO, config.owner_repo)
    settings.setValue(SettingsKeys.STORE_BRANCH, config.branch)
    settings.setValue(SettingsKeys.STORE_NOTES_PATH, config.notes_path)
    return config
