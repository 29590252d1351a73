from __future__ import annotations

import re
import unicodedata

from gitnotebook.settings import NOTE_SUFFIX


def safe_filename(title: str | None, *, max_len: int = 120) -> str:
    """
    Make a note name usable as a single path segment in the repository.
    Returns "" when nothing usable is left (caller decides what to do).
    """
    if title is None:
        return ""

    s = unicodedata.normalize("NFKC", str(title))
    s = "".join(ch for ch in s if unicodedata.category(ch)[0] != "C")
    s = s.strip()
    # no folders: a note is always a direct child of the notes path
    s = s.replace("/", "-").replace("\\", "-")
    s = re.sub(r'[<>:"|?*]', "_", s)
    s = re.sub(r"\s+", " ", s)
    s = s.rstrip(" .")
    s = s.lstrip(".")

    if len(s) > max_len:
        s = s[:max_len].rstrip(" .")

    return s


def is_note_filename(name: str) -> bool:
    return bool(name) and name.endswith(NOTE_SUFFIX) and len(name) > len(NOTE_SUFFIX)


def note_id_from_filename(name: str) -> str | None:
    """'Foo.md' -> 'Foo'; None for anything without the note suffix."""
    if not is_note_filename(name):
        return None
    return name[: -len(NOTE_SUFFIX)]


def filename_for(note_id: str) -> str:
    return f"{note_id}{NOTE_SUFFIX}"
