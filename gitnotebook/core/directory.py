from __future__ import annotations

from typing import Iterable, Iterator

from .filenames import filename_for, note_id_from_filename
from .models import DirectoryEntry


class NoteDirectory:
    """
    Known note ids, in listing order.
    Rebuilt from scratch on every listing; never patched incrementally.
    """

    def __init__(self) -> None:
        self._ids: list[str] = []

    def clear(self) -> None:
        self._ids.clear()

    def rebuild(self, entries: Iterable[DirectoryEntry]) -> list[str]:
        ids: dict[str, None] = {}
        for entry in entries:
            if entry.type != "file":
                continue
            note_id = note_id_from_filename(entry.name)
            if note_id is None:
                continue
            ids.setdefault(note_id, None)
        self._ids = list(ids)
        return self.ids

    @property
    def ids(self) -> list[str]:
        return list(self._ids)

    def filename_for(self, note_id: str) -> str:
        return filename_for(note_id)

    def __contains__(self, note_id: object) -> bool:
        return note_id in self._ids

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._ids))

    def __len__(self) -> int:
        return len(self._ids)
