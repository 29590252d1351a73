from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Identity:
    login: str
    name: str | None = None


@dataclass(frozen=True)
class DirectoryEntry:
    name: str
    path: str
    type: str = "file"
    sha: str | None = None


@dataclass(frozen=True)
class NoteFile:
    name: str
    path: str
    content: str
    sha: str


@dataclass
class EditorBuffer:
    """
    Text of the single open note.
    loaded_text is what the store held when the note was opened (or last saved).
    """

    note_id: str
    text: str
    loaded_text: str = ""

    @classmethod
    def opened(cls, note_id: str, text: str) -> "EditorBuffer":
        return cls(note_id=note_id, text=text, loaded_text=text)

    @property
    def dirty(self) -> bool:
        return self.text != self.loaded_text

    def mark_saved(self, text: str) -> None:
        self.loaded_text = text
