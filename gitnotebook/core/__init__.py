from .directory import NoteDirectory
from .encoding import decode, encode
from .errors import (
    AuthError,
    Conflict,
    DecodeError,
    EncodeError,
    ErrorKind,
    NotebookError,
    NotFound,
    OperationInProgress,
    Outcome,
    PreconditionFailed,
    TransportError,
)
from .filenames import filename_for, note_id_from_filename, safe_filename
from .models import DirectoryEntry, EditorBuffer, Identity, NoteFile
from .session import SessionPhase, SessionState

__all__ = ["NoteDirectory",
           "decode",
           "encode",
           "AuthError",
           "Conflict",
           "DecodeError",
           "EncodeError",
           "ErrorKind",
           "NotebookError",
           "NotFound",
           "OperationInProgress",
           "Outcome",
           "PreconditionFailed",
           "TransportError",
           "filename_for",
           "note_id_from_filename",
           "safe_filename",
           "DirectoryEntry",
           "EditorBuffer",
           "Identity",
           "NoteFile",
           "SessionPhase",
           "SessionState",
           ]
