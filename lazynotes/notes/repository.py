"""
In-memory notes and folders.

Folders are matched case-insensitively but keep the casing they were created
with. Every change to a note bumps its folder's ``last_modified`` so the most
recently edited folders can be listed first.
"""
from __future__ import annotations

import threading
import time
import uuid
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from lazynotes.transcription.models import TranscriptResult, UNTITLED_NOTE
from lazynotes.utils import get_logger

LOG = get_logger()

NO_CONTENT = 'No content available.'


class NoteRepositoryError(Exception):
    pass


class NoteNotFoundError(NoteRepositoryError):
    pass


class FolderError(NoteRepositoryError):
    pass


class Note(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    title: str = UNTITLED_NOTE
    folder_name: str
    summary: Optional[str] = None
    transcript: Optional[str] = None
    audio_uri: Optional[str] = None

    @property
    def content(self) -> str:
        if self.summary and self.summary.strip():
            return self.summary
        if self.transcript and self.transcript.strip():
            return self.transcript
        return NO_CONTENT


@dataclass
class Folder:
    name: str
    last_modified: float


def note_from_transcript(transcript: TranscriptResult, folder_name: str, title: Optional[str] = None, audio_uri: Optional[str] = None) -> Note:
    if title and title.strip():
        note_title = title.strip()
    else:
        note_title = transcript.display_title()
    return Note(
        title=note_title,
        folder_name=folder_name,
        summary=transcript.overview,
        transcript=transcript.transcript_text() or None,
        audio_uri=audio_uri,
    )


class NoteRepository:
    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._lock = threading.RLock()
        self._notes: Dict[str, Note] = {}
        self._folders: Dict[str, Folder] = {}

    @staticmethod
    def _folder_key(name: str) -> str:
        return name.strip().lower()

    def _touch_folder(self, name: str) -> Folder:
        key = self._folder_key(name)
        folder = self._folders.get(key)
        if folder is None:
            folder = Folder(name=name.strip(), last_modified=self._clock())
            self._folders[key] = folder
        else:
            folder.last_modified = self._clock()
        return folder

    def _require_note(self, note_id: str) -> Note:
        note = self._notes.get(note_id)
        if note is None:
            raise NoteNotFoundError(f'Note not found: {note_id}')
        return note

    # Notes

    def add_note(self, note: Note) -> Note:
        if not note.folder_name or not note.folder_name.strip():
            raise FolderError('Folder name must not be blank')
        with self._lock:
            folder = self._touch_folder(note.folder_name)
            stored = note.model_copy(update={'folder_name': folder.name})
            self._notes[stored.id] = stored
        LOG.info('note_added', extra={'note_id': stored.id, 'folder': stored.folder_name})
        return stored

    def get_note(self, note_id: str) -> Optional[Note]:
        with self._lock:
            return self._notes.get(note_id)

    def update_note_title(self, note_id: str, title: str) -> Note:
        with self._lock:
            note = self._require_note(note_id)
            updated = note.model_copy(update={'title': title.strip() or UNTITLED_NOTE})
            self._notes[note_id] = updated
            self._touch_folder(updated.folder_name)
        return updated

    def move_note_to_folder(self, note_id: str, folder_name: str) -> Note:
        if not folder_name or not folder_name.strip():
            raise FolderError('Folder name must not be blank')
        with self._lock:
            note = self._require_note(note_id)
            self._touch_folder(note.folder_name)
            target = self._touch_folder(folder_name)
            moved = note.model_copy(update={'folder_name': target.name})
            self._notes[note_id] = moved
        return moved

    def delete_note(self, note_id: str) -> bool:
        with self._lock:
            note = self._notes.pop(note_id, None)
            if note is None:
                return False
            self._touch_folder(note.folder_name)
        LOG.info('note_deleted', extra={'note_id': note_id, 'folder': note.folder_name})
        return True

    def get_notes_for_folder(self, folder_name: str, alphabetical: bool = False) -> List[Note]:
        key = self._folder_key(folder_name)
        with self._lock:
            notes = [n for n in self._notes.values() if self._folder_key(n.folder_name) == key]
        if alphabetical:
            notes.sort(key=lambda n: n.title.lower())
        return notes

    # Folders

    def add_folder(self, name: str) -> Folder:
        if not name or not name.strip():
            raise FolderError('Folder name must not be blank')
        key = self._folder_key(name)
        with self._lock:
            if key in self._folders:
                raise FolderError(f'Folder already exists: {name.strip()}')
            folder = self._touch_folder(name)
        return folder

    def get_folders_ordered(self, alphabetical: bool = False) -> List[Folder]:
        with self._lock:
            folders = list(self._folders.values())
        if alphabetical:
            return sorted(folders, key=lambda f: f.name.lower())
        return sorted(folders, key=lambda f: f.last_modified, reverse=True)

    def rename_folder(self, old_name: str, new_name: str) -> Folder:
        if not new_name or not new_name.strip():
            raise FolderError('Folder name must not be blank')
        old_key = self._folder_key(old_name)
        new_key = self._folder_key(new_name)
        with self._lock:
            if old_key not in self._folders:
                raise FolderError(f'Folder not found: {old_name}')
            if new_key != old_key and new_key in self._folders:
                raise FolderError(f'Folder already exists: {new_name.strip()}')
            del self._folders[old_key]
            folder = self._touch_folder(new_name)
            for note_id, note in list(self._notes.items()):
                if self._folder_key(note.folder_name) == old_key:
                    self._notes[note_id] = note.model_copy(update={'folder_name': folder.name})
        return folder

    def delete_folder(self, name: str) -> int:
        """Delete a folder and every note in it. Returns the number of notes removed."""
        key = self._folder_key(name)
        with self._lock:
            if self._folders.pop(key, None) is None:
                raise FolderError(f'Folder not found: {name}')
            doomed = [nid for nid, n in self._notes.items() if self._folder_key(n.folder_name) == key]
            for nid in doomed:
                del self._notes[nid]
        LOG.info('folder_deleted', extra={'folder': name, 'notes_removed': len(doomed)})
        return len(doomed)
