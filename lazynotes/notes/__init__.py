from .repository import (
	Folder,
	FolderError,
	Note,
	NoteNotFoundError,
	NoteRepository,
	NoteRepositoryError,
	note_from_transcript,
)

__all__ = [
	'Folder',
	'FolderError',
	'Note',
	'NoteNotFoundError',
	'NoteRepository',
	'NoteRepositoryError',
	'note_from_transcript',
]
