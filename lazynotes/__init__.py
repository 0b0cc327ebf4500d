"""LazyNotes: audio transcription jobs, transcript notes and study flashcards."""

__version__ = '1.0.0'
