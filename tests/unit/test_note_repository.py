import itertools

import pytest

from lazynotes.notes import FolderError, Note, NoteNotFoundError, NoteRepository, note_from_transcript
from tests.fixtures.sample_data import transcript


@pytest.fixture
def repo():
    ticks = itertools.count(1)
    return NoteRepository(clock=lambda: float(next(ticks)))


@pytest.mark.unit
def test_note_from_transcript_with_summary(sample_transcript):
    note = note_from_transcript(sample_transcript, 'Biology')
    assert note.title == 'lecture'
    assert note.summary == 'Photosynthesis basics'
    assert note.transcript == 'Plants use light. Chlorophyll absorbs it.'
    assert note.content == 'Photosynthesis basics'


@pytest.mark.unit
def test_note_from_transcript_fallbacks():
    note = note_from_transcript(transcript(title=None, overview=None), 'Biology')
    assert note.title == 'Untitled Note'
    assert note.summary is None
    assert note.content == 'Plants use light. Chlorophyll absorbs it.'

    bare = note_from_transcript(transcript(title='  ', overview=None, sentences=False), 'Biology', title='My title')
    assert bare.title == 'My title'
    assert bare.transcript is None
    assert bare.content == 'No content available.'


@pytest.mark.unit
def test_add_get_and_list_notes(repo):
    a = repo.add_note(Note(title='Zebra', folder_name='Biology'))
    b = repo.add_note(Note(title='apple', folder_name='biology'))
    repo.add_note(Note(title='Other', folder_name='History'))
    assert repo.get_note(a.id) == a
    # folder keeps its original casing
    assert b.folder_name == 'Biology'
    assert [n.title for n in repo.get_notes_for_folder('BIOLOGY', alphabetical=True)] == ['apple', 'Zebra']
    assert len(repo.get_notes_for_folder('history')) == 1


@pytest.mark.unit
def test_update_move_delete(repo):
    note = repo.add_note(Note(title='Draft', folder_name='Biology'))
    assert repo.update_note_title(note.id, 'Final').title == 'Final'
    moved = repo.move_note_to_folder(note.id, 'Chemistry')
    assert moved.folder_name == 'Chemistry'
    assert repo.get_notes_for_folder('Biology') == []
    assert repo.delete_note(note.id)
    assert not repo.delete_note(note.id)
    assert repo.get_note(note.id) is None
    with pytest.raises(NoteNotFoundError):
        repo.update_note_title('missing', 'x')


@pytest.mark.unit
def test_folders_ordered_by_recent_edit(repo):
    repo.add_folder('Biology')
    repo.add_folder('Art')
    note = repo.add_note(Note(title='n', folder_name='Chemistry'))
    repo.update_note_title(note.id, 'n2')
    repo.add_note(Note(title='m', folder_name='Biology'))
    assert [f.name for f in repo.get_folders_ordered()] == ['Biology', 'Chemistry', 'Art']
    assert [f.name for f in repo.get_folders_ordered(alphabetical=True)] == ['Art', 'Biology', 'Chemistry']


@pytest.mark.unit
def test_add_folder_rejects_blank_and_duplicates(repo):
    repo.add_folder('Biology')
    with pytest.raises(FolderError):
        repo.add_folder('biology')
    with pytest.raises(FolderError):
        repo.add_folder('   ')


@pytest.mark.unit
def test_rename_folder_moves_notes(repo):
    note = repo.add_note(Note(title='n', folder_name='Bio'))
    repo.add_folder('History')
    with pytest.raises(FolderError):
        repo.rename_folder('Bio', 'history')
    repo.rename_folder('Bio', 'Biology')
    assert repo.get_note(note.id).folder_name == 'Biology'
    assert [f.name for f in repo.get_folders_ordered(alphabetical=True)] == ['Biology', 'History']


@pytest.mark.unit
def test_delete_folder_removes_notes(repo):
    repo.add_note(Note(title='a', folder_name='Bio'))
    repo.add_note(Note(title='b', folder_name='Bio'))
    keep = repo.add_note(Note(title='c', folder_name='Art'))
    assert repo.delete_folder('bio') == 2
    assert repo.get_notes_for_folder('Bio') == []
    assert repo.get_note(keep.id) is not None
    with pytest.raises(FolderError):
        repo.delete_folder('Bio')
