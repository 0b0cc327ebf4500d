import pytest

from lazynotes.transcription.models import TranscriptResult
from tests.fixtures.sample_data import transcript_payload


@pytest.mark.unit
def test_list_fields_are_joined():
    payload = transcript_payload()
    payload['summary']['action_items'] = ['Read chapter 4', 'Review slides']
    result = TranscriptResult.model_validate(payload)
    assert result.summary.action_items == 'Read chapter 4\nReview slides'


@pytest.mark.unit
def test_null_sentences_become_empty():
    payload = transcript_payload(overview=None)
    payload['sentences'] = None
    result = TranscriptResult.model_validate(payload)
    assert result.sentences == []
    assert not result.has_sentences
    assert not result.has_overview
    assert result.transcript_text() == ''


@pytest.mark.unit
def test_blank_sentences_do_not_count():
    payload = transcript_payload(overview=None)
    payload['sentences'] = [{'index': 0, 'raw_text': ''}]
    assert not TranscriptResult.model_validate(payload).has_sentences


@pytest.mark.unit
def test_display_title():
    assert TranscriptResult(id='1', title=' Lecture ').display_title() == 'Lecture'
    assert TranscriptResult(id='1').display_title() == 'Untitled Note'


@pytest.mark.unit
def test_sentences_with_only_text_count():
    payload = transcript_payload(overview=None)
    payload['sentences'] = [
        {'index': 0, 'text': 'Mitochondria make ATP.'},
        {'index': 1, 'raw_text': 'Cells divide.', 'text': 'cells divide'},
    ]
    result = TranscriptResult.model_validate(payload)
    assert result.has_sentences
    assert result.transcript_text() == 'Mitochondria make ATP. Cells divide.'
