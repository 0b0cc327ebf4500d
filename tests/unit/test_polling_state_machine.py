import asyncio

import pytest

from lazynotes.transcription.polling import (
    PollingState,
    PollingStatus,
    TranscriptPoller,
    find_transcript,
    is_not_yet_available,
)
from lazynotes.utils.results import Failure, Success
from tests.fixtures.sample_data import FakeFirefliesClient, not_yet_available, transcript


async def _collect(poller):
    return [s async for s in poller.states()]


@pytest.mark.unit
def test_not_yet_available_matching():
    assert is_not_yet_available('Transcript NOT YET AVAILABLE, retry later')
    assert not is_not_yet_available('Unauthorized')
    assert not is_not_yet_available(None)


@pytest.mark.unit
def test_find_transcript_matches_exact_title():
    items = [transcript(title='lecture-2'), transcript(title='lecture', transcript_id='t-2')]
    assert find_transcript(items, 'lecture').id == 't-2'
    assert find_transcript(items, 'Lecture') is None


@pytest.mark.unit
@pytest.mark.asyncio
async def test_success_on_first_attempt(recording_sleep):
    client = FakeFirefliesClient([Success([transcript(title='lecture')])])
    poller = TranscriptPoller(client, sleep=recording_sleep)
    assert poller.start_polling('lecture.m4a')
    state = await poller.wait()
    assert state.status == PollingStatus.SUCCESS
    assert state.transcript.overview == 'Photosynthesis basics'
    assert client.list_calls == 1
    assert recording_sleep.calls == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_timeout_after_all_attempts(recording_sleep):
    client = FakeFirefliesClient([Success([])])
    poller = TranscriptPoller(client, sleep=recording_sleep)
    poller.start_polling('lecture.m4a')
    state = await poller.wait()
    assert state.status == PollingStatus.TIMEOUT
    assert client.list_calls == 15
    assert recording_sleep.calls == [45] * 14
    assert poller.attempts == 15


@pytest.mark.unit
@pytest.mark.asyncio
async def test_transcript_without_summary_accepted_after_patience(recording_sleep):
    client = FakeFirefliesClient([Success([transcript(title='lecture', overview=None)])])
    poller = TranscriptPoller(client, sleep=recording_sleep)
    poller.start_polling('lecture.m4a')
    state = await poller.wait()
    assert state.status == PollingStatus.SUCCESS
    assert state.transcript.summary is None
    assert state.transcript.transcript_text() == 'Plants use light. Chlorophyll absorbs it.'
    assert client.list_calls == 11


@pytest.mark.unit
@pytest.mark.asyncio
async def test_entry_without_summary_or_sentences_never_succeeds(recording_sleep):
    client = FakeFirefliesClient([Success([transcript(title='lecture', overview=None, sentences=False)])])
    poller = TranscriptPoller(client, max_attempts=12, sleep=recording_sleep)
    poller.start_polling('lecture.m4a')
    state = await poller.wait()
    assert state.status == PollingStatus.TIMEOUT
    assert client.list_calls == 12


@pytest.mark.unit
@pytest.mark.asyncio
async def test_not_yet_available_keeps_polling(recording_sleep):
    client = FakeFirefliesClient([not_yet_available(), not_yet_available(), Success([transcript(title='lecture')])])
    poller = TranscriptPoller(client, sleep=recording_sleep)
    poller.start_polling('lecture.m4a')
    state = await poller.wait()
    assert state.status == PollingStatus.SUCCESS
    assert client.list_calls == 3
    assert recording_sleep.calls == [45, 45]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_other_failure_is_terminal(recording_sleep):
    client = FakeFirefliesClient([Failure(None, 'Unauthorized'), Success([transcript(title='lecture')])])
    poller = TranscriptPoller(client, sleep=recording_sleep)
    poller.start_polling('lecture.m4a')
    state = await poller.wait()
    assert state == PollingState.error('Unauthorized')
    assert client.list_calls == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_second_start_is_rejected_while_active():
    client = FakeFirefliesClient(block=True)
    poller = TranscriptPoller(client)
    assert poller.start_polling('lecture.m4a')
    assert not poller.start_polling('other.m4a')
    assert poller.job_reference == 'lecture.m4a'
    assert await poller.cancel()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_restarting_the_same_reference_is_rejected_while_active():
    client = FakeFirefliesClient(block=True)
    poller = TranscriptPoller(client)
    assert poller.start_polling('lecture.m4a')
    await asyncio.sleep(0)
    assert not poller.start_polling('lecture.m4a')
    await asyncio.sleep(0)
    # still the one loop, parked in its first fetch
    assert client.list_calls == 1
    assert poller.attempts == 1
    assert poller.state == PollingState.polling()
    assert await poller.cancel()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_stream_emits_polling_then_terminal(recording_sleep):
    client = FakeFirefliesClient([not_yet_available(), Success([transcript(title='lecture')])])
    poller = TranscriptPoller(client, sleep=recording_sleep)
    poller.start_polling('lecture.m4a')
    states = await _collect(poller)
    assert [s.status for s in states] == [PollingStatus.POLLING, PollingStatus.SUCCESS]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_cancel_stops_without_terminal_state():
    client = FakeFirefliesClient(block=True)
    poller = TranscriptPoller(client)
    seen = []
    poller.add_listener(lambda ref, state: seen.append(state.status))
    poller.start_polling('lecture.m4a')
    collector = asyncio.ensure_future(_collect(poller))
    await asyncio.sleep(0)
    await poller.cancel()
    states = await asyncio.wait_for(collector, timeout=1)
    assert [s.status for s in states] == [PollingStatus.POLLING]
    assert seen == [PollingStatus.POLLING]
    assert not poller.is_active
    assert poller.state.status == PollingStatus.POLLING


@pytest.mark.unit
@pytest.mark.asyncio
async def test_new_session_allowed_after_terminal(recording_sleep):
    client = FakeFirefliesClient([Failure(None, 'Unauthorized')])
    poller = TranscriptPoller(client, sleep=recording_sleep)
    poller.start_polling('lecture.m4a')
    await poller.wait()
    assert poller.start_polling('lecture.m4a')
    await poller.wait()
    assert client.list_calls == 2


@pytest.mark.unit
@pytest.mark.asyncio
async def test_listener_errors_do_not_break_polling(recording_sleep):
    client = FakeFirefliesClient([Success([transcript(title='lecture')])])
    poller = TranscriptPoller(client, sleep=recording_sleep)

    def broken(ref, state):
        raise RuntimeError('listener failed')

    poller.add_listener(broken)
    poller.start_polling('lecture.m4a')
    state = await poller.wait()
    assert state.status == PollingStatus.SUCCESS


@pytest.mark.unit
def test_state_to_dict():
    assert PollingState.timeout().to_dict() == {'status': 'timeout', 'message': 'Transcript was not ready in time', 'transcript': None}
    assert PollingState.idle().is_terminal is False
