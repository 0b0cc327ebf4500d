import json

import httpx
import pytest
import respx
from httpx import Response

from lazynotes.transcription.fireflies_client import API_FAILURE_MESSAGE, FirefliesClient
from lazynotes.utils.results import Failure, Success
from tests.fixtures.sample_data import transcript_payload

API_URL = 'https://api.fireflies.ai/graphql'


def _client(**kwargs):
    return FirefliesClient(api_key='test-key', api_url=API_URL, retry_multiplier=0, **kwargs)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_create_job_sends_mutation():
    with respx.mock:
        route = respx.post(API_URL).mock(return_value=Response(200, json={'data': {'uploadAudio': {
            'success': True, 'title': 'lecture', 'message': 'Uploaded audio has been queued for processing.'}}}))
        res = await _client().create_job('https://s3.mock/a.m4a', 'lecture', 'lecture.m4a')

    assert isinstance(res, Success)
    assert res.data.success is True
    request = route.calls.last.request
    body = json.loads(request.content)
    assert request.headers['authorization'] == 'Bearer test-key'
    assert 'uploadAudio' in body['query']
    assert body['variables']['input'] == {'url': 'https://s3.mock/a.m4a', 'title': 'lecture', 'client_reference_id': 'lecture.m4a'}


@pytest.mark.unit
@pytest.mark.asyncio
async def test_create_job_graphql_error_is_failure():
    with respx.mock:
        route = respx.post(API_URL).mock(return_value=Response(200, json={'errors': [{'message': 'Invalid API key'}], 'data': None}))
        res = await _client().create_job('u', 't', 'r')
    assert isinstance(res, Failure)
    assert res.message == 'Invalid API key'
    # remote-indicated failures are not retried
    assert route.call_count == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_create_job_malformed_response():
    with respx.mock:
        respx.post(API_URL).mock(return_value=Response(200, json={'data': {}}))
        res = await _client().create_job('u', 't', 'r')
    assert res == Failure(None, API_FAILURE_MESSAGE)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_create_job_retries_transport_errors():
    ok = Response(200, json={'data': {'uploadAudio': {'success': True, 'title': 't', 'message': None}}})
    with respx.mock:
        route = respx.post(API_URL).mock(side_effect=[httpx.ConnectError('connection refused'), httpx.ConnectError('connection refused'), ok])
        res = await _client(submit_retry_attempts=3).create_job('u', 't', 'r')
    assert isinstance(res, Success)
    assert route.call_count == 3


@pytest.mark.unit
@pytest.mark.asyncio
async def test_create_job_gives_up_after_retries():
    with respx.mock:
        route = respx.post(API_URL).mock(side_effect=httpx.ConnectError('connection refused'))
        res = await _client(submit_retry_attempts=2).create_job('u', 't', 'r')
    assert isinstance(res, Failure)
    assert isinstance(res.cause, httpx.ConnectError)
    assert res.message.startswith('An unexpected error occurred')
    assert route.call_count == 2


@pytest.mark.unit
@pytest.mark.asyncio
async def test_list_jobs_parses_transcripts_and_skips_bad_entries():
    payload = {'data': {'transcripts': [
        transcript_payload(title='lecture'),
        {'title': 'no id'},
        transcript_payload(title='other', overview=None, transcript_id='t-2'),
    ]}}
    with respx.mock:
        respx.post(API_URL).mock(return_value=Response(200, json=payload))
        res = await _client().list_jobs()
    assert isinstance(res, Success)
    assert [t.title for t in res.data] == ['lecture', 'other']
    assert res.data[0].has_overview
    assert not res.data[1].has_overview


@pytest.mark.unit
@pytest.mark.asyncio
async def test_list_jobs_http_error_is_failure():
    with respx.mock:
        respx.post(API_URL).mock(return_value=Response(500, json={'message': 'server error'}))
        res = await _client().list_jobs()
    assert isinstance(res, Failure)
    assert isinstance(res.cause, httpx.HTTPStatusError)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_list_jobs_not_yet_available_message_is_kept():
    with respx.mock:
        respx.post(API_URL).mock(return_value=Response(200, json={'errors': [{'message': 'Transcript not yet available'}]}))
        res = await _client().list_jobs()
    assert res.message == 'Transcript not yet available'
