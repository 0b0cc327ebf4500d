"""GraphQL client for the Fireflies transcription API.

Two operations are used: `uploadAudio` to create a transcription job from a
publicly fetchable audio URL, and `transcripts` to list the jobs visible to the
API key. Neither raises; both return a NetworkResult.
"""
from __future__ import annotations

import os
import time
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from lazynotes.transcription.models import CreateJobResponse, TranscriptResult
from lazynotes.utils import get_logger
from lazynotes.utils.results import Failure, NetworkResult, Success, failure_from_exception

LOG = get_logger()

FIREFLIES_API_URL = os.getenv('FIREFLIES_API_URL', 'https://api.fireflies.ai/graphql')
FIREFLIES_TIMEOUT = float(os.getenv('FIREFLIES_TIMEOUT', '30'))
FIREFLIES_SUBMIT_RETRY_ATTEMPTS = int(os.getenv('FIREFLIES_SUBMIT_RETRY_ATTEMPTS', '3'))
FIREFLIES_RETRY_MULTIPLIER = float(os.getenv('FIREFLIES_RETRY_MULTIPLIER', '1'))
FIREFLIES_RETRY_MAX_WAIT = float(os.getenv('FIREFLIES_RETRY_MAX_WAIT', '10'))

API_FAILURE_MESSAGE = 'API indicated failure'

UPLOAD_AUDIO_MUTATION = """
mutation UploadAudio($input: AudioUploadInput) {
  uploadAudio(input: $input) {
    success
    title
    message
  }
}
""".strip()

LIST_TRANSCRIPTS_QUERY = """
query Transcripts {
  transcripts {
    id
    title
    summary {
      overview
      action_items
      keywords
      outline
    }
    sentences {
      index
      speaker_name
      raw_text
      text
      start_time
      end_time
    }
  }
}
""".strip()


class FirefliesError(Exception):
    pass


class FirefliesAPIError(FirefliesError):
    """The API answered but reported errors in the GraphQL payload."""


class FirefliesClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: str = FIREFLIES_API_URL,
        timeout: float = FIREFLIES_TIMEOUT,
        http_client: Optional[httpx.AsyncClient] = None,
        submit_retry_attempts: int = FIREFLIES_SUBMIT_RETRY_ATTEMPTS,
        retry_multiplier: float = FIREFLIES_RETRY_MULTIPLIER,
    ):
        self.api_key = api_key or os.getenv('FIREFLIES_API_KEY')
        if not self.api_key:
            LOG.warning('FIREFLIES_API_KEY not set; transcription requests will be rejected')
        self.api_url = api_url
        self.submit_retry_attempts = max(1, submit_retry_attempts)
        self.retry_multiplier = retry_multiplier
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self):
        if self._owns_client:
            await self._client.aclose()

    def _headers(self) -> Dict[str, str]:
        return {
            'Content-Type': 'application/json',
            'Authorization': f'Bearer {self.api_key}',
        }

    async def _execute(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        body: Dict[str, Any] = {'query': query}
        if variables:
            body['variables'] = variables
        resp = await self._client.post(self.api_url, json=body, headers=self._headers())
        try:
            payload = resp.json()
        except ValueError:
            resp.raise_for_status()
            raise FirefliesError(f'Non-JSON response (status {resp.status_code})')
        errors = payload.get('errors') if isinstance(payload, dict) else None
        if errors:
            messages = [e.get('message') for e in errors if isinstance(e, dict) and e.get('message')]
            raise FirefliesAPIError('; '.join(messages) if messages else API_FAILURE_MESSAGE)
        resp.raise_for_status()
        return payload.get('data') or {}

    async def create_job(self, audio_url: str, title: str, client_reference_id: str) -> NetworkResult[CreateJobResponse]:
        variables = {
            'input': {
                'url': audio_url,
                'title': title,
                'client_reference_id': client_reference_id,
            }
        }
        start = time.time()
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.submit_retry_attempts),
                wait=wait_exponential(multiplier=self.retry_multiplier, max=FIREFLIES_RETRY_MAX_WAIT),
                retry=retry_if_exception_type(httpx.TransportError),
                reraise=True,
            ):
                with attempt:
                    data = await self._execute(UPLOAD_AUDIO_MUTATION, variables)
        except FirefliesAPIError as e:
            LOG.warning('fireflies_create_job_rejected', extra={'client_reference_id': client_reference_id, 'error': str(e)})
            return Failure(e, str(e))
        except Exception as e:
            LOG.exception('fireflies_create_job_failed', extra={'client_reference_id': client_reference_id})
            return failure_from_exception(e)

        upload = data.get('uploadAudio')
        if not isinstance(upload, dict):
            return Failure(None, API_FAILURE_MESSAGE)
        try:
            result = CreateJobResponse.model_validate(upload)
        except ValidationError as e:
            LOG.warning('fireflies_create_job_invalid_response', extra={'error': str(e)})
            return Failure(e, API_FAILURE_MESSAGE)
        LOG.info('fireflies_create_job', extra={'client_reference_id': client_reference_id, 'success': result.success, 'duration_ms': int((time.time() - start) * 1000)})
        return Success(result)

    async def list_jobs(self) -> NetworkResult[List[TranscriptResult]]:
        try:
            data = await self._execute(LIST_TRANSCRIPTS_QUERY)
        except FirefliesAPIError as e:
            LOG.warning('fireflies_list_jobs_rejected', extra={'error': str(e)})
            return Failure(e, str(e))
        except Exception as e:
            LOG.exception('fireflies_list_jobs_failed')
            return failure_from_exception(e)

        transcripts: List[TranscriptResult] = []
        for entry in data.get('transcripts') or []:
            try:
                transcripts.append(TranscriptResult.model_validate(entry))
            except ValidationError as e:
                # a half-written entry must not hide the others
                LOG.warning('fireflies_transcript_skipped', extra={'error': str(e)})
        return Success(transcripts)
