"""Turns a local audio file into a job reference: upload, then submit the job."""
from __future__ import annotations

import asyncio
import pathlib
import time
from typing import Optional

from lazynotes.storage import StorageService
from lazynotes.transcription.fireflies_client import API_FAILURE_MESSAGE, FirefliesClient
from lazynotes.utils import get_logger, log_transcription_submit
from lazynotes.utils.results import Failure, NetworkResult, Success, failure_from_exception

LOG = get_logger()

UPLOAD_FAILED_MESSAGE = 'UploadFailed'


class UploadFailed(Exception):
    pass


def job_reference_for(local_file: str) -> str:
    return pathlib.Path(local_file).name


def title_for_reference(job_reference: str) -> str:
    """The title the provider shows for a job: the reference without its extension."""
    return pathlib.PurePath(job_reference).stem


class UploadCoordinator:
    def __init__(self, storage: StorageService, client: FirefliesClient):
        self.storage = storage
        self.client = client

    async def submit(self, local_file: str, title: Optional[str] = None) -> NetworkResult[str]:
        reference_id = job_reference_for(local_file)
        # polling matches on the reference stem, so the provider always gets it as the job title
        job_title = title_for_reference(reference_id)
        start = time.time()
        try:
            audio_url = await asyncio.to_thread(self.storage.upload_audio_file, local_file)
            if not audio_url:
                log_transcription_submit(reference_id, job_title, False, int((time.time() - start) * 1000), UPLOAD_FAILED_MESSAGE)
                return Failure(UploadFailed(local_file), UPLOAD_FAILED_MESSAGE)

            result = await self.client.create_job(audio_url, job_title, reference_id)
            if isinstance(result, Failure):
                outcome = Failure(result.cause, result.message or API_FAILURE_MESSAGE)
            elif result.data.success:
                outcome = Success(reference_id)
            else:
                outcome = Failure(None, result.data.message or API_FAILURE_MESSAGE)
        except Exception as e:
            LOG.exception('transcription_submit_failed', extra={'job_reference': reference_id})
            outcome = failure_from_exception(e)

        duration_ms = int((time.time() - start) * 1000)
        log_transcription_submit(reference_id, job_title, isinstance(outcome, Success), duration_ms, None if isinstance(outcome, Success) else outcome.message)
        return outcome
