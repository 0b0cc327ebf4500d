"""Polling state machine for remote transcription jobs.

A transcription job is created fire-and-forget; the provider exposes no
completion callback, so the result is found by listing the caller's
transcripts until one titled after the job reference shows up with usable
content.

States:

    IDLE -> POLLING -> SUCCESS(transcript) | ERROR(message) | TIMEOUT

Transcription and summarization finish at different times. For the first
`summary_patience` attempts only an entry with a summary overview counts as
ready; after that an entry with transcript sentences but no summary is
accepted as well. After `max_attempts` attempts the session times out.

A poller runs at most one session at a time. Subscribers observe transitions
through `states()`; the HTTP layer and the session store use listeners.
"""
from __future__ import annotations

import asyncio
import contextlib
import os
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Iterable, List, Optional

from lazynotes.transcription.fireflies_client import FirefliesClient
from lazynotes.transcription.models import TranscriptResult
from lazynotes.transcription.upload_coordinator import title_for_reference
from lazynotes.utils import get_logger, log_poll_attempt, log_polling_outcome
from lazynotes.utils.results import Failure, failure_from_exception

LOG = get_logger()

POLL_MAX_ATTEMPTS = int(os.getenv('POLL_MAX_ATTEMPTS', '15'))
POLL_INTERVAL_SECONDS = float(os.getenv('POLL_INTERVAL_SECONDS', '45'))
POLL_SUMMARY_PATIENCE = int(os.getenv('POLL_SUMMARY_PATIENCE', '10'))

NOT_YET_AVAILABLE = 'not yet available'


class PollingStatus(str, Enum):
    IDLE = 'idle'
    POLLING = 'polling'
    SUCCESS = 'success'
    ERROR = 'error'
    TIMEOUT = 'timeout'


TERMINAL_STATUSES = (PollingStatus.SUCCESS, PollingStatus.ERROR, PollingStatus.TIMEOUT)


@dataclass(frozen=True)
class PollingState:
    status: PollingStatus
    transcript: Optional[TranscriptResult] = None
    message: Optional[str] = None

    @classmethod
    def idle(cls) -> 'PollingState':
        return cls(PollingStatus.IDLE)

    @classmethod
    def polling(cls) -> 'PollingState':
        return cls(PollingStatus.POLLING)

    @classmethod
    def success(cls, transcript: TranscriptResult) -> 'PollingState':
        return cls(PollingStatus.SUCCESS, transcript=transcript)

    @classmethod
    def error(cls, message: str) -> 'PollingState':
        return cls(PollingStatus.ERROR, message=message)

    @classmethod
    def timeout(cls) -> 'PollingState':
        return cls(PollingStatus.TIMEOUT, message='Transcript was not ready in time')

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def to_dict(self) -> Dict[str, Any]:
        return {
            'status': self.status.value,
            'message': self.message,
            'transcript': self.transcript.model_dump() if self.transcript else None,
        }


def is_not_yet_available(message: Optional[str]) -> bool:
    return bool(message) and NOT_YET_AVAILABLE in message.lower()


def find_transcript(transcripts: Iterable[TranscriptResult], title: str) -> Optional[TranscriptResult]:
    for transcript in transcripts:
        if transcript.title == title:
            return transcript
    return None


# closes open state streams without a new state, e.g. after cancellation
_CLOSED = object()

StateListener = Callable[[str, PollingState], None]


class TranscriptPoller:
    def __init__(
        self,
        client: FirefliesClient,
        max_attempts: int = POLL_MAX_ATTEMPTS,
        interval_seconds: float = POLL_INTERVAL_SECONDS,
        summary_patience: int = POLL_SUMMARY_PATIENCE,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        if max_attempts < 1:
            raise ValueError('max_attempts must be positive')
        self.client = client
        self.max_attempts = max_attempts
        self.interval_seconds = interval_seconds
        self.summary_patience = summary_patience
        self._sleep = sleep
        self._state = PollingState.idle()
        self._job_reference: Optional[str] = None
        self._attempts = 0
        self._task: Optional[asyncio.Task] = None
        self._subscribers: List[asyncio.Queue] = []
        self._listeners: List[StateListener] = []

    @property
    def state(self) -> PollingState:
        return self._state

    @property
    def job_reference(self) -> Optional[str]:
        return self._job_reference

    @property
    def attempts(self) -> int:
        return self._attempts

    @property
    def is_active(self) -> bool:
        return self._task is not None and not self._task.done()

    def add_listener(self, listener: StateListener):
        self._listeners.append(listener)

    def start_polling(self, job_reference: str) -> bool:
        """Start a session for `job_reference`. Returns False while another session is active."""
        if self.is_active:
            LOG.info('polling_already_active', extra={'job_reference': job_reference, 'active_reference': self._job_reference})
            return False
        self._job_reference = job_reference
        self._attempts = 0
        self._set_state(PollingState.polling())
        self._task = asyncio.get_running_loop().create_task(self._run(job_reference))
        return True

    async def states(self) -> AsyncIterator[PollingState]:
        """Yield the current state, then every transition until a terminal state."""
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers.append(queue)
        try:
            current = self._state
            yield current
            if current.is_terminal:
                return
            if current.status != PollingStatus.IDLE and not self.is_active:
                return
            while True:
                item = await queue.get()
                if item is _CLOSED:
                    return
                yield item
                if item.is_terminal:
                    return
        finally:
            self._subscribers.remove(queue)

    async def wait(self) -> PollingState:
        if self._task is not None:
            await asyncio.wait({self._task})
        return self._state

    async def cancel(self) -> bool:
        task = self._task
        if task is None or task.done():
            return False
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        # a task cancelled before its first step never reaches _run's handler
        self._close_streams()
        return True

    def _set_state(self, state: PollingState):
        self._state = state
        for queue in list(self._subscribers):
            queue.put_nowait(state)
        for listener in list(self._listeners):
            try:
                listener(self._job_reference, state)
            except Exception:
                LOG.exception('polling_listener_failed', extra={'job_reference': self._job_reference})

    def _close_streams(self):
        for queue in list(self._subscribers):
            queue.put_nowait(_CLOSED)

    async def _run(self, job_reference: str):
        target_title = title_for_reference(job_reference)
        try:
            for attempt in range(self.max_attempts):
                if attempt > 0:
                    await self._sleep(self.interval_seconds)
                self._attempts = attempt + 1
                outcome = await self._attempt(job_reference, target_title, attempt)
                if outcome is not None:
                    self._finish(job_reference, outcome)
                    return
            self._finish(job_reference, PollingState.timeout())
        except asyncio.CancelledError:
            LOG.info('polling_cancelled', extra={'job_reference': job_reference, 'attempts': self._attempts})
            self._close_streams()
            raise

    async def _attempt(self, job_reference: str, target_title: str, attempt: int) -> Optional[PollingState]:
        start = time.time()
        try:
            result = await self.client.list_jobs()
        except Exception as e:
            LOG.exception('poll_fetch_raised', extra={'job_reference': job_reference})
            result = failure_from_exception(e)

        outcome: Optional[PollingState] = None
        if isinstance(result, Failure):
            if is_not_yet_available(result.message):
                label = 'not_yet_available'
            else:
                label = 'error'
                outcome = PollingState.error(result.message)
        else:
            transcript = find_transcript(result.data, target_title)
            if transcript is None:
                label = 'not_yet_available'
            elif transcript.has_overview:
                label = 'summary_ready'
                outcome = PollingState.success(transcript)
            elif attempt >= self.summary_patience and transcript.has_sentences:
                label = 'transcript_ready'
                outcome = PollingState.success(transcript)
            else:
                label = 'waiting_for_summary'
        log_poll_attempt(job_reference, attempt, label, int((time.time() - start) * 1000))
        return outcome

    def _finish(self, job_reference: str, state: PollingState):
        self._set_state(state)
        log_polling_outcome(job_reference, state.status.value, self._attempts, state.message)
