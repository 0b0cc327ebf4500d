"""
Audio transcription: job submission to the transcription provider and the
polling state machine that waits for the finished transcript.
"""
from .models import TranscriptResult, TranscriptSummary, TranscriptSentence, CreateJobResponse, UNTITLED_NOTE
from .fireflies_client import FirefliesClient, FirefliesError, FirefliesAPIError
from .upload_coordinator import UploadCoordinator, UploadFailed, job_reference_for, title_for_reference
from .polling import TranscriptPoller, PollingState, PollingStatus, is_not_yet_available, find_transcript

__all__ = [
	'TranscriptResult', 'TranscriptSummary', 'TranscriptSentence', 'CreateJobResponse', 'UNTITLED_NOTE',
	'FirefliesClient', 'FirefliesError', 'FirefliesAPIError',
	'UploadCoordinator', 'UploadFailed', 'job_reference_for', 'title_for_reference',
	'TranscriptPoller', 'PollingState', 'PollingStatus', 'is_not_yet_available', 'find_transcript',
]
