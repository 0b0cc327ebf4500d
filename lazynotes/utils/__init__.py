"""Utility subpackage: logging, result type and polling session storage"""

from .logger import (
	get_logger,
	log_request,
	log_error,
	log_llm_call,
	set_request_context,
	get_request_context,
	log_transcription_submit,
	log_poll_attempt,
	log_polling_outcome,
	log_flashcard_generation,
	log_summarization,
)
from .results import Success, Failure, NetworkResult, failure_from_exception
from .session_store import PollingSessionStore

__all__ = [
	'get_logger',
	'log_request',
	'log_error',
	'log_llm_call',
	'set_request_context',
	'get_request_context',
	'log_transcription_submit',
	'log_poll_attempt',
	'log_polling_outcome',
	'log_flashcard_generation',
	'log_summarization',
	'Success',
	'Failure',
	'NetworkResult',
	'failure_from_exception',
	'PollingSessionStore',
]
