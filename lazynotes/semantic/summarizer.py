from __future__ import annotations

import os
import time
from typing import Optional

from lazynotes.semantic.text_generation import TextGenerationClient
from lazynotes.utils import get_logger, log_summarization
from lazynotes.utils.results import Failure, NetworkResult, Success

LOG = get_logger()

SUMMARY_MODEL = os.getenv('SUMMARY_MODEL', 'sonar')
SUMMARY_MAX_TOKENS = int(os.getenv('SUMMARY_MAX_TOKENS', '500'))
SUMMARY_TEMPERATURE = float(os.getenv('SUMMARY_TEMPERATURE', '0.2'))


class SummarizerError(Exception):
    pass


class Summarizer:
    def __init__(self, client: TextGenerationClient, model: str = SUMMARY_MODEL, max_tokens: int = SUMMARY_MAX_TOKENS, temperature: float = SUMMARY_TEMPERATURE):
        self.client = client
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature

    def _build_prompt(self, transcript: str) -> str:
        return (
            "Please provide a bullet point summary of the following audio transcript.\n"
            "Focus on the main points and key information discussed.\n\n"
            f"Transcript:\n{transcript}"
        )

    async def generate_summary(self, transcript: str, request_id: Optional[str] = None) -> NetworkResult[str]:
        if not transcript or not transcript.strip():
            return Failure(SummarizerError('Empty transcript'), 'Error generating summary: empty transcript')
        start = time.time()
        try:
            result = await self.client.complete(
                self._build_prompt(transcript),
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                request_id=request_id,
                purpose='summary',
            )
        except Exception as e:
            LOG.exception('summarization_failed', extra={'request_id': request_id})
            return Failure(e, f'Error generating summary: {e}')

        if isinstance(result, Failure):
            return Failure(result.cause, f'Failed to generate summary: {result.message}')
        summary = result.data.strip()
        if not summary:
            return Failure(None, 'Failed to generate summary: empty response')
        log_summarization(request_id or '', len(transcript), len(summary.split()), int((time.time() - start) * 1000))
        return Success(summary)
