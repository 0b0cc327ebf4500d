from __future__ import annotations

import os
import time
from typing import List, Optional

import openai

from lazynotes.flashcards.parser import Flashcard, parse_flashcards
from lazynotes.semantic.text_generation import TextGenerationClient
from lazynotes.utils import get_logger
from lazynotes.utils.results import Failure

LOG = get_logger()


class FlashcardGeneratorError(Exception):
    pass


class FlashcardAPIError(FlashcardGeneratorError):
    pass


class FlashcardTimeoutError(FlashcardGeneratorError):
    pass


# Config
FLASHCARD_MODEL = os.getenv('FLASHCARD_MODEL', 'sonar-pro')
FLASHCARD_MAX_TOKENS = int(os.getenv('FLASHCARD_MAX_TOKENS', '400'))
FLASHCARD_SOURCE_MAX_CHARS = int(os.getenv('FLASHCARD_SOURCE_MAX_CHARS', '2000'))
FLASHCARD_MAX_COUNT = int(os.getenv('FLASHCARD_MAX_COUNT', '5'))

SYSTEM_PROMPT = 'You generate concise flashcards for students based on transcripts.'


class FlashcardGenerator:
    def __init__(
        self,
        client: TextGenerationClient,
        model: str = FLASHCARD_MODEL,
        max_tokens: int = FLASHCARD_MAX_TOKENS,
        source_max_chars: int = FLASHCARD_SOURCE_MAX_CHARS,
        max_cards: int = FLASHCARD_MAX_COUNT,
    ):
        self.client = client
        self.model = model
        self.max_tokens = max_tokens
        self.source_max_chars = source_max_chars
        self.max_cards = max_cards

    def _build_prompt(self, source_text: str) -> str:
        return (
            "You are an assistant that generates study flashcards for college students.\n\n"
            f"Given the following lecture transcript, create AT MOST {self.max_cards} short Q/A flashcards.\n\n"
            "Respond ONLY in this exact plain text format, with no extra text, no markdown, no explanations:\n\n"
            "Q: first question here\n"
            "A: first answer here\n"
            "---\n"
            "Q: second question here\n"
            "A: second answer here\n"
            "---\n"
            f"(continue like this for up to {self.max_cards} cards)\n\n"
            "Do NOT include backticks.\n"
            "Do NOT include any JSON or code fences.\n\n"
            f"Transcript:\n{source_text}"
        )

    async def generate(self, source_text: str, request_id: Optional[str] = None) -> List[Flashcard]:
        """Generate at most `max_cards` flashcards from `source_text`.

        Raises FlashcardTimeoutError or FlashcardAPIError when the provider call
        fails. Malformed blocks in the reply are skipped, so a successful call may
        return fewer cards than requested, possibly none.
        """
        clipped = (source_text or '')[:self.source_max_chars]
        if not clipped.strip():
            LOG.info('flashcard_generation_skipped_empty_source', extra={'request_id': request_id})
            return []

        start = time.time()
        result = await self.client.complete(
            self._build_prompt(clipped),
            model=self.model,
            max_tokens=self.max_tokens,
            system_prompt=SYSTEM_PROMPT,
            request_id=request_id,
            purpose='flashcards',
        )
        if isinstance(result, Failure):
            if isinstance(result.cause, openai.APITimeoutError):
                raise FlashcardTimeoutError(result.message)
            raise FlashcardAPIError(result.message)

        cards = parse_flashcards(result.data, max_cards=self.max_cards)
        LOG.info('flashcards_parsed', extra={
            'request_id': request_id,
            'count': len(cards),
            'source_chars': len(clipped),
            'duration_ms': int((time.time() - start) * 1000),
        })
        return cards
