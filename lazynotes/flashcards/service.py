import asyncio
import time
from typing import Dict, List, Optional

from lazynotes.flashcards.cache import FlashcardCache
from lazynotes.flashcards.generator import FlashcardGenerator, FlashcardGeneratorError
from lazynotes.flashcards.parser import Flashcard
from lazynotes.utils import get_logger, log_flashcard_generation
from lazynotes.utils.results import Failure, NetworkResult, Success, failure_from_exception

LOG = get_logger()


class FlashcardService:
    """Cache-first flashcard lookup keyed by source document.

    Concurrent requests for a key that is not cached yet share one generation
    call; its result is cached only when it succeeds.
    """

    def __init__(self, generator: FlashcardGenerator, cache: Optional[FlashcardCache] = None):
        self.generator = generator
        self.cache = cache if cache is not None else FlashcardCache()
        self._in_flight: Dict[str, asyncio.Task] = {}

    async def get_flashcards(self, key: str, source_text: str, request_id: Optional[str] = None) -> NetworkResult[List[Flashcard]]:
        start = time.time()
        cached = self.cache.get(key)
        if cached is not None:
            log_flashcard_generation(key, len(cached), int((time.time() - start) * 1000), cache_hit=True)
            return Success(cached)

        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._generate(key, source_text, request_id, start))
            self._in_flight[key] = task
            task.add_done_callback(lambda done: self._forget(key, done))
        else:
            LOG.info('flashcard_generation_joined', extra={'source_key': key, 'request_id': request_id})
        # a cancelled caller leaves the shared call running for the others
        return await asyncio.shield(task)

    def _forget(self, key: str, task: asyncio.Task):
        if self._in_flight.get(key) is task:
            del self._in_flight[key]

    async def _generate(self, key: str, source_text: str, request_id: Optional[str], start: float) -> NetworkResult[List[Flashcard]]:
        try:
            cards = await self.generator.generate(source_text, request_id=request_id)
        except FlashcardGeneratorError as e:
            LOG.warning('flashcard_generation_failed', extra={'source_key': key, 'error': str(e)})
            return Failure(e, str(e))
        except Exception as e:
            LOG.exception('flashcard_generation_error', extra={'source_key': key})
            return failure_from_exception(e)

        self.cache.put(key, cards)
        log_flashcard_generation(key, len(cards), int((time.time() - start) * 1000))
        return Success(cards)
