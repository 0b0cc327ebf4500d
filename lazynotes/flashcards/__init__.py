from .cache import FlashcardCache
from .generator import (
	FlashcardAPIError,
	FlashcardGenerator,
	FlashcardGeneratorError,
	FlashcardTimeoutError,
)
from .parser import Flashcard, parse_flashcards
from .service import FlashcardService

__all__ = [
	'Flashcard',
	'FlashcardAPIError',
	'FlashcardCache',
	'FlashcardGenerator',
	'FlashcardGeneratorError',
	'FlashcardService',
	'FlashcardTimeoutError',
	'parse_flashcards',
]
