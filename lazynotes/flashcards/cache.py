import threading
from typing import Dict, List, Optional, Tuple

from lazynotes.flashcards.parser import Flashcard


class FlashcardCache:
    """In-memory flashcards per source document key.

    Entries are never evicted. The lock only guards the dict access and is
    never held while a generation call is in flight.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._entries: Dict[str, Tuple[Flashcard, ...]] = {}

    def get(self, key: str) -> Optional[List[Flashcard]]:
        with self._lock:
            cards = self._entries.get(key)
        return list(cards) if cards is not None else None

    def put(self, key: str, cards: List[Flashcard]):
        with self._lock:
            self._entries[key] = tuple(cards)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
