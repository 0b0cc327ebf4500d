"""Tolerant parser for plain-text flashcard replies.

The model is asked for blocks of the form

    Q: <question>
    A: <answer>
    ---

but nothing guarantees it complies. Parsing is total: blocks without both a
question and an answer line are dropped, never reported as an error.
"""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, field_validator

BLOCK_DELIMITER = '---'
QUESTION_PREFIX = 'q:'
ANSWER_PREFIX = 'a:'
DEFAULT_MAX_CARDS = 5


class Flashcard(BaseModel):
    model_config = ConfigDict(frozen=True)

    question: str
    answer: str

    @field_validator('question', 'answer')
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError('must not be blank')
        return v


def _field(lines: List[str], prefix: str) -> Optional[str]:
    for line in lines:
        if line.lower().startswith(prefix):
            return line[len(prefix):].strip()
    return None


def parse_block(block: str) -> Optional[Flashcard]:
    lines = [line.strip() for line in block.splitlines()]
    question = _field(lines, QUESTION_PREFIX)
    answer = _field(lines, ANSWER_PREFIX)
    if not question or not answer:
        return None
    return Flashcard(question=question, answer=answer)


def parse_flashcards(raw: Optional[str], max_cards: int = DEFAULT_MAX_CARDS) -> List[Flashcard]:
    if not raw or not isinstance(raw, str):
        return []
    cards: List[Flashcard] = []
    for block in raw.split(BLOCK_DELIMITER):
        if not block.strip():
            continue
        card = parse_block(block)
        if card is None:
            continue
        cards.append(card)
        if len(cards) >= max_cards:
            break
    return cards
