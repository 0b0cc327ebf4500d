"""Records exchanged with the transcription provider."""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

UNTITLED_NOTE = 'Untitled Note'


class TranscriptSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    overview: Optional[str] = None
    action_items: Optional[str] = None
    keywords: Optional[List[str]] = None
    outline: Optional[str] = None

    @field_validator('action_items', 'outline', mode='before')
    @classmethod
    def join_lines(cls, v):
        # the provider returns either a block of text or a list of lines
        if isinstance(v, list):
            return '\n'.join(str(item) for item in v if item)
        return v


class TranscriptSentence(BaseModel):
    model_config = ConfigDict(frozen=True)

    index: Optional[int] = None
    speaker_name: Optional[str] = None
    raw_text: Optional[str] = None
    text: Optional[str] = None
    start_time: Optional[float] = None
    end_time: Optional[float] = None


class TranscriptResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: Optional[str] = None
    summary: Optional[TranscriptSummary] = None
    sentences: List[TranscriptSentence] = Field(default_factory=list)

    @field_validator('sentences', mode='before')
    @classmethod
    def none_to_empty(cls, v):
        return v or []

    @property
    def overview(self) -> Optional[str]:
        if self.summary is None:
            return None
        return self.summary.overview

    @property
    def has_overview(self) -> bool:
        return self.overview is not None

    @property
    def has_sentences(self) -> bool:
        return any(s.raw_text or s.text for s in self.sentences)

    def transcript_text(self) -> str:
        return ' '.join(s.raw_text or s.text for s in self.sentences if s.raw_text or s.text)

    def display_title(self) -> str:
        if self.title and self.title.strip():
            return self.title.strip()
        return UNTITLED_NOTE


class CreateJobResponse(BaseModel):
    success: bool
    title: Optional[str] = None
    message: Optional[str] = None
