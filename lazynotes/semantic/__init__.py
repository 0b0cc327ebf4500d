"""
Text generation: the chat-completion client and transcript summaries built on it.
"""
from .text_generation import TextGenerationClient
from .summarizer import Summarizer, SummarizerError

__all__ = [
	'TextGenerationClient',
	'Summarizer', 'SummarizerError',
]
