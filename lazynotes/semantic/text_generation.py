"""Chat-completion client for the text generation provider.

The provider speaks the OpenAI chat completions protocol, so the official
`openai` SDK is pointed at its base URL. Only the first choice's message
content is consumed. Calls are never retried here; callers decide.
"""
from __future__ import annotations

import os
import time
from typing import Dict, List, Optional

import openai
from openai import AsyncOpenAI

from lazynotes.utils import get_logger, log_llm_call
from lazynotes.utils.results import Failure, NetworkResult, Success, failure_from_exception

LOG = get_logger()

PERPLEXITY_BASE_URL = os.getenv('PERPLEXITY_BASE_URL', 'https://api.perplexity.ai')
TEXT_GENERATION_TIMEOUT = float(os.getenv('TEXT_GENERATION_TIMEOUT', '60'))


class TextGenerationClient:
    def __init__(self, api_key: Optional[str] = None, base_url: str = PERPLEXITY_BASE_URL, timeout: float = TEXT_GENERATION_TIMEOUT, client: Optional[AsyncOpenAI] = None):
        self.api_key = api_key or os.getenv('PERPLEXITY_API_KEY')
        self.base_url = base_url
        self.timeout = timeout
        self._client = client

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self.api_key, base_url=self.base_url, timeout=self.timeout, max_retries=0)
        return self._client

    async def aclose(self):
        if self._client is not None:
            await self._client.close()

    async def complete(
        self,
        prompt: str,
        model: str,
        max_tokens: int,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        request_id: Optional[str] = None,
        purpose: Optional[str] = None,
    ) -> NetworkResult[str]:
        if self._client is None and not self.api_key:
            return Failure(None, 'PERPLEXITY_API_KEY not set')
        messages: List[Dict[str, str]] = []
        if system_prompt:
            messages.append({'role': 'system', 'content': system_prompt})
        messages.append({'role': 'user', 'content': prompt})
        kwargs = {'model': model, 'messages': messages, 'max_tokens': max_tokens}
        if temperature is not None:
            kwargs['temperature'] = temperature

        start = time.time()
        try:
            resp = await self._get_client().chat.completions.create(**kwargs)
        except openai.APITimeoutError as e:
            LOG.warning('text_generation_timeout', extra={'model': model})
            return Failure(e, f'Request timed out: {e}')
        except openai.APIStatusError as e:
            LOG.warning('text_generation_status_error', extra={'model': model, 'status_code': e.status_code})
            return Failure(e, f'Generation failed with status {e.status_code}: {e.message}')
        except openai.APIError as e:
            LOG.warning('text_generation_api_error', extra={'model': model, 'error': str(e)})
            return Failure(e, f'Generation failed: {e}')
        except Exception as e:
            LOG.exception('text_generation_unknown_error', extra={'model': model})
            return failure_from_exception(e)

        duration_ms = int((time.time() - start) * 1000)
        usage = getattr(resp, 'usage', None)
        log_llm_call(
            request_id,
            model,
            getattr(usage, 'prompt_tokens', 0) or 0,
            getattr(usage, 'completion_tokens', 0) or 0,
            duration_ms,
            purpose=purpose,
        )
        if not resp.choices:
            return Failure(None, 'No choices returned')
        content = resp.choices[0].message.content
        return Success(content or '')
