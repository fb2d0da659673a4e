#!/usr/bin/env python3
"""
Tutor protocol clients.

`send()` yields the tutor's reply as text fragments in arrival order. A reply
that arrives as a single JSON message is yielded once. Every failure surfaces
as a TutorServiceError subclass so the session controller can substitute its
fallback message.
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx

from ..llm import BaseLLMClient, to_provider_messages

logger = logging.getLogger(__name__)


class TutorServiceError(Exception):
    """The tutor could not produce a reply"""


class TutorRequestRejected(TutorServiceError):
    """The service refused the request (4xx)"""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


class TutorUpstreamError(TutorServiceError):
    """Transport failure, timeout, 5xx or an unreadable reply"""


def _mode_value(mode) -> str:
    return getattr(mode, 'value', None) or str(mode or 'B')


def build_payload(messages: List[Dict[str, str]], context=None, mode='B', stream: bool = True) -> Dict[str, Any]:
    """JSON body of a tutor request"""
    payload: Dict[str, Any] = {
        'messages': list(messages),
        'mode': _mode_value(mode),
        'stream': stream,
    }
    if context is not None:
        payload['context'] = context.to_dict() if hasattr(context, 'to_dict') else dict(context)
    return payload


class BaseTutorClient(ABC):
    """Interface consumed by the session controller"""

    @abstractmethod
    def send(self, messages: List[Dict[str, str]], context=None, mode='B') -> AsyncIterator[str]:
        """Async iterator over the reply's text fragments"""
        pass

    async def aclose(self):
        pass


class HttpTutorClient(BaseTutorClient):
    """Talks to the tutor service's chat endpoint over HTTP"""

    def __init__(
        self,
        url: str,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def send(self, messages, context=None, mode='B') -> AsyncIterator[str]:
        payload = build_payload(messages, context, mode)

        try:
            async with self._client.stream('POST', self.url, json=payload) as response:
                if response.status_code >= 400:
                    body = (await response.aread()).decode('utf-8', errors='replace')
                    raise self._status_error(response.status_code, body)

                content_type = response.headers.get('content-type', '')
                if 'application/json' in content_type:
                    yield self._parse_message(await response.aread())
                    return

                async for chunk in response.aiter_text():
                    if chunk:
                        yield chunk
        except httpx.HTTPError as e:
            raise TutorUpstreamError(f"Tutor service unreachable: {e}") from e

    async def aclose(self):
        await self._client.aclose()

    @staticmethod
    def _status_error(status_code: int, body: str) -> TutorServiceError:
        try:
            message = json.loads(body).get('error') or body
        except (ValueError, AttributeError):
            message = body
        message = f"Tutor service returned {status_code}: {message}"
        if 400 <= status_code < 500:
            return TutorRequestRejected(message, status_code)
        return TutorUpstreamError(message)

    @staticmethod
    def _parse_message(raw: bytes) -> str:
        try:
            data = json.loads(raw)
            content = data['message']['content']
        except (ValueError, KeyError, TypeError) as e:
            raise TutorUpstreamError(f"Malformed tutor reply: {e}") from e
        return content or ''


class LocalTutorClient(BaseTutorClient):
    """
    Answers in-process with a configured LLM provider.

    Provider SDKs stream synchronously; each fragment is pulled on a worker
    thread so the event loop (and the session timer) keep running.
    """

    def __init__(self, llm: BaseLLMClient, prompt_policy, max_tokens: int = 600):
        self.llm = llm
        self.prompt_policy = prompt_policy
        self.max_tokens = max_tokens

    async def send(self, messages, context=None, mode='B') -> AsyncIterator[str]:
        done = object()

        try:
            system = self.prompt_policy.build(mode, context)
            fragments = self.llm.stream(system, to_provider_messages(messages), max_tokens=self.max_tokens)
            while True:
                fragment = await asyncio.to_thread(next, fragments, done)
                if fragment is done:
                    break
                yield fragment
        except TutorServiceError:
            raise
        except Exception as e:
            logger.warning("%s request failed: %s", self.llm.provider or 'LLM', e)
            raise TutorUpstreamError(str(e)) from e
