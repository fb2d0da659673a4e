#!/usr/bin/env python3
"""
Tests for the tutor protocol clients.
"""

import json
from unittest.mock import Mock

import httpx
import pytest

from readcoach.integrations import (
    HttpTutorClient,
    LocalTutorClient,
    TutorRequestRejected,
    TutorUpstreamError,
    build_payload,
)
from readcoach.tutoring import ChatContext, ContextType, PromptPolicy, SessionMode


URL = 'http://tutor.test/api/chat'


async def collect(client, messages=None, context=None, mode='B'):
    return [fragment async for fragment in client.send(messages or [], context, mode)]


class TestBuildPayload:
    """Tests for the request body"""

    def test_payload_with_context(self):
        context = ChatContext(type=ContextType.SUCCESS_FEEDBACK, question_text='Q?', correct_answer='Bees')
        payload = build_payload([{'role': 'learner', 'content': 'hi'}], context, SessionMode.A)

        assert payload == {
            'messages': [{'role': 'learner', 'content': 'hi'}],
            'mode': 'A',
            'stream': True,
            'context': {'type': 'success_feedback', 'question_text': 'Q?', 'correct_answer': 'Bees'},
        }

    def test_payload_without_context(self):
        payload = build_payload([], None, 'B')
        assert 'context' not in payload
        assert payload['mode'] == 'B'


class TestHttpTutorClient:
    """Tests for HttpTutorClient against a mock transport"""

    @pytest.mark.asyncio
    async def test_streamed_text_reply(self):
        seen = {}

        def handler(request):
            seen['body'] = json.loads(request.content)
            return httpx.Response(200, text='Why did you pick that?', headers={'content-type': 'text/plain'})

        client = HttpTutorClient(URL, transport=httpx.MockTransport(handler))
        fragments = await collect(client, [{'role': 'learner', 'content': 'hi'}], ChatContext.general())
        await client.aclose()

        assert ''.join(fragments) == 'Why did you pick that?'
        assert seen['body']['context'] == {'type': 'general_chat'}
        assert seen['body']['messages'] == [{'role': 'learner', 'content': 'hi'}]

    @pytest.mark.asyncio
    async def test_json_reply_yields_once(self):
        def handler(request):
            return httpx.Response(200, json={'message': {'role': 'assistant', 'content': 'Nice work!'}})

        client = HttpTutorClient(URL, transport=httpx.MockTransport(handler))
        assert await collect(client) == ['Nice work!']

    @pytest.mark.asyncio
    async def test_malformed_json_is_upstream_error(self):
        def handler(request):
            return httpx.Response(200, content=b'{"nope": 1}', headers={'content-type': 'application/json'})

        client = HttpTutorClient(URL, transport=httpx.MockTransport(handler))
        with pytest.raises(TutorUpstreamError):
            await collect(client)

    @pytest.mark.asyncio
    async def test_400_is_rejected(self):
        def handler(request):
            return httpx.Response(400, json={'error': 'Messages array is required'})

        client = HttpTutorClient(URL, transport=httpx.MockTransport(handler))
        with pytest.raises(TutorRequestRejected) as excinfo:
            await collect(client)

        assert excinfo.value.status_code == 400
        assert 'Messages array is required' in str(excinfo.value)

    @pytest.mark.asyncio
    async def test_500_is_upstream_error(self):
        def handler(request):
            return httpx.Response(500, json={'error': 'Failed to process chat request'})

        client = HttpTutorClient(URL, transport=httpx.MockTransport(handler))
        with pytest.raises(TutorUpstreamError):
            await collect(client)

    @pytest.mark.asyncio
    async def test_transport_error_is_upstream_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = HttpTutorClient(URL, transport=httpx.MockTransport(handler))
        with pytest.raises(TutorUpstreamError):
            await collect(client)


class TestLocalTutorClient:
    """Tests for the in-process client"""

    @pytest.mark.asyncio
    async def test_streams_llm_fragments(self):
        llm = Mock()
        llm.provider = 'fake'
        llm.stream.return_value = iter(['Think ', 'again.'])
        policy = PromptPolicy()
        client = LocalTutorClient(llm, policy)
        context = ChatContext(type=ContextType.FAILURE_REFLECTION_1, question_text='Q?', user_answer='Danger')

        fragments = await collect(client, [{'role': 'tutor', 'content': 'Hi!'}], context, 'B')

        assert fragments == ['Think ', 'again.']
        system, messages = llm.stream.call_args.args
        assert system == policy.build('B', context)
        assert messages == [{'role': 'assistant', 'content': 'Hi!'}]

    @pytest.mark.asyncio
    async def test_provider_error_is_upstream_error(self):
        llm = Mock()
        llm.provider = 'fake'
        llm.stream.side_effect = RuntimeError("rate limited")
        client = LocalTutorClient(llm, PromptPolicy())

        with pytest.raises(TutorUpstreamError):
            await collect(client)

    @pytest.mark.asyncio
    async def test_prompt_failure_is_upstream_error(self):
        llm = Mock()
        llm.provider = 'fake'
        policy = Mock()
        policy.build.side_effect = AttributeError("broken template")
        client = LocalTutorClient(llm, policy)

        with pytest.raises(TutorUpstreamError):
            await collect(client)
        llm.stream.assert_not_called()
