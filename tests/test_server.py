#!/usr/bin/env python3
"""
Tests for the tutor service endpoints.
"""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from readcoach.config import Settings
from readcoach.db import ParticipantLogStore
from readcoach.llm import BaseLLMClient, LLMResponse
from readcoach.server import create_app
from readcoach.tutoring import PromptPolicy


class FakeLLM(BaseLLMClient):
    """Records prompts and returns canned text"""

    provider = 'fake'
    model_name = 'fake-model'

    def __init__(self, fragments=('Why ', 'that one?'), error=None):
        self.fragments = list(fragments)
        self.error = error
        self.calls = []

    def create(self, system, messages, max_tokens=1000, temperature=0.7):
        self.calls.append((system, messages))
        if self.error:
            raise self.error
        return LLMResponse(content=''.join(self.fragments), model=self.model_name, provider=self.provider)

    def stream(self, system, messages, max_tokens=1000, temperature=0.7):
        self.calls.append((system, messages))
        if self.error:
            raise self.error
        for fragment in self.fragments:
            yield fragment


@pytest.fixture
def store(tmp_path):
    store = ParticipantLogStore(str(tmp_path / 'logs.db'))
    yield store
    store.close()


@pytest.fixture
def llm():
    return FakeLLM()


@pytest.fixture
def client(llm, store):
    app = create_app(llm_client=llm, prompt_policy=PromptPolicy(), store=store, settings=Settings())
    return TestClient(app)


class TestChatEndpoint:
    """Tests for POST /api/chat"""

    def test_missing_messages(self, client):
        response = client.post('/api/chat', json={'mode': 'B'})
        assert response.status_code == 400
        assert response.json() == {'error': 'Messages array is required'}

    def test_messages_not_a_list(self, client):
        response = client.post('/api/chat', json={'messages': 'hello'})
        assert response.status_code == 400
        assert response.json() == {'error': 'Messages array is required'}

    def test_streamed_reply(self, client, llm):
        response = client.post('/api/chat', json={
            'messages': [{'role': 'tutor', 'content': 'Hi!'}, {'role': 'learner', 'content': 'hello'}],
            'mode': 'B',
        })

        assert response.status_code == 200
        assert response.headers['content-type'].startswith('text/plain')
        assert response.text == 'Why that one?'
        system, messages = llm.calls[0]
        assert messages == [
            {'role': 'assistant', 'content': 'Hi!'},
            {'role': 'user', 'content': 'hello'},
        ]
        assert 'AI Tutor' in system

    def test_json_reply(self, client):
        response = client.post('/api/chat', json={'messages': [], 'stream': False})
        assert response.status_code == 200
        assert response.json() == {'message': {'role': 'assistant', 'content': 'Why that one?'}}

    def test_context_selects_instruction(self, client, llm):
        client.post('/api/chat', json={
            'messages': [],
            'mode': 'B',
            'context': {'type': 'failure_reflection_1', 'question_text': 'Q?', 'user_answer': 'Danger'},
        })
        system, _ = llm.calls[0]
        assert 'INCORRECTLY' in system
        assert 'Danger' in system

    def test_bot_role_and_text_field(self, client, llm):
        client.post('/api/chat', json={'messages': [{'role': 'bot', 'text': 'Hello there'}]})
        _, messages = llm.calls[0]
        assert messages == [{'role': 'assistant', 'content': 'Hello there'}]

    def test_provider_failure(self, store):
        llm = FakeLLM(error=RuntimeError("quota"))
        app = create_app(llm_client=llm, prompt_policy=PromptPolicy(), store=store, settings=Settings())
        client = TestClient(app)

        for stream in (True, False):
            response = client.post('/api/chat', json={'messages': [], 'stream': stream})
            assert response.status_code == 500
            assert response.json() == {'error': 'Failed to process chat request'}

    def test_no_provider_configured(self, store):
        with patch('readcoach.server.app.create_llm_client', return_value=None):
            app = create_app(store=store, settings=Settings())
        client = TestClient(app)

        response = client.post('/api/chat', json={'messages': []})
        assert response.status_code == 500


class TestLogEndpoint:
    """Tests for POST /api/log"""

    def test_missing_participant(self, client):
        response = client.post('/api/log', json={'type': 'learn', 'data': {}})
        assert response.status_code == 400
        assert response.json() == {'error': 'Participant ID is required'}

    def test_learn_entry_merges_into_section(self, client, store):
        response = client.post('/api/log', json={
            'participantId': 'P1', 'type': 'learn', 'data': {'score': 3},
        })

        assert response.status_code == 200
        assert response.json() == {'success': True}
        doc = store.get('P1')
        assert doc['learnSession']['score'] == 3
        assert 'timestamp' in doc['learnSession']

    def test_other_types_merge_at_top_level(self, client, store):
        client.post('/api/log', json={'participantId': 'P1', 'type': 'consent', 'data': {'agreed': True}})
        client.post('/api/log', json={'participantId': 'P1', 'type': 'test', 'data': {'score': 4}})

        doc = store.get('P1')
        assert doc['agreed'] is True
        assert doc['testSession']['score'] == 4


class TestHealth:

    def test_health(self, client):
        response = client.get('/health')
        assert response.status_code == 200
        assert response.json()['status'] == 'healthy'
        assert response.json()['model'] == 'fake-model'
