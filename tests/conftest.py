"""Shared fixtures for the readcoach test suite."""

import asyncio

import pytest

from readcoach.content import parse_lesson
from readcoach.integrations import BaseTutorClient, TutorUpstreamError


LESSON_DATA = {
    'title': 'Test Lesson',
    'passage': 'Bees dance to tell their hive mates where food is.',
    'questions': [
        {
            'id': 'q1',
            'category': 'Main idea',
            'question': 'What does the dance communicate?',
            'options': {'A': 'Danger', 'B': 'Food location', 'C': 'Weather', 'D': 'Mating'},
            'correct_option': 'B',
            'explanation': 'The passage says the dance shows where food is.',
        },
        {
            'id': 'q2',
            'category': 'Detail',
            'question': 'Who dances?',
            'options': {'A': 'Bees', 'B': 'Ants', 'C': 'Birds', 'D': 'Fish'},
            'correct_option': 'A',
        },
        {
            'id': 'q3',
            'category': 'Inference',
            'question': 'Why is the dance useful?',
            'options': {'A': 'It scares birds', 'B': 'It warms the hive', 'C': 'It saves search time'},
            'correct_option': 'C',
            'explanation': 'Knowing where food is means less searching.',
        },
    ],
}


class FakeTutorClient(BaseTutorClient):
    """Records every request and streams scripted fragments back"""

    def __init__(self, fragments=None, error=None, gate=None):
        self.calls = []
        self.fragments = list(fragments) if fragments is not None else ['Good', ' thinking!']
        self.error = error
        self.gate = gate            # asyncio.Event awaited after the first fragment
        self.closed = False

    async def send(self, messages, context=None, mode='B'):
        self.calls.append({'messages': list(messages), 'context': context, 'mode': mode})
        for i, fragment in enumerate(self.fragments):
            if i == 1 and self.gate is not None:
                await self.gate.wait()
            yield fragment
            await asyncio.sleep(0)
        if self.error is not None:
            raise self.error

    async def aclose(self):
        self.closed = True

    @property
    def context_types(self):
        return [call['context'].type.value for call in self.calls]


@pytest.fixture
def lesson():
    return parse_lesson(LESSON_DATA)


@pytest.fixture
def tutor():
    return FakeTutorClient()


@pytest.fixture
def failing_tutor():
    return FakeTutorClient(fragments=[], error=TutorUpstreamError("boom"))
