#!/usr/bin/env python3
"""
Tests for system prompt selection.
"""

import json

from readcoach.tutoring import ChatContext, ContextType, PromptPolicy, SessionMode
from readcoach.tutoring.prompts import MINIMAL_DEFAULT_PROMPT


REFLECTION = ChatContext(
    type=ContextType.FAILURE_REFLECTION_1,
    question_text='What does the dance communicate?',
    user_answer='Danger',
)

EXPLANATION = ChatContext(
    type=ContextType.FAILURE_EXPLANATION_REQUEST,
    question_text='What does the dance communicate?',
    user_answer='Weather',
    correct_answer='Food location',
    explanation='The dance points to food.',
)


class TestPromptPolicy:
    """Tests for PromptPolicy.build"""

    def test_deterministic(self):
        policy = PromptPolicy()
        assert policy.build('B', REFLECTION) == policy.build(SessionMode.B, REFLECTION)

    def test_mode_a_base_prompt(self):
        prompt = PromptPolicy().build('A')
        assert 'helpful assistant' in prompt
        assert 'Tutor' not in prompt

    def test_mode_a_ignores_mode_b_contexts(self):
        policy = PromptPolicy()
        assert policy.build('A', REFLECTION) == policy.build('A')

    def test_mode_a_failure_explanation_is_direct(self):
        context = ChatContext(
            type=ContextType.MODE_A_FAILURE_EXPLANATION,
            question_text='Q?',
            user_answer='Danger',
            correct_answer='Food location',
            explanation='Because.',
        )
        prompt = PromptPolicy().build('A', context)
        assert 'Explain directly' in prompt
        assert 'Food location' in prompt

    def test_reflection_ends_with_socratic_question_in_language(self):
        prompt = PromptPolicy(language='Spanish').build('B', REFLECTION)
        last_line = prompt.strip().splitlines()[-1]
        assert 'Socratic question in Spanish' in last_line
        assert 'Danger' in prompt
        assert 'DO NOT give the answer' in prompt

    def test_reflection_never_carries_the_answer(self):
        context = ChatContext(
            type=ContextType.FAILURE_REFLECTION_1,
            question_text='Q?',
            user_answer='Danger',
            correct_answer='Food location',
        )
        assert 'Food location' not in PromptPolicy().build('B', context)

    def test_explanation_request_asks_why(self):
        prompt = PromptPolicy().build('B', EXPLANATION)
        assert 'WHY "Food location" is the correct answer' in prompt
        assert 'The dance points to food.' in prompt

    def test_success_feedback_is_brief(self):
        context = ChatContext(type=ContextType.SUCCESS_FEEDBACK, question_text='Q?', correct_answer='Bees')
        assert 'VERY BRIEF' in PromptPolicy().build('B', context)

    def test_general_chat_gets_base_prompt(self):
        policy = PromptPolicy()
        assert policy.build('B', ChatContext.general()) == policy.build('B')

    def test_passage_included(self):
        prompt = PromptPolicy(passage='Bees dance {often}.').build('B')
        assert 'Bees dance {often}.' in prompt

    def test_broken_template_falls_back(self):
        policy = PromptPolicy(templates={'mode_b': 'Tutor for {unknown_field}'})
        assert policy.build('B') == MINIMAL_DEFAULT_PROMPT

    def test_missing_template_falls_back(self):
        policy = PromptPolicy(templates={'mode_a': ''})
        assert policy.build('A') == MINIMAL_DEFAULT_PROMPT

    def test_attribute_placeholder_falls_back(self):
        policy = PromptPolicy(templates={'mode_b': 'Tutor in {language.nope}'})
        assert policy.build('B') == MINIMAL_DEFAULT_PROMPT

    def test_non_text_override_ignored(self):
        policy = PromptPolicy(templates={'mode_b': 42, 'mode_a': ['x']})
        assert policy.build('B') == PromptPolicy().build('B')
        assert policy.build('A') == PromptPolicy().build('A')

    def test_non_text_override_from_file(self, tmp_path):
        path = tmp_path / 'prompts.json'
        path.write_text(json.dumps({'mode_b': {'nested': True}}))
        assert PromptPolicy.from_file(path).build('B') == PromptPolicy().build('B')

    def test_from_file(self, tmp_path):
        path = tmp_path / 'prompts.json'
        path.write_text(json.dumps({'mode_a': 'Custom helper in {language}.'}))

        policy = PromptPolicy.from_file(path, language='French')

        assert policy.build('A') == 'Custom helper in French.'

    def test_from_unreadable_file_uses_builtins(self, tmp_path):
        policy = PromptPolicy.from_file(tmp_path / 'missing.json')
        assert policy.build('B') == PromptPolicy().build('B')
