#!/usr/bin/env python3
"""
System prompt templates for the reading tutor, and the policy that picks one.
"""

import json
import logging
from pathlib import Path
from typing import Dict, Optional, Union

from .state import ChatContext, ContextType, SessionMode

logger = logging.getLogger(__name__)


# =============================================================================
# MODE A - Basic helper, no pedagogical scaffolding
# =============================================================================

MODE_A_PROMPT = """You are a helpful assistant.
Answer questions if the user types in a question.
Do not provide unsolicited feedback."""


MODE_A_FAILURE_EXPLANATION_INSTRUCTION = """
INSTRUCTION: The user asked why their answer was wrong.
Question: "{question_text}"
User Answer: "{user_answer}"
Correct Answer: "{correct_answer}"
Explanation: "{explanation}"

Explain directly and briefly why "{correct_answer}" is correct and why "{user_answer}" is not.
Do not ask the user any follow-up questions."""


# =============================================================================
# MODE B - Scaffolded tutor (DEFAULT)
# =============================================================================

MODE_B_PROMPT = """You are a helpful and friendly AI Tutor for a {language} reading comprehension app.
Your goal is to help the student learn.
- Be encouraging and concise.
- If the user asks a general question, answer it helpfully.
- Use **Markdown** formatting (bold, lists, etc.) to make your responses engaging and structured.
- Always reply in {language}."""


FAILURE_REFLECTION_INSTRUCTION = """
CRITICAL INSTRUCTION: The user just answered INCORRECTLY (Attempt 1).
Question: "{question_text}"
User Answer: "{user_answer}"

IGNORE previous conversation history regarding other topics.
Your IMMEDIATE goal is to help them reflect.
DO NOT give the answer or hint which option is correct.
Respond with ONE short Socratic question in {language} about why they chose "{user_answer}" or about a specific detail in the passage."""


FAILURE_EXPLANATION_INSTRUCTION = """
CRITICAL INSTRUCTION: The user failed twice. The correct answer is "{correct_answer}".
Question: "{question_text}"
User Answer: "{user_answer}"
Explanation: "{explanation}"

Tell the user the correct answer now.
Then ask them to explain in their own words WHY "{correct_answer}" is the correct answer."""


SUCCESS_FEEDBACK_INSTRUCTION = """
INSTRUCTION: The user just answered CORRECTLY!
Question: "{question_text}"
Answer: "{correct_answer}"

Give a VERY BRIEF positive reinforcement (one sentence)."""


PASSAGE_SECTION = """

The student is reading this passage:
\"\"\"
{passage}
\"\"\""""


# Used whenever a template cannot be rendered
MINIMAL_DEFAULT_PROMPT = "You are a helpful reading tutor. Answer briefly."


DEFAULT_TEMPLATES: Dict[str, str] = {
    'mode_a': MODE_A_PROMPT,
    'mode_b': MODE_B_PROMPT,
    ContextType.MODE_A_FAILURE_EXPLANATION.value: MODE_A_FAILURE_EXPLANATION_INSTRUCTION,
    ContextType.FAILURE_REFLECTION_1.value: FAILURE_REFLECTION_INSTRUCTION,
    ContextType.FAILURE_EXPLANATION_REQUEST.value: FAILURE_EXPLANATION_INSTRUCTION,
    ContextType.SUCCESS_FEEDBACK.value: SUCCESS_FEEDBACK_INSTRUCTION,
}

# Context instructions each mode honours; anything else gets the base prompt only
MODE_CONTEXTS = {
    SessionMode.A: {ContextType.MODE_A_FAILURE_EXPLANATION},
    SessionMode.B: {
        ContextType.FAILURE_REFLECTION_1,
        ContextType.FAILURE_EXPLANATION_REQUEST,
        ContextType.SUCCESS_FEEDBACK,
    },
}


class PromptPolicy:
    """
    Maps (mode, context) to a system instruction.

    Building is deterministic: the same mode, context, language and passage
    always produce the same string, and the result is never empty.
    """

    def __init__(
        self,
        language: str = 'English',
        passage: str = '',
        templates: Optional[Dict[str, str]] = None,
    ):
        self.language = language or 'English'
        self.passage = passage
        self.templates = dict(DEFAULT_TEMPLATES)
        for key, template in (templates or {}).items():
            if isinstance(template, str):
                self.templates[key] = template
            else:
                logger.warning("Ignoring non-text prompt template %r", key)

    @classmethod
    def from_file(cls, path: Union[str, Path], **kwargs) -> 'PromptPolicy':
        """Load template overrides from a JSON object of name -> template"""
        try:
            with open(path, 'r', encoding='utf-8') as f:
                templates = json.load(f)
            if not isinstance(templates, dict):
                raise ValueError("template file must contain a JSON object")
        except (OSError, ValueError) as e:
            logger.warning("Could not load prompt templates from %s: %s", path, e)
            templates = None
        return cls(templates=templates, **kwargs)

    def build(self, mode, context: Optional[ChatContext] = None) -> str:
        """System instruction for a tutor request"""
        mode = SessionMode.parse(mode)
        base_key = 'mode_a' if mode is SessionMode.A else 'mode_b'

        try:
            prompt = self._render(base_key, context)
            if context is not None and context.type in MODE_CONTEXTS[mode]:
                prompt += self._render(context.type.value, context)
        except (KeyError, IndexError, ValueError, AttributeError, TypeError) as e:
            logger.warning("Prompt template error for mode %s: %s", mode.value, e)
            return MINIMAL_DEFAULT_PROMPT

        if self.passage:
            prompt += PASSAGE_SECTION.format(passage=self.passage)

        return prompt.strip() or MINIMAL_DEFAULT_PROMPT

    def _render(self, key: str, context: Optional[ChatContext]) -> str:
        template = self.templates.get(key)
        if not template:
            raise KeyError(key)
        fields = {
            'language': self.language,
            'question_text': '',
            'user_answer': '',
            'correct_answer': '',
            'explanation': '',
        }
        if context is not None:
            fields.update(
                question_text=context.question_text,
                user_answer=context.user_answer,
                correct_answer=context.correct_answer,
                explanation=context.explanation,
            )
        return template.format(**fields)
