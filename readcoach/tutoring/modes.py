#!/usr/bin/env python3
"""
Session policies for the reading tutor.
Each policy decides what a wrong or right answer does to the attempt state and
which tutor context (if any) the session controller should send.
"""

from abc import ABC, abstractmethod
from typing import Optional, Tuple

from ..content import Question
from .state import (
    Attempt,
    ChatContext,
    Completed,
    ContextType,
    ExplanationPending,
    ReflectionPending,
    SessionMode,
)

# Extra instruction passed with a second failure when the question has no
# explanation of its own
DEFAULT_EXPLANATION_HINT = (
    "Review the passage and explain why the user_answer is incorrect and why the "
    "correct_answer is correct, but keep it short and concise so that it's easy to understand."
)

Decision = Tuple[Attempt, Optional[ChatContext]]


class BasePolicy(ABC):
    """Strategy selected once per session"""

    mode: SessionMode

    @abstractmethod
    def on_wrong_first_attempt(self, question: Question, option_key: str) -> Decision:
        """Attempt state and tutor context after a wrong first answer"""
        pass

    @abstractmethod
    def on_wrong_second_attempt(self, question: Question, option_key: str) -> Decision:
        """Attempt state and tutor context after a wrong retry"""
        pass

    @abstractmethod
    def on_correct_context(self, question: Question, option_key: str) -> Optional[ChatContext]:
        """Tutor context to send after a correct answer, if any"""
        pass

    @abstractmethod
    def gates_navigation(self, attempt: Attempt) -> bool:
        """Whether `attempt` currently blocks moving forward"""
        pass

    def explanation_context(self, question: Question, attempt: Attempt) -> Optional[ChatContext]:
        """Context for a learner-requested explanation; None when not offered"""
        return None

    @staticmethod
    def _explanation(question: Question) -> str:
        return question.explanation or DEFAULT_EXPLANATION_HINT


class ModeAPolicy(BasePolicy):
    """
    Mode A - one attempt per question.

    A wrong answer finalizes the question as incorrect straight away; nothing
    is sent to the tutor and nothing gates navigation. The learner may still
    ask for an explanation of a missed question.
    """

    mode = SessionMode.A

    def on_wrong_first_attempt(self, question: Question, option_key: str) -> Decision:
        return Completed(correct=False, selected=option_key), None

    def on_wrong_second_attempt(self, question: Question, option_key: str) -> Decision:
        # No retry exists in this mode; treat like a first failure
        return self.on_wrong_first_attempt(question, option_key)

    def on_correct_context(self, question: Question, option_key: str) -> Optional[ChatContext]:
        return None

    def gates_navigation(self, attempt: Attempt) -> bool:
        return False

    def explanation_context(self, question: Question, attempt: Attempt) -> Optional[ChatContext]:
        if not (attempt.is_completed and not attempt.is_correct and attempt.selected_option):
            return None
        return ChatContext(
            type=ContextType.MODE_A_FAILURE_EXPLANATION,
            question_text=question.text,
            user_answer=question.option_text(attempt.selected_option),
            correct_answer=question.correct_answer,
            explanation=self._explanation(question),
        )


class ModeBPolicy(BasePolicy):
    """
    Mode B (DEFAULT) - two attempts with mandatory tutor exchanges.

    Flow:
    1. Wrong first answer -> tutor asks a reflection question, retry locked
    2. Learner replies -> retry unlocked
    3. Wrong retry -> tutor reveals the answer and asks the learner to explain it
    4. Learner replies -> question completed, navigation unlocked
    """

    mode = SessionMode.B

    def on_wrong_first_attempt(self, question: Question, option_key: str) -> Decision:
        context = ChatContext(
            type=ContextType.FAILURE_REFLECTION_1,
            question_text=question.text,
            user_answer=question.option_text(option_key),
        )
        return ReflectionPending(wrong_answer=option_key), context

    def on_wrong_second_attempt(self, question: Question, option_key: str) -> Decision:
        context = ChatContext(
            type=ContextType.FAILURE_EXPLANATION_REQUEST,
            question_text=question.text,
            user_answer=question.option_text(option_key),
            correct_answer=question.correct_answer,
            explanation=self._explanation(question),
        )
        return ExplanationPending(wrong_answer=option_key), context

    def on_correct_context(self, question: Question, option_key: str) -> Optional[ChatContext]:
        return ChatContext(
            type=ContextType.SUCCESS_FEEDBACK,
            question_text=question.text,
            correct_answer=question.correct_answer,
        )

    def gates_navigation(self, attempt: Attempt) -> bool:
        return attempt.awaiting_reply


POLICIES = {
    SessionMode.A: ModeAPolicy,
    SessionMode.B: ModeBPolicy,
}


def policy_for(mode) -> BasePolicy:
    """Policy instance for a mode value ('A', 'b', SessionMode.B, ...)"""
    return POLICIES[SessionMode.parse(mode)]()
