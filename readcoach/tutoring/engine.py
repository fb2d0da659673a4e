#!/usr/bin/env python3
"""
SessionController - the state machine behind one reading session.
Owns the cursor, per-question attempt state, answer history and chat log,
decides when navigation is allowed, and talks to the tutor service.
"""

import logging
import time
from typing import Callable, Dict, List, Optional, TYPE_CHECKING

from ..content import Lesson, Question
from ..integrations.tutor_client import TutorServiceError
from .modes import policy_for
from .state import (
    Attempt,
    ChatContext,
    ChatLog,
    ChatMessage,
    ChatRole,
    Completed,
    ExplanationPending,
    HistoryStore,
    QuestionView,
    ReflectionPending,
    Retrying,
    SessionCursor,
    SessionMode,
    SessionResponse,
    TutorRequest,
    Unanswered,
)

if TYPE_CHECKING:
    from ..integrations.log_sink import LogSink
    from ..integrations.tutor_client import BaseTutorClient

logger = logging.getLogger(__name__)

INTRO_MESSAGE = "Hi! I'm here to help you reflect on your learning. You can ask me questions anytime!"
FALLBACK_MESSAGE = "Sorry, I'm having trouble connecting right now."

# Notices shown for rejected actions
WAIT_NOTICE = "Please wait for the tutor to finish responding."
REPLY_FIRST_NOTICE = "Please answer the tutor's question first!"
FINISHED_NOTICE = "The session has ended."
ANSWERED_NOTICE = "This question has already been answered."
REVIEW_NOTICE = "You are reviewing a completed question."
ANSWER_FIRST_NOTICE = "Answer the question before moving on."
FIRST_QUESTION_NOTICE = "You are already at the first question."
EMPTY_REPLY_NOTICE = "Type a message first."
EXPLAIN_MODE_NOTICE = "Explanations on request are only offered in mode A."
EXPLAIN_MISSED_NOTICE = "Explanations are available for missed questions only."


class SessionController:
    """Drives a single-learner session over one lesson"""

    def __init__(
        self,
        lesson: Lesson,
        client: 'BaseTutorClient',
        mode='B',
        log_sink: Optional['LogSink'] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.lesson = lesson
        self.client = client
        self.policy = policy_for(mode)
        self.mode = self.policy.mode
        self.log_sink = log_sink
        self._clock = clock

        self.history = HistoryStore(len(lesson))
        self.cursor = SessionCursor()
        self.chat = ChatLog()
        self.chat.add(ChatRole.TUTOR, INTRO_MESSAGE)

        # Every tutor exchange issued, in order
        self.requests: List[TutorRequest] = []

        self.loading = False
        self.finished = False
        self.finish_reason: Optional[str] = None

        # Called with the in-progress message after every fragment
        self.on_fragment: Optional[Callable[[ChatMessage], None]] = None

        self.started_at = self._clock()
        self.finished_at: Optional[float] = None

    # =========================================================================
    # Read-only views
    # =========================================================================

    @property
    def current_index(self) -> int:
        return self.cursor.current_index

    @property
    def current_question(self) -> Question:
        return self.lesson[self.cursor.current_index]

    @property
    def current_attempt(self) -> Attempt:
        return self.history.attempt(self.cursor.current_index)

    @property
    def is_last_question(self) -> bool:
        return self.cursor.current_index == len(self.lesson) - 1

    @property
    def reflection_required(self) -> bool:
        return self.policy.gates_navigation(self.current_attempt)

    def elapsed(self) -> float:
        end = self.finished_at if self.finished_at is not None else self._clock()
        return end - self.started_at

    def question_view(self) -> QuestionView:
        index = self.cursor.current_index
        attempt = self.current_attempt
        gated = self.policy.gates_navigation(attempt)
        can_proceed = self.cursor.is_review(index) or (
            (attempt.is_answered or attempt.is_completed) and not gated
        )
        return QuestionView(
            index=index,
            total=len(self.lesson),
            attempt=attempt,
            review=self.cursor.is_review(index),
            can_proceed=can_proceed and not self.loading and not self.finished,
            can_go_back=index > 0 and not self.loading and not self.finished,
            reflection_required=gated,
            is_last=self.is_last_question,
            record=self.history.get(index),
        )

    def summary(self) -> Dict:
        """Session outcome for display and the participant log"""
        return {
            'mode': self.mode.value,
            'finishReason': self.finish_reason,
            'score': self.history.score(),
            'total': len(self.lesson),
            'completed': self.history.completed_count(),
            'maxIndexReached': self.cursor.max_index_reached,
            'elapsedSeconds': round(self.elapsed(), 1),
            'tutorRequests': len(self.requests),
            'questions': {
                self.lesson[record.index].id: record.to_dict()
                for record in self.history.records()
            },
            'chat': [m.to_wire() for m in self.chat if m.content],
        }

    # =========================================================================
    # Learner actions
    # =========================================================================

    async def submit_answer(self, option_key: str) -> SessionResponse:
        """Evaluate an option for the question in view"""
        if self.finished:
            return SessionResponse.rejected(FINISHED_NOTICE)
        if self.loading:
            return SessionResponse.rejected(WAIT_NOTICE)

        index = self.cursor.current_index
        question = self.current_question
        attempt = self.current_attempt

        if attempt.awaiting_reply:
            return SessionResponse.rejected(REPLY_FIRST_NOTICE)
        if self.cursor.is_review(index):
            return SessionResponse.rejected(REVIEW_NOTICE)
        if attempt.is_answered:
            return SessionResponse.rejected(ANSWERED_NOTICE)

        key = (option_key or '').strip().upper()
        if key not in question.options:
            valid = ', '.join(question.option_keys)
            return SessionResponse.rejected(f"Choose one of: {valid}")

        logger.debug("Q%d answer %s in phase %s", index + 1, key, attempt.phase.value)

        if question.is_correct(key):
            self._write(index, Completed(correct=True, selected=key))
            context = self.policy.on_correct_context(question, key)
            if context is None:
                return SessionResponse(finished=self.finished)
            # Context-tagged requests carry no prior chat
            return await self._exchange([], context)

        if isinstance(attempt, Unanswered):
            new_attempt, context = self.policy.on_wrong_first_attempt(question, key)
        elif isinstance(attempt, Retrying):
            new_attempt, context = self.policy.on_wrong_second_attempt(question, key)
        else:
            logger.warning("Q%d: unexpected phase %s for a wrong answer", index + 1, attempt.phase.value)
            return SessionResponse.rejected(ANSWERED_NOTICE)

        self._write(index, new_attempt)
        if context is None:
            return SessionResponse(finished=self.finished)
        return await self._exchange([], context)

    async def receive_user_reply(self, text: str) -> SessionResponse:
        """Record a learner chat message and forward the conversation to the tutor"""
        text = (text or '').strip()
        if not text:
            return SessionResponse.rejected(EMPTY_REPLY_NOTICE)
        if self.finished:
            return SessionResponse.rejected(FINISHED_NOTICE)
        if self.loading:
            return SessionResponse.rejected(WAIT_NOTICE)

        index = self.cursor.current_index
        self.chat.add(ChatRole.LEARNER, text, question_index=index)

        attempt = self.current_attempt
        if isinstance(attempt, ReflectionPending):
            self._write(index, Retrying(wrong_answer=attempt.wrong_answer))
        elif isinstance(attempt, ExplanationPending):
            self._write(index, Completed(correct=False, selected=attempt.wrong_answer))

        return await self._exchange(self.chat.to_wire(), ChatContext.general())

    async def request_explanation(self) -> SessionResponse:
        """Ask the tutor to explain a missed question (mode A)"""
        if self.finished:
            return SessionResponse.rejected(FINISHED_NOTICE)
        if self.loading:
            return SessionResponse.rejected(WAIT_NOTICE)

        if self.mode is not SessionMode.A:
            return SessionResponse.rejected(EXPLAIN_MODE_NOTICE)

        context = self.policy.explanation_context(self.current_question, self.current_attempt)
        if context is None:
            return SessionResponse.rejected(EXPLAIN_MISSED_NOTICE)

        return await self._exchange([], context)

    def request_next(self) -> SessionResponse:
        """Move forward; on the last question this finishes the session"""
        if self.finished:
            return SessionResponse.rejected(FINISHED_NOTICE)
        if self.loading:
            return SessionResponse.rejected(WAIT_NOTICE)

        index = self.cursor.current_index
        attempt = self.current_attempt

        if self.policy.gates_navigation(attempt):
            return SessionResponse.rejected(REPLY_FIRST_NOTICE)

        if not self.cursor.is_review(index):
            if not (attempt.is_answered or attempt.is_completed):
                return SessionResponse.rejected(ANSWER_FIRST_NOTICE)
            self.cursor.advance_frontier(index)

        if self.is_last_question:
            self._finish('completed')
            return SessionResponse(finished=True)

        self.cursor.current_index = index + 1
        return SessionResponse()

    def request_back(self) -> SessionResponse:
        if self.finished:
            return SessionResponse.rejected(FINISHED_NOTICE)
        if self.loading:
            return SessionResponse.rejected(WAIT_NOTICE)
        if self.cursor.current_index == 0:
            return SessionResponse.rejected(FIRST_QUESTION_NOTICE)

        self.cursor.current_index -= 1
        return SessionResponse()

    def end(self, reason: str = 'quit') -> SessionResponse:
        """Learner left before finishing; answers so far are kept as they are"""
        self._finish(reason)
        return SessionResponse(finished=True)

    def expire(self) -> SessionResponse:
        """
        Session clock reached zero.

        Finalizes the unfinished frontier question as a timed-out incorrect
        answer, if the learner has it in view or has already answered it, and
        ends the session, ignoring any reply the tutor is still owed.
        Does not wait for (or cancel) an in-flight tutor reply.
        """
        if self.finished:
            return SessionResponse(finished=True)

        index = self.cursor.max_index_reached
        if index < len(self.lesson):
            attempt = self.history.attempt(index)
            seen = index == self.cursor.current_index or not isinstance(attempt, Unanswered)
            if seen and not attempt.is_completed:
                logger.info("Time up on Q%d (%s)", index + 1, attempt.phase.value)
                self._write(index, Completed(
                    correct=False,
                    selected=attempt.selected_option,
                    timed_out=True,
                ))

        self._finish('timeout')
        return SessionResponse(finished=True, notice="Time is up!")

    # =========================================================================
    # Internals
    # =========================================================================

    def _write(self, index: int, attempt: Attempt):
        record = self.history.write(index, attempt)
        if attempt.is_completed:
            self.cursor.advance_frontier(index)
            self._log('learn', {
                'mode': self.mode.value,
                'questions': {self.lesson[index].id: record.to_dict()},
            })

    def _finish(self, reason: str):
        if self.finished:
            return
        self.finished = True
        self.finish_reason = reason
        self.finished_at = self._clock()
        logger.info("Session finished (%s): %d/%d", reason, self.history.score(), len(self.lesson))
        self._log('learn', self.summary())

    def _log(self, log_type: str, data: Dict):
        if self.log_sink is not None:
            self.log_sink.write(log_type, data)

    async def _exchange(self, messages: List[Dict[str, str]], context: ChatContext) -> SessionResponse:
        """One tutor round trip streamed into a single in-progress chat message"""
        index = self.cursor.current_index
        request = TutorRequest(messages=messages, context=context, mode=self.mode, question_index=index)
        self.requests.append(request)
        logger.debug("Tutor request %s (%d messages)", context.type.value, len(messages))

        self.loading = True
        message = self.chat.open_stream(question_index=index, context_type=context.type)
        late = False
        failed = False

        try:
            async for fragment in self.client.send(messages, context, self.mode):
                if self.finished:
                    # Session ended mid-reply; drain without applying
                    late = True
                    continue
                self.chat.append_fragment(fragment)
                if self.on_fragment is not None:
                    self.on_fragment(message)
        except TutorServiceError as e:
            logger.warning("Tutor request failed (%s): %s", context.type.value, e)
            failed = True
        finally:
            self.chat.close_stream(late=late)
            self.loading = False

        if failed or not (message.content or late):
            if not message.content:
                message.content = FALLBACK_MESSAGE
            else:
                message = self.chat.add(ChatRole.TUTOR, FALLBACK_MESSAGE, index, context.type)
            if self.on_fragment is not None:
                self.on_fragment(message)

        return SessionResponse(reply=message, finished=self.finished)
