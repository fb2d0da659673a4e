#!/usr/bin/env python3
"""
State management for the reading tutor.
Per-question attempt state, answer history, navigation cursor and the chat log.

Attempt state is a small tagged union: each phase of the retry/reflection
lifecycle is its own frozen dataclass, so a combination such as "waiting for an
explanation but marked correct" cannot be constructed.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Dict, Iterator, List, Optional


class SessionMode(Enum):
    """Session policies"""
    A = 'A'    # Single attempt, no mandatory reflection
    B = 'B'    # Two attempts with reflection / explanation exchanges (DEFAULT)

    @classmethod
    def parse(cls, value) -> 'SessionMode':
        """Parse 'A'/'B' (any case); anything else falls back to B"""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return cls.B


class AttemptPhase(Enum):
    """Phases of one question's attempt lifecycle"""
    FIRST_TRY = 'first_try'
    REFLECTION_PENDING = 'reflection_pending'
    RETRYING = 'retrying'
    EXPLANATION_PENDING = 'explanation_pending'
    COMPLETED = 'completed'


# Legal forward transitions. Every non-terminal phase may also jump to
# COMPLETED when the session clock runs out.
ALLOWED_TRANSITIONS = {
    AttemptPhase.FIRST_TRY: {AttemptPhase.REFLECTION_PENDING, AttemptPhase.COMPLETED},
    AttemptPhase.REFLECTION_PENDING: {AttemptPhase.RETRYING, AttemptPhase.COMPLETED},
    AttemptPhase.RETRYING: {AttemptPhase.EXPLANATION_PENDING, AttemptPhase.COMPLETED},
    AttemptPhase.EXPLANATION_PENDING: {AttemptPhase.COMPLETED},
    AttemptPhase.COMPLETED: set(),
}


# =============================================================================
# Attempt states
# =============================================================================

@dataclass(frozen=True)
class Attempt:
    """Base for attempt states; subclasses fix `phase`"""
    phase: ClassVar[AttemptPhase]

    @property
    def is_answered(self) -> bool:
        return False

    @property
    def is_correct(self) -> bool:
        return False

    @property
    def selected_option(self) -> Optional[str]:
        return None

    @property
    def awaiting_reply(self) -> bool:
        """True while the learner owes the tutor a chat reply"""
        return False

    @property
    def is_completed(self) -> bool:
        return self.phase is AttemptPhase.COMPLETED


@dataclass(frozen=True)
class Unanswered(Attempt):
    phase: ClassVar[AttemptPhase] = AttemptPhase.FIRST_TRY


@dataclass(frozen=True)
class ReflectionPending(Attempt):
    """First answer was wrong; a reflection reply unlocks the retry"""
    phase: ClassVar[AttemptPhase] = AttemptPhase.REFLECTION_PENDING
    wrong_answer: str

    @property
    def selected_option(self) -> Optional[str]:
        return self.wrong_answer

    @property
    def awaiting_reply(self) -> bool:
        return True


@dataclass(frozen=True)
class Retrying(Attempt):
    """Second (last) attempt is open"""
    phase: ClassVar[AttemptPhase] = AttemptPhase.RETRYING
    wrong_answer: str

    @property
    def selected_option(self) -> Optional[str]:
        return self.wrong_answer


@dataclass(frozen=True)
class ExplanationPending(Attempt):
    """Second answer was wrong; the learner must explain the right answer"""
    phase: ClassVar[AttemptPhase] = AttemptPhase.EXPLANATION_PENDING
    wrong_answer: str

    @property
    def is_answered(self) -> bool:
        return True

    @property
    def selected_option(self) -> Optional[str]:
        return self.wrong_answer

    @property
    def awaiting_reply(self) -> bool:
        return True


@dataclass(frozen=True)
class Completed(Attempt):
    """Terminal state. `selected` is None when the clock ran out before any answer"""
    phase: ClassVar[AttemptPhase] = AttemptPhase.COMPLETED
    correct: bool
    selected: Optional[str]
    timed_out: bool = False

    @property
    def is_answered(self) -> bool:
        return True

    @property
    def is_correct(self) -> bool:
        return self.correct

    @property
    def selected_option(self) -> Optional[str]:
        return self.selected


# =============================================================================
# History
# =============================================================================

class HistoryError(RuntimeError):
    """Raised on a write that would move a question's state backwards"""


@dataclass(frozen=True)
class HistoryRecord:
    """Read-only view of a visited question's outcome"""
    index: int
    attempt: Attempt

    @property
    def selected_option(self) -> Optional[str]:
        return self.attempt.selected_option

    @property
    def is_correct(self) -> bool:
        return self.attempt.is_correct

    @property
    def is_answered(self) -> bool:
        return self.attempt.is_answered

    @property
    def attempt_state(self) -> AttemptPhase:
        return self.attempt.phase

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for the participant log"""
        data = {
            'selectedOption': self.selected_option,
            'isCorrect': self.is_correct,
            'isAnswered': self.is_answered,
            'attemptState': self.attempt_state.value,
        }
        if isinstance(self.attempt, Completed) and self.attempt.timed_out:
            data['timedOut'] = True
        return data


class HistoryStore:
    """Fixed-size arena of attempt states indexed by question position"""

    def __init__(self, size: int):
        self._attempts: List[Optional[Attempt]] = [None] * size

    def __len__(self) -> int:
        return len(self._attempts)

    def get(self, index: int) -> Optional[HistoryRecord]:
        """Record for `index`, or None if the question is unvisited"""
        self._check_index(index)
        attempt = self._attempts[index]
        return HistoryRecord(index, attempt) if attempt is not None else None

    def attempt(self, index: int) -> Attempt:
        """Current attempt state (Unanswered for unvisited questions)"""
        self._check_index(index)
        return self._attempts[index] or Unanswered()

    def write(self, index: int, attempt: Attempt) -> HistoryRecord:
        """Move a question forward to `attempt`; backward moves raise HistoryError"""
        current = self.attempt(index)

        if attempt.phase not in ALLOWED_TRANSITIONS[current.phase]:
            raise HistoryError(
                f"Question {index}: cannot move from {current.phase.value} to {attempt.phase.value}"
            )

        # Once answered, the choice and its correctness are frozen
        if current.is_answered and (
            attempt.selected_option != current.selected_option
            or attempt.is_correct != current.is_correct
        ):
            raise HistoryError(f"Question {index}: answered state cannot be rewritten")

        self._attempts[index] = attempt
        return HistoryRecord(index, attempt)

    def records(self) -> Iterator[HistoryRecord]:
        """Records of visited questions in index order"""
        for index, attempt in enumerate(self._attempts):
            if attempt is not None:
                yield HistoryRecord(index, attempt)

    def score(self) -> int:
        return sum(1 for record in self.records() if record.attempt.is_completed and record.is_correct)

    def completed_count(self) -> int:
        return sum(1 for record in self.records() if record.attempt.is_completed)

    def _check_index(self, index: int):
        if not 0 <= index < len(self._attempts):
            raise HistoryError(f"Question index out of range: {index}")


@dataclass
class SessionCursor:
    """Question in view plus the high-water mark of questions passed"""
    current_index: int = 0
    max_index_reached: int = 0

    def advance_frontier(self, index: int) -> bool:
        """Mark `index` as passed. Returns True if the frontier moved"""
        if index >= self.max_index_reached:
            self.max_index_reached = index + 1
            return True
        return False

    def is_review(self, index: int) -> bool:
        return index < self.max_index_reached


# =============================================================================
# Tutor contexts
# =============================================================================

class ContextType(Enum):
    """Why a tutor request was issued"""
    FAILURE_REFLECTION_1 = 'failure_reflection_1'
    FAILURE_EXPLANATION_REQUEST = 'failure_explanation_request'
    SUCCESS_FEEDBACK = 'success_feedback'
    MODE_A_FAILURE_EXPLANATION = 'mode_a_failure_explanation'
    GENERAL_CHAT = 'general_chat'


@dataclass(frozen=True)
class ChatContext:
    """Structured context sent alongside a tutor request"""
    type: ContextType
    question_text: str = ''
    user_answer: str = ''
    correct_answer: str = ''
    explanation: str = ''

    @classmethod
    def general(cls) -> 'ChatContext':
        return cls(type=ContextType.GENERAL_CHAT)

    def to_dict(self) -> Dict[str, str]:
        """Wire form; empty fields are omitted"""
        data = {'type': self.type.value}
        for key in ('question_text', 'user_answer', 'correct_answer', 'explanation'):
            value = getattr(self, key)
            if value:
                data[key] = value
        return data

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional['ChatContext']:
        """Parse wire form. Unknown context types are treated as general chat"""
        if not data:
            return None
        try:
            context_type = ContextType(data.get('type'))
        except ValueError:
            context_type = ContextType.GENERAL_CHAT
        return cls(
            type=context_type,
            question_text=data.get('question_text') or '',
            user_answer=data.get('user_answer') or '',
            correct_answer=data.get('correct_answer') or '',
            explanation=data.get('explanation') or '',
        )


# =============================================================================
# Chat log
# =============================================================================

class ChatRole(Enum):
    TUTOR = 'tutor'
    LEARNER = 'learner'


@dataclass
class ChatMessage:
    """One chat entry; content only changes while `streaming` is set"""
    role: ChatRole
    content: str = ''
    streaming: bool = False
    late: bool = False              # Reply finished after the session had ended
    question_index: Optional[int] = None
    context_type: Optional[ContextType] = None

    def to_wire(self) -> Dict[str, str]:
        return {'role': self.role.value, 'content': self.content}


class ChatLog:
    """Append-only chat transcript with at most one in-progress tutor message"""

    def __init__(self):
        self._messages: List[ChatMessage] = []
        self._open: Optional[ChatMessage] = None

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[ChatMessage]:
        return iter(self._messages)

    def __getitem__(self, index: int) -> ChatMessage:
        return self._messages[index]

    @property
    def in_progress(self) -> Optional[ChatMessage]:
        return self._open

    def add(self, role: ChatRole, content: str, question_index: Optional[int] = None,
            context_type: Optional[ContextType] = None) -> ChatMessage:
        message = ChatMessage(role=role, content=content, question_index=question_index,
                              context_type=context_type)
        self._messages.append(message)
        return message

    def open_stream(self, question_index: Optional[int] = None,
                    context_type: Optional[ContextType] = None) -> ChatMessage:
        """Start the in-progress tutor message"""
        if self._open is not None:
            raise RuntimeError("A tutor reply is already streaming")
        message = self.add(ChatRole.TUTOR, '', question_index, context_type)
        message.streaming = True
        self._open = message
        return message

    def append_fragment(self, fragment: str) -> ChatMessage:
        if self._open is None:
            raise RuntimeError("No tutor reply is streaming")
        self._open.content += fragment
        return self._open

    def close_stream(self, late: bool = False) -> Optional[ChatMessage]:
        message = self._open
        if message is not None:
            message.streaming = False
            message.late = late
            self._open = None
        return message

    def to_wire(self) -> List[Dict[str, str]]:
        """Visible history for a tutor request (empty and streaming entries skipped)"""
        return [m.to_wire() for m in self._messages if m.content and not m.streaming]


# =============================================================================
# Requests and responses
# =============================================================================

@dataclass
class TutorRequest:
    """A tutor exchange issued by the session controller"""
    messages: List[Dict[str, str]]
    context: ChatContext
    mode: SessionMode
    question_index: int

    def to_payload(self) -> Dict[str, Any]:
        return {
            'messages': self.messages,
            'context': self.context.to_dict(),
            'mode': self.mode.value,
        }


@dataclass
class SessionResponse:
    """Outcome of one learner action, for the front end to display"""
    accepted: bool = True
    notice: str = ''                        # Transient advisory text
    reply: Optional[ChatMessage] = None     # Tutor message produced, if any
    finished: bool = False

    @classmethod
    def rejected(cls, notice: str) -> 'SessionResponse':
        return cls(accepted=False, notice=notice)


@dataclass
class QuestionView:
    """Snapshot of the question in view"""
    index: int
    total: int
    attempt: Attempt
    review: bool
    can_proceed: bool
    can_go_back: bool
    reflection_required: bool
    is_last: bool
    record: Optional[HistoryRecord] = None
