#!/usr/bin/env python3
"""
Reading-comprehension tutoring session.

Supports two modes:
- A: Single attempt; a wrong answer is final, explanations on request
- B (default): Two attempts, with a mandatory reflection exchange after the
  first miss and an explanation exchange after the second
"""

from .state import (
    SessionMode,
    AttemptPhase,
    Attempt,
    Unanswered,
    ReflectionPending,
    Retrying,
    ExplanationPending,
    Completed,
    HistoryError,
    HistoryRecord,
    HistoryStore,
    SessionCursor,
    ContextType,
    ChatContext,
    ChatRole,
    ChatMessage,
    ChatLog,
    SessionResponse,
    QuestionView,
)
from .modes import ModeAPolicy, ModeBPolicy, policy_for
from .prompts import PromptPolicy
from .engine import SessionController, FALLBACK_MESSAGE
from .timer import SessionTimer
from .knowledge_check import KnowledgeCheck

__all__ = [
    'SessionMode',
    'AttemptPhase',
    'Attempt',
    'Unanswered',
    'ReflectionPending',
    'Retrying',
    'ExplanationPending',
    'Completed',
    'HistoryError',
    'HistoryRecord',
    'HistoryStore',
    'SessionCursor',
    'ContextType',
    'ChatContext',
    'ChatRole',
    'ChatMessage',
    'ChatLog',
    'SessionResponse',
    'QuestionView',
    'ModeAPolicy',
    'ModeBPolicy',
    'policy_for',
    'PromptPolicy',
    'SessionController',
    'FALLBACK_MESSAGE',
    'SessionTimer',
    'KnowledgeCheck',
]
