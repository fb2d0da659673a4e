#!/usr/bin/env python3
"""
Untutored knowledge check over a lesson's question bank.
Answers can be changed freely until the check is submitted; scoring happens
once, at submit, and the result goes to the participant log as a `test` entry.
"""

import logging
from typing import Dict, List, Optional, TYPE_CHECKING

from ..content import Lesson

if TYPE_CHECKING:
    from ..integrations.log_sink import LogSink

logger = logging.getLogger(__name__)


class KnowledgeCheck:
    """Multiple-choice quiz without tutor involvement"""

    def __init__(self, lesson: Lesson, log_sink: Optional['LogSink'] = None):
        self.lesson = lesson
        self.log_sink = log_sink
        self.selected: Dict[int, str] = {}
        self.submitted = False
        self.score: Optional[int] = None

    @property
    def ready(self) -> bool:
        """True once every question has a selection"""
        return len(self.selected) == len(self.lesson)

    def select(self, index: int, option_key: str) -> bool:
        """Record a choice. Returns False if it was not accepted"""
        if self.submitted:
            return False
        if not 0 <= index < len(self.lesson):
            return False

        key = (option_key or '').strip().upper()
        if key not in self.lesson[index].options:
            return False

        self.selected[index] = key
        return True

    def submit(self) -> Optional[int]:
        """Score the check; None while questions are still unanswered"""
        if self.submitted:
            return self.score
        if not self.ready:
            return None

        self.score = sum(
            1 for index, key in self.selected.items()
            if self.lesson[index].is_correct(key)
        )
        self.submitted = True
        logger.info("Knowledge check submitted: %d/%d", self.score, len(self.lesson))

        if self.log_sink is not None:
            self.log_sink.write('test', {
                'score': self.score,
                'total': len(self.lesson),
                'answers': {
                    self.lesson[index].id: key for index, key in sorted(self.selected.items())
                },
            })
        return self.score

    def reset(self):
        self.selected.clear()
        self.submitted = False
        self.score = None

    def results(self) -> List[Dict]:
        """Per-question outcome, available after submit"""
        if not self.submitted:
            return []
        return [
            {
                'id': question.id,
                'selected': self.selected.get(index),
                'correct_option': question.correct_option,
                'is_correct': question.is_correct(self.selected.get(index, '')),
            }
            for index, question in enumerate(self.lesson)
        ]
