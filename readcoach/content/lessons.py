#!/usr/bin/env python3
"""
Lesson content: the reading passage and its ordered question bank.
Lessons are JSON files; one sample lesson ships with the package.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple, Union


class LessonError(ValueError):
    """Raised when a lesson file is missing or malformed"""


@dataclass(frozen=True)
class Question:
    """A single multiple-choice question (immutable once loaded)"""
    id: str
    category: str
    text: str
    options: Mapping[str, str]
    correct_option: str
    explanation: str = ''

    @property
    def correct_answer(self) -> str:
        """Text of the correct option"""
        return self.options[self.correct_option]

    @property
    def option_keys(self) -> Tuple[str, ...]:
        return tuple(self.options.keys())

    def is_correct(self, option_key: str) -> bool:
        return option_key == self.correct_option

    def option_text(self, option_key: str) -> str:
        return self.options.get(option_key, '')

    @classmethod
    def from_dict(cls, data: Dict) -> 'Question':
        options = data.get('options') or {}
        if not isinstance(options, dict) or len(options) < 2:
            raise LessonError(f"Question {data.get('id')!r} needs at least two keyed options")

        correct = data.get('correct_option')
        if correct not in options:
            raise LessonError(f"Question {data.get('id')!r}: correct_option {correct!r} is not an option key")

        text = data.get('question') or data.get('text')
        if not text:
            raise LessonError(f"Question {data.get('id')!r} has no question text")

        return cls(
            id=str(data.get('id', '')),
            category=data.get('category', ''),
            text=text,
            options=MappingProxyType({str(k): str(v) for k, v in options.items()}),
            correct_option=str(correct),
            explanation=data.get('explanation', ''),
        )


@dataclass(frozen=True)
class Lesson:
    """A passage plus the read-only question bank asked about it"""
    title: str
    passage: str
    questions: Tuple[Question, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.questions)

    def __getitem__(self, index: int) -> Question:
        return self.questions[index]

    def __iter__(self):
        return iter(self.questions)


def get_lessons_dir() -> Path:
    """Directory holding the bundled lesson files"""
    return Path(__file__).parent / 'lessons'


def parse_lesson(data: Dict) -> Lesson:
    """Build a Lesson from already-decoded JSON"""
    raw_questions: List[Dict] = data.get('questions') or []
    if not raw_questions:
        raise LessonError("Lesson has no questions")

    questions = tuple(Question.from_dict(q) for q in raw_questions)

    ids = [q.id for q in questions]
    if len(set(ids)) != len(ids):
        raise LessonError("Question ids must be unique within a lesson")

    return Lesson(
        title=data.get('title', 'Reading Comprehension'),
        passage=data.get('passage', ''),
        questions=questions,
    )


def load_lesson(path: Optional[Union[str, Path]] = None) -> Lesson:
    """Load a lesson file; defaults to the bundled sample lesson"""
    lesson_path = Path(path) if path else get_lessons_dir() / 'sample.json'

    try:
        with open(lesson_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except FileNotFoundError:
        raise LessonError(f"Lesson file not found: {lesson_path}")
    except json.JSONDecodeError as e:
        raise LessonError(f"Lesson file is not valid JSON ({lesson_path}): {e}")

    return parse_lesson(data)
