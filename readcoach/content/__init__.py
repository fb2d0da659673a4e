"""Lesson content loading (passage and question bank)."""

from .lessons import Question, Lesson, LessonError, load_lesson, parse_lesson

__all__ = ["Question", "Lesson", "LessonError", "load_lesson", "parse_lesson"]
