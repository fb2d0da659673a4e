"""
readcoach - Reflective Reading Tutor

A terminal tutoring session for reading comprehension. Learners answer
multiple-choice questions over a passage; wrong answers open a short
reflection exchange with an AI tutor before a retry is allowed.
"""

__version__ = "0.1.0"
