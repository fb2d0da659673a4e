#!/usr/bin/env python3
"""
Tests for the untutored knowledge check.
"""

from unittest.mock import Mock

from readcoach.tutoring import KnowledgeCheck


class TestKnowledgeCheck:

    def test_submit_requires_every_answer(self, lesson):
        check = KnowledgeCheck(lesson)
        check.select(0, 'B')
        assert not check.ready
        assert check.submit() is None
        assert not check.submitted

    def test_scoring(self, lesson):
        sink = Mock()
        check = KnowledgeCheck(lesson, log_sink=sink)
        check.select(0, 'b')
        check.select(1, 'C')
        check.select(2, 'C')

        assert check.submit() == 2

        sink.write.assert_called_once()
        log_type, data = sink.write.call_args.args
        assert log_type == 'test'
        assert data['score'] == 2
        assert data['answers'] == {'q1': 'B', 'q2': 'C', 'q3': 'C'}

    def test_answers_can_change_until_submit(self, lesson):
        check = KnowledgeCheck(lesson)
        for index, key in enumerate(('A', 'A', 'A')):
            check.select(index, key)
        check.select(0, 'B')

        assert check.submit() == 2
        assert not check.select(0, 'C')
        assert check.selected[0] == 'B'

    def test_invalid_selection(self, lesson):
        check = KnowledgeCheck(lesson)
        assert not check.select(0, 'Z')
        assert not check.select(5, 'A')
        assert check.selected == {}

    def test_results_and_reset(self, lesson):
        check = KnowledgeCheck(lesson)
        assert check.results() == []
        for index, key in enumerate(('B', 'A', 'A')):
            check.select(index, key)
        check.submit()

        results = check.results()
        assert [r['is_correct'] for r in results] == [True, True, False]
        assert results[2]['correct_option'] == 'C'

        check.reset()
        assert check.score is None
        assert check.selected == {}
