#!/usr/bin/env python3
"""
Tests for the participant log store.
"""

import os

import pytest

from readcoach.db import ParticipantLogStore, deep_merge


class TestDeepMerge:

    def test_nested_dicts_merge(self):
        base = {'learnSession': {'score': 1, 'questions': {'q1': {'isCorrect': True}}}}
        update = {'learnSession': {'questions': {'q2': {'isCorrect': False}}}}

        merged = deep_merge(base, update)

        assert merged['learnSession']['score'] == 1
        assert set(merged['learnSession']['questions']) == {'q1', 'q2'}

    def test_scalars_replaced(self):
        assert deep_merge({'a': 1, 'b': [1]}, {'a': 2, 'b': [3]}) == {'a': 2, 'b': [3]}

    def test_base_not_mutated(self):
        base = {'a': {'b': 1}}
        deep_merge(base, {'a': {'c': 2}})
        assert base == {'a': {'b': 1}}


class TestParticipantLogStore:
    """Tests for the sqlite-backed store"""

    def test_create_database(self, tmp_path):
        db_path = str(tmp_path / "nested" / "logs.db")
        store = ParticipantLogStore(db_path)
        assert os.path.exists(db_path)
        store.close()

    def test_unknown_participant(self, tmp_path):
        store = ParticipantLogStore(str(tmp_path / "logs.db"))
        assert store.get('nobody') is None
        store.close()

    def test_learn_and_test_sections(self, tmp_path):
        store = ParticipantLogStore(str(tmp_path / "logs.db"))

        store.upsert('P1', 'learn', {'mode': 'B', 'questions': {'q1': {'isCorrect': True}}})
        store.upsert('P1', 'learn', {'questions': {'q2': {'isCorrect': False}}})
        doc = store.upsert('P1', 'test', {'score': 4})

        assert doc['learnSession']['mode'] == 'B'
        assert set(doc['learnSession']['questions']) == {'q1', 'q2'}
        assert doc['testSession']['score'] == 4
        assert doc['testSession']['timestamp']
        assert store.get('P1') == doc
        store.close()

    def test_last_write_wins(self, tmp_path):
        store = ParticipantLogStore(str(tmp_path / "logs.db"))
        store.upsert('P1', 'profile', {'age': 20})
        store.upsert('P1', 'profile', {'age': 21})
        assert store.get('P1')['age'] == 21
        store.close()

    def test_persists_across_connections(self, tmp_path):
        db_path = str(tmp_path / "logs.db")
        store = ParticipantLogStore(db_path)
        store.upsert('P1', 'learn', {'score': 2})
        store.upsert('P2', 'learn', {'score': 5})
        store.close()

        reopened = ParticipantLogStore(db_path)
        assert reopened.get('P1')['learnSession']['score'] == 2
        assert set(reopened.list_participants()) == {'P1', 'P2'}
        reopened.close()

    def test_participant_required(self, tmp_path):
        store = ParticipantLogStore(str(tmp_path / "logs.db"))
        with pytest.raises(ValueError):
            store.upsert("", "learn", {})
        store.close()
