"""
Tests for OrderedCollection and Transition
"""

import pytest

from clinic_archive.services.transition import Entry, OrderedCollection, Transition, TransitionState


def make_collection(*keys):
    return OrderedCollection([Entry(key=k, seq=i, record={"id": k}) for i, k in enumerate(keys)])


class TestOrderedCollection:

    def test_insert_keeps_fetch_order(self):
        collection = OrderedCollection()
        collection.insert(Entry(key="c", seq=2, record={}))
        collection.insert(Entry(key="a", seq=0, record={}))
        collection.insert(Entry(key="b", seq=1, record={}))

        assert collection.keys() == ["a", "b", "c"]

    def test_duplicate_key_rejected(self):
        collection = make_collection("a")
        with pytest.raises(ValueError):
            collection.insert(Entry(key="a", seq=5, record={}))

    def test_remove_missing_returns_none(self):
        assert make_collection("a").remove("zzz") is None

    def test_contains_and_len(self):
        collection = make_collection("a", "b")
        assert "a" in collection
        assert "z" not in collection
        assert len(collection) == 2


class TestTransition:

    def test_apply_moves_entry_as_provisional(self):
        source, destination = make_collection("a", "b", "c"), OrderedCollection()
        transition = Transition("b", source, destination)

        transition.apply()

        assert source.keys() == ["a", "c"]
        assert destination.get("b").provisional is True
        assert transition.state == TransitionState.APPLIED

    def test_commit_clears_provisional(self):
        source, destination = make_collection("a"), OrderedCollection()
        transition = Transition("a", source, destination)
        transition.apply()

        transition.commit()

        assert destination.get("a").provisional is False
        assert transition.state == TransitionState.COMMITTED

    def test_rollback_restores_position(self):
        source, destination = make_collection("a", "b", "c"), make_collection()
        transition = Transition("b", source, destination)
        transition.apply()

        transition.rollback()

        assert source.keys() == ["a", "b", "c"]
        assert "b" not in destination
        assert source.get("b").provisional is False
        assert transition.state == TransitionState.ROLLED_BACK

    def test_removal_without_destination(self):
        source = make_collection("a", "b")
        transition = Transition("a", source)
        transition.apply()

        assert source.keys() == ["b"]
        transition.rollback()
        assert source.keys() == ["a", "b"]

    def test_apply_missing_key(self):
        with pytest.raises(KeyError):
            Transition("zzz", make_collection("a")).apply()

    def test_double_settle_is_an_error(self):
        transition = Transition("a", make_collection("a"), OrderedCollection())
        transition.apply()
        transition.commit()

        with pytest.raises(RuntimeError):
            transition.rollback()
        with pytest.raises(RuntimeError):
            transition.apply()

    def test_commit_before_apply_is_an_error(self):
        with pytest.raises(RuntimeError):
            Transition("a", make_collection("a")).commit()

    def test_equal_seq_inserts_after_existing(self):
        collection = make_collection("a", "b")
        collection.insert(Entry(key="late", seq=0, record={}))

        assert collection.keys() == ["a", "late", "b"]
