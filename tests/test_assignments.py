"""Tests for the assignment engine and its verification."""

import random

import pytest

from santa_organizer.models import Assignment, Participant
from santa_organizer.services import assignments as engine
from santa_organizer.services.assignments import (
    InvalidParticipantsError,
    assign,
    verify,
)


class _NoShuffle:
    """Leaves every candidate in input order, so every attempt collides."""

    def __init__(self):
        self.calls = 0

    def shuffle(self, items):
        self.calls += 1


def _ground_truth(assignments, participants):
    derangement = all(a.giver.id != a.recipient.id for a in assignments)
    recipient_ids = [a.recipient.id for a in assignments]
    bijection = (
        len(recipient_ids) == len(set(recipient_ids))
        and set(recipient_ids) == {p.id for p in participants}
    )
    return derangement, bijection


@pytest.mark.parametrize("n", [0, 1])
def test_fewer_than_two_returns_empty(make_people, n):
    assert assign(make_people(n)) == []


@pytest.mark.parametrize("n", [2, 3, 4, 7, 30])
def test_shape_derangement_and_bijection(make_people, n):
    people = make_people(n)
    random.seed(n)

    result = assign(people)

    assert len(result) == n
    assert [a.giver for a in result] == people
    assert all(a.giver.id != a.recipient.id for a in result)
    assert sorted(a.recipient.id for a in result) == sorted(p.id for p in people)


def test_two_participants_swap(make_people):
    a, b = make_people(2)
    for seed in range(20):
        random.seed(seed)
        result = assign([a, b])
        assert [(x.giver.id, x.recipient.id) for x in result] == [(a.id, b.id), (b.id, a.id)]


def test_three_participants_only_two_derangements(trio):
    allowed = {
        (("1", "2"), ("2", "3"), ("3", "1")),
        (("1", "3"), ("2", "1"), ("3", "2")),
    }
    seen = set()
    for seed in range(60):
        random.seed(seed)
        pairs = tuple((x.giver.id, x.recipient.id) for x in assign(trio))
        assert pairs in allowed
        seen.add(pairs)
    assert seen == allowed


def test_rotation_fallback_when_search_exhausted(make_people):
    people = make_people(5)
    rng = _NoShuffle()

    result = assign(people, rng=rng)

    assert rng.calls == engine.MAX_SHUFFLE_ATTEMPTS
    assert [(a.giver.id, a.recipient.id) for a in result] == [
        ("p0", "p1"), ("p1", "p2"), ("p2", "p3"), ("p3", "p4"), ("p4", "p0"),
    ]
    assert verify(result, people).passed


@pytest.mark.parametrize("n", [2, 3, 10])
def test_rotation_fallback_is_valid_for_any_size(make_people, n):
    people = make_people(n)
    result = assign(people, rng=_NoShuffle())
    assert _ground_truth(result, people) == (True, True)


def test_input_is_not_mutated(make_people):
    people = make_people(6)
    snapshot = list(people)
    assign(people)
    assert people == snapshot


def test_accepts_tuple(make_people):
    assert len(assign(tuple(make_people(3)))) == 3


@pytest.mark.parametrize("bad", [None, 42, "abc", {"a": 1}])
def test_rejects_non_sequence(bad):
    with pytest.raises(InvalidParticipantsError):
        assign(bad)


def test_rejects_non_participant_entries():
    with pytest.raises(InvalidParticipantsError):
        assign([{"id": "1"}, {"id": "2"}])


def test_rejects_duplicate_ids():
    dup = [
        Participant(id="x", name="A", email="a@example.com"),
        Participant(id="x", name="B", email="b@example.com"),
    ]
    with pytest.raises(InvalidParticipantsError):
        assign(dup)


def test_invalid_input_is_an_assignment_error():
    assert issubclass(InvalidParticipantsError, engine.AssignmentError)


def test_verify_agrees_on_valid_output(make_people):
    people = make_people(8)
    result = assign(people)
    v = verify(result, people)
    assert (v.derangement, v.bijection) == _ground_truth(result, people) == (True, True)


def test_verify_detects_self_assignment(trio):
    a, b, c = trio
    corrupted = [Assignment(a, a), Assignment(b, c), Assignment(c, b)]

    v = verify(corrupted, trio)

    assert v.derangement is False
    assert v.bijection is True
    assert (v.derangement, v.bijection) == _ground_truth(corrupted, trio)


def test_verify_detects_duplicate_recipient(trio):
    a, b, c = trio
    corrupted = [Assignment(a, b), Assignment(b, c), Assignment(c, b)]

    v = verify(corrupted, trio)

    assert v.derangement is True
    assert v.bijection is False
    assert not v.passed
    assert (v.derangement, v.bijection) == _ground_truth(corrupted, trio)
