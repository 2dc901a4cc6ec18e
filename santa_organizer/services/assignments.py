from __future__ import annotations

import logging
import random
from collections.abc import Sequence

from ..models import Assignment, Participant, Verification

logger = logging.getLogger(__name__)

MAX_SHUFFLE_ATTEMPTS = 1000


class AssignmentError(RuntimeError):
    pass


class InvalidParticipantsError(AssignmentError):
    pass


def _validate(participants) -> list[Participant]:
    if isinstance(participants, (str, bytes)) or not isinstance(participants, Sequence):
        raise InvalidParticipantsError("Participants must be a sequence.")

    people = list(participants)
    if any(not isinstance(p, Participant) for p in people):
        raise InvalidParticipantsError("Every entry must be a Participant.")

    ids = [p.id for p in people]
    if len(set(ids)) != len(ids):
        raise InvalidParticipantsError("Participant ids must be unique.")
    return people


def _is_derangement(people: list[Participant], candidate: list[Participant]) -> bool:
    return all(a.id != b.id for a, b in zip(people, candidate))


def assign(participants: Sequence[Participant], rng=None) -> list[Assignment]:
    """
    Pair every participant with someone else, each receiving exactly once.

    Shuffles up to MAX_SHUFFLE_ATTEMPTS times looking for a derangement and
    falls back to a one-step rotation, which is always valid for n >= 2.
    """
    people = _validate(participants)
    n = len(people)
    if n < 2:
        return []

    rng = rng or random

    for _ in range(MAX_SHUFFLE_ATTEMPTS):
        candidate = people[:]
        rng.shuffle(candidate)
        if _is_derangement(people, candidate):
            return [Assignment(giver=g, recipient=r) for g, r in zip(people, candidate)]

    logger.warning("No derangement after %d shuffles; using rotation for %d participants", MAX_SHUFFLE_ATTEMPTS, n)
    return [Assignment(giver=p, recipient=people[(i + 1) % n]) for i, p in enumerate(people)]


def verify(assignments: Sequence[Assignment], participants: Sequence[Participant]) -> Verification:
    derangement = all(a.giver.id != a.recipient.id for a in assignments)
    unique_recipients = {a.recipient.id for a in assignments}
    bijection = len(unique_recipients) == len(participants)
    return Verification(derangement=derangement, bijection=bijection)
