from __future__ import annotations

import secrets

from ..models import OrganizerState, Participant


class RosterError(ValueError):
    pass


def _new_participant_id(taken: set[str]) -> str:
    while True:
        pid = secrets.token_urlsafe(6)
        if pid not in taken:
            return pid


def add_participant(state: OrganizerState, name: str, email: str) -> Participant:
    """
    Append a participant to the session roster.

    Any existing assignments (and their tokens) are dropped since they no
    longer cover everyone.
    """
    name = (name or "").strip()
    email = (email or "").strip()
    if not name or not email:
        raise RosterError("Please provide both name and email.")

    p = Participant(
        id=_new_participant_id({x.id for x in state.participants}),
        name=name,
        email=email,
    )
    state.participants.append(p)
    state.clear_assignments()
    return p


def remove_participant(state: OrganizerState, participant_id: str) -> Participant | None:
    p = state.get_participant(participant_id)
    if p is None:
        return None
    state.participants = [x for x in state.participants if x.id != participant_id]
    state.clear_assignments()
    return p
