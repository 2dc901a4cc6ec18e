from __future__ import annotations

import secrets

from flask import flash, redirect, session, url_for
from flask.views import MethodView

from .models import OrganizerState

SID_KEY = "sid"


def current_sid() -> str:
    """Id of this browser's server-side organizer row; the cookie holds nothing else."""
    sid = session.get(SID_KEY)
    if not sid:
        sid = secrets.token_urlsafe(24)
        session[SID_KEY] = sid
    return sid


def current_state() -> OrganizerState:
    return OrganizerState.load(current_sid())


class AssignmentsRequiredMixin(MethodView):
    """
    Blocks the view until the session holds a complete assignment run.
    """
    def dispatch_request(self, *args, **kwargs):
        if not current_state().assignments():
            flash("No assignments yet. Click \"Assign Santas\" to create pairings.", "info")
            return redirect(url_for("public.organizer"))
        return super().dispatch_request(*args, **kwargs)
