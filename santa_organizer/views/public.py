from __future__ import annotations

from flask import Blueprint, render_template
from flask.views import MethodView

from ..policies import current_state
from ..services.assignments import verify


public_bp = Blueprint("public", __name__)


class OrganizerView(MethodView):
    def get(self):
        state = current_state()
        assignments = state.assignments()
        verification = verify(assignments, state.participants) if assignments else None
        return render_template(
            "santa/organizer.html",
            participants=state.participants,
            has_assignments=bool(assignments),
            verification=verification,
            tokens=state.current_tokens(),
        )


public_bp.add_url_rule("/", view_func=OrganizerView.as_view("organizer"))
