from __future__ import annotations

import logging
import secrets

from flask import Blueprint, redirect, url_for, flash, request, current_app
from flask.views import MethodView

from ..models import OrganizerState, TokenBatch
from ..policies import AssignmentsRequiredMixin, current_sid, current_state
from ..security import encrypt_tokens, TokenGenerationError
from ..services.assignments import assign, verify, AssignmentError
from ..services.mailer import MailerConfig, MailerError, send_assignment_emails
from ..services.roster import add_participant, remove_participant, RosterError

logger = logging.getLogger(__name__)

santa_bp = Blueprint("santa", __name__)


def _back():
    return redirect(url_for("public.organizer"))


async def _issue_tokens(sid: str, state: OrganizerState) -> None:
    """
    Generate tokens for the run `state` was loaded with and attach them only if
    that run is still the stored one once encryption finishes.
    """
    run_id = state.run_id
    try:
        tokens = await encrypt_tokens(state.assignments())
    except TokenGenerationError as e:
        flash(str(e), "error")
        return

    if tokens is None:
        flash("Encrypted tokens are not available in this environment.", "info")
        return

    if not OrganizerState.store_tokens(sid, TokenBatch(run_id=run_id, tokens=tokens)):
        logger.info("Discarding tokens created for a previous assignment run")
        flash("Assignments changed while tokens were being created; tokens were discarded.", "info")


class AddParticipantView(MethodView):
    def post(self):
        sid = current_sid()
        state = OrganizerState.load(sid)
        try:
            add_participant(state, request.form.get("name"), request.form.get("email"))
        except RosterError as e:
            flash(str(e), "error")
            return _back()
        state.save(sid)
        return _back()


class RemoveParticipantView(MethodView):
    def post(self, participant_id: str):
        sid = current_sid()
        state = OrganizerState.load(sid)
        if remove_participant(state, participant_id) is None:
            flash("No such participant.", "error")
            return _back()
        state.save(sid)
        return _back()


class AssignView(MethodView):
    async def post(self):
        sid = current_sid()
        state = OrganizerState.load(sid)
        if len(state.participants) < 2:
            flash("Add at least 2 participants to assign Santas.", "error")
            return _back()

        try:
            assignments = assign(state.participants)
        except AssignmentError as e:
            flash(f"Failed to assign Santas: {e}", "error")
            return _back()

        result = verify(assignments, state.participants)
        logger.info(
            "Assigned %d participants (derangement=%s bijection=%s)",
            len(assignments), result.derangement, result.bijection,
        )

        # Commit the run first so it is the one tokens are checked against.
        state.set_assignments(assignments, run_id=secrets.token_hex(8))
        state.save(sid)
        await _issue_tokens(sid, state)
        return _back()


class TokensView(AssignmentsRequiredMixin):
    """Hide tokens when shown, otherwise recreate them under a brand new key."""
    async def post(self):
        sid = current_sid()
        state = current_state()
        if state.current_tokens() is not None:
            state.token_batch = None
            state.save(sid)
        else:
            await _issue_tokens(sid, state)
        return _back()


class SendEmailsView(AssignmentsRequiredMixin):
    def post(self):
        state = current_state()
        config = MailerConfig.from_mapping(current_app.config)
        try:
            report = send_assignment_emails(state.assignments(), config)
        except MailerError as e:
            flash(f"Failed: {e}", "error")
            return _back()

        category = "success" if report.success == report.total else "error"
        flash(f"Sent: {report.success}/{report.total} emails", category)
        return _back()


santa_bp.add_url_rule("/participants", view_func=AddParticipantView.as_view("add_participant"), methods=["POST"])
santa_bp.add_url_rule(
    "/participants/<participant_id>/remove",
    view_func=RemoveParticipantView.as_view("remove_participant"),
    methods=["POST"],
)
santa_bp.add_url_rule("/assign", view_func=AssignView.as_view("assign"), methods=["POST"])
santa_bp.add_url_rule("/tokens", view_func=TokensView.as_view("tokens"), methods=["POST"])
santa_bp.add_url_rule("/send-emails", view_func=SendEmailsView.as_view("send_emails"), methods=["POST"])
