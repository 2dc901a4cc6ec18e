from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from flask.views import MethodView

from ..models import Assignment, Participant
from ..services.mailer import MailerConfig, MailerError, send_assignment_emails


api_bp = Blueprint("api", __name__, url_prefix="/api")


def _parse_assignments(raw: list) -> list[Assignment]:
    try:
        return [
            Assignment(
                giver=Participant.from_dict(item["giver"]),
                recipient=Participant.from_dict(item["recipient"]),
            )
            for item in raw
        ]
    except (KeyError, TypeError) as e:
        raise ValueError("malformed assignment") from e


class SendEmailsApi(MethodView):
    """
    Accepts {"assignments": [{"giver": {...}, "recipient": {...}}, ...]}
    and replies with {"success", "total", "results"}.
    """
    def post(self):
        body = request.get_json(silent=True) or {}
        raw = body.get("assignments") if isinstance(body, dict) else None
        if not raw or not isinstance(raw, list):
            return jsonify({"error": "no assignments"}), 400

        try:
            assignments = _parse_assignments(raw)
        except ValueError as e:
            return jsonify({"error": str(e)}), 400

        config = MailerConfig.from_mapping(current_app.config)
        try:
            report = send_assignment_emails(assignments, config)
        except MailerError as e:
            return jsonify({"error": str(e)}), 500

        return jsonify(report.to_dict())


api_bp.add_url_rule("/send-emails", view_func=SendEmailsApi.as_view("send_emails"), methods=["POST"])
