"""
Assignment notification emails via Maileroo's HTTP API.

One POST per giver. Every attempt is reported back individually; nothing is
retried.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Optional

import requests
from markupsafe import escape

from ..models import Assignment

logger = logging.getLogger(__name__)

DEFAULT_FROM_NAME = "Secret Santa"
DEFAULT_FROM_ADDRESS = "no-reply@example.com"
SUBJECT = "Secret Santa assignment"

_NAMED_ADDRESS = re.compile(r"^(.*)\s*<([^>]+)>\s*$")
_BARE_ADDRESS = re.compile(r"^[^@\s]+@[^@\s]+$")


class MailerError(RuntimeError):
    pass


class MailerNotConfigured(MailerError):
    pass


def parse_from_string(value: str) -> tuple[str, str]:
    """Split "Name <addr@host>" into (name, address)."""
    m = _NAMED_ADDRESS.match(value)
    if m:
        return m.group(1).strip(), m.group(2).strip()
    if _BARE_ADDRESS.match(value):
        return "", value
    return "", ""


@dataclass
class MailerConfig:
    api_key: str = ""
    api_url: str = ""
    from_raw: str = ""
    from_address: str = ""
    from_name: str = ""
    timeout: float = 10.0

    @classmethod
    def from_mapping(cls, config) -> "MailerConfig":
        return cls(
            api_key=(config.get("MAILEROO_API_KEY") or "").strip(),
            api_url=(config.get("MAILEROO_API_URL") or config.get("MAILEROO_URL") or "").strip(),
            from_raw=(config.get("MAILEROO_FROM") or "").strip(),
            from_address=(config.get("MAILEROO_FROM_ADDRESS") or "").strip(),
            from_name=(config.get("MAILEROO_FROM_NAME") or "").strip(),
            timeout=float(config.get("MAIL_TIMEOUT") or 10),
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.api_url)

    def sender(self) -> dict:
        address = self.from_address
        name = self.from_name
        if not address:
            parsed_name, parsed_address = parse_from_string(self.from_raw) if self.from_raw else ("", "")
            address = parsed_address
            name = parsed_name or name or DEFAULT_FROM_NAME
        if not address:
            address = DEFAULT_FROM_ADDRESS

        sender = {"address": address}
        if name:
            sender["display_name"] = name
        return sender


@dataclass
class DeliveryResult:
    to: str
    ok: bool
    status: int
    body: Any = None

    def to_dict(self) -> dict:
        return {"to": self.to, "ok": self.ok, "status": self.status, "body": self.body}


@dataclass
class DeliveryReport:
    results: list[DeliveryResult] = field(default_factory=list)

    @property
    def success(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def total(self) -> int:
        return len(self.results)

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "total": self.total,
            "results": [r.to_dict() for r in self.results],
        }


def build_payload(assignment: Assignment, sender: dict) -> dict:
    giver = assignment.giver
    recipient = assignment.recipient
    text = (
        f"Hi {giver.name},\n\n"
        f"You have been assigned to give a gift to {recipient.name} ({recipient.email}).\n\n"
        "Happy gifting!"
    )
    html = (
        f"<p>Hi {escape(giver.name)},</p>"
        f"<p>You have been assigned to shop for <strong>{escape(recipient.name)}</strong> "
        f"({escape(recipient.email)}).</p>"
        "<p>Happy gifting!</p>"
    )
    return {
        "from": sender,
        "to": [{"address": giver.email, "name": giver.name}],
        "subject": SUBJECT,
        "text": text,
        "html": html,
        "content": [
            {"type": "text/plain", "value": text},
            {"type": "text/html", "value": html},
        ],
    }


def _response_body(res) -> Optional[Any]:
    try:
        return res.json()
    except ValueError:
        return None


def send_assignment_emails(
    assignments: list[Assignment],
    config: MailerConfig,
    http: Optional[requests.Session] = None,
) -> DeliveryReport:
    if not config.is_configured:
        logger.warning("Maileroo not configured - MAILEROO_API_KEY or MAILEROO_API_URL missing")
        raise MailerNotConfigured(
            "Maileroo not configured on server - set MAILEROO_API_KEY and MAILEROO_API_URL"
        )

    if http is None:
        with requests.Session() as owned:
            return _send_all(assignments, config, owned)
    return _send_all(assignments, config, http)


def _send_all(assignments: list[Assignment], config: MailerConfig, http) -> DeliveryReport:
    headers = {"Authorization": f"Bearer {config.api_key}"}
    sender = config.sender()
    report = DeliveryReport()

    for a in assignments:
        to = a.giver.email
        try:
            res = http.post(
                config.api_url,
                json=build_payload(a, sender),
                headers=headers,
                timeout=config.timeout,
            )
        except requests.RequestException as e:
            logger.error("Maileroo request for %s failed: %s", to, e)
            report.results.append(DeliveryResult(to=to, ok=False, status=0, body={"error": str(e)}))
            continue

        logger.info("Maileroo response for %s status=%s ok=%s", to, res.status_code, res.ok)
        report.results.append(
            DeliveryResult(to=to, ok=res.ok, status=res.status_code, body=_response_body(res))
        )

    return report
