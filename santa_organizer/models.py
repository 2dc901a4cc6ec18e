from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from .extensions import db


@dataclass(frozen=True)
class Participant:
    id: str
    name: str
    email: str

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "email": self.email}

    @classmethod
    def from_dict(cls, data: dict) -> "Participant":
        return cls(id=str(data["id"]), name=str(data["name"]), email=str(data["email"]))


@dataclass(frozen=True)
class Assignment:
    giver: Participant
    recipient: Participant

    def to_dict(self) -> dict:
        return {"giver": self.giver.to_dict(), "recipient": self.recipient.to_dict()}


@dataclass(frozen=True)
class Verification:
    derangement: bool
    bijection: bool

    @property
    def passed(self) -> bool:
        return self.derangement and self.bijection


@dataclass
class TokenBatch:
    """Display tokens produced for one assignment run."""
    run_id: str
    tokens: list[str] = field(default_factory=list)


class OrganizerRecord(db.Model):
    """
    Server-side organizer state for one browser session.

    The session cookie only carries the row id, so the roster size is not bound
    by cookie limits and an old cookie cannot bring back an older run.
    """
    __tablename__ = "organizer_sessions"

    id = db.Column(db.String(64), primary_key=True)
    participants = db.Column(db.JSON, nullable=False, default=list)
    pairs = db.Column(db.JSON, nullable=False, default=list)
    run_id = db.Column(db.String(32), nullable=True)
    token_run_id = db.Column(db.String(32), nullable=True)
    tokens = db.Column(db.JSON, nullable=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


@dataclass
class OrganizerState:
    """
    Everything the organizer page knows about one session.

    `pairs` holds (giver_id, recipient_id) for the current run. `run_id` changes
    every time assignments are (re)created so that a token batch made for an
    older run is never shown next to a newer one.
    """
    participants: list[Participant] = field(default_factory=list)
    pairs: list[tuple[str, str]] = field(default_factory=list)
    run_id: str | None = None
    token_batch: TokenBatch | None = None

    @classmethod
    def load(cls, sid: str) -> "OrganizerState":
        # Skip the identity map: another request may have changed the row.
        record = db.session.execute(
            db.select(OrganizerRecord)
            .where(OrganizerRecord.id == sid)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if record is None:
            return cls()
        return cls(
            participants=[Participant.from_dict(p) for p in record.participants or []],
            pairs=[(g, r) for g, r in record.pairs or []],
            run_id=record.run_id,
            token_batch=(
                TokenBatch(record.token_run_id, list(record.tokens))
                if record.token_run_id and record.tokens is not None else None
            ),
        )

    def save(self, sid: str) -> None:
        record = db.session.get(OrganizerRecord, sid)
        if record is None:
            record = OrganizerRecord(id=sid)
            db.session.add(record)
        record.participants = [p.to_dict() for p in self.participants]
        record.pairs = [list(pair) for pair in self.pairs]
        record.run_id = self.run_id
        record.token_run_id = self.token_batch.run_id if self.token_batch else None
        record.tokens = self.token_batch.tokens if self.token_batch else None
        db.session.commit()

    @staticmethod
    def store_tokens(sid: str, batch: TokenBatch) -> bool:
        """
        Attach a batch to the stored session only if its run is still current.

        A conditional UPDATE, so a newer /assign that committed while the batch
        was being generated wins.
        """
        updated = (
            db.session.query(OrganizerRecord)
            .filter(OrganizerRecord.id == sid, OrganizerRecord.run_id == batch.run_id)
            .update(
                {"token_run_id": batch.run_id, "tokens": batch.tokens},
                synchronize_session=False,
            )
        )
        db.session.commit()
        return updated == 1

    def to_dict(self) -> dict:
        return {
            "participants": [p.to_dict() for p in self.participants],
            "pairs": [list(pair) for pair in self.pairs],
            "run_id": self.run_id,
            "token_batch": (
                {"run_id": self.token_batch.run_id, "tokens": self.token_batch.tokens}
                if self.token_batch else None
            ),
        }

    def get_participant(self, participant_id: str) -> Participant | None:
        for p in self.participants:
            if p.id == participant_id:
                return p
        return None

    def assignments(self) -> list[Assignment]:
        by_id = {p.id: p for p in self.participants}
        result = []
        for giver_id, recipient_id in self.pairs:
            giver = by_id.get(giver_id)
            recipient = by_id.get(recipient_id)
            # Roster changed under this run; treat the run as gone.
            if giver is None or recipient is None:
                return []
            result.append(Assignment(giver=giver, recipient=recipient))
        return result

    def set_assignments(self, assignments: list[Assignment], run_id: str) -> None:
        self.pairs = [(a.giver.id, a.recipient.id) for a in assignments]
        self.run_id = run_id
        self.token_batch = None

    def clear_assignments(self) -> None:
        self.pairs = []
        self.run_id = None
        self.token_batch = None

    def current_tokens(self) -> list[str] | None:
        if self.token_batch is None or self.token_batch.run_id != self.run_id:
            return None
        return self.token_batch.tokens
