from __future__ import annotations

from ..extensions import db
from custodia.time_utils import to_utc_z


class ChangeEvent(db.Model):
    """
    Append-only change feed consumed by the notification collaborator.

    - One row per committed custody action (commit, decommission, holder
      edit, director completion, write-off).
    - Written inside the same DB transaction as the change it describes.
    - `changes` holds human-readable lines; no domain state is rebuilt from it.
    """
    __tablename__ = "change_events"
    __table_args__ = (
        db.Index("ix_change_events_occurred", "occurred_at", "id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    event_type = db.Column(db.String(64), nullable=False, index=True)  # e.g., custody.committed
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    affected_tables = db.Column(db.JSON, nullable=False, default=list)
    changes = db.Column(db.JSON, nullable=False, default=list)

    actor = db.Column(db.String(255), nullable=True)
    importance = db.Column(db.String(16), nullable=False, default="medium")  # low, medium, high

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "event_type": self.event_type,
            "title": self.title,
            "description": self.description,
            "affected_tables": list(self.affected_tables or []),
            "changes": list(self.changes or []),
            "actor": self.actor,
            "importance": self.importance,
            "occurred_at": to_utc_z(self.occurred_at),
        }
