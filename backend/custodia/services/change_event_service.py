# Overview: Append-only change feed written alongside every custody write.

from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..extensions import db
from ..models import ChangeEvent
from ..time_utils import utcnow
"""
Change feed invariants (authoritative)

- Append-only. No updates or deletes of existing events.
- Events are written inside the same DB transaction as the change they
  describe, so a rolled-back commit leaves no event behind.
- The feed carries descriptions only; nothing is rebuilt from it.
"""

IMPORTANCE_LEVELS = ("low", "medium", "high")


def append_change_event(
    *,
    event_type: str,
    title: str,
    description: Optional[str] = None,
    affected_tables: Sequence[str] = (),
    changes: Sequence[str] = (),
    actor: Optional[str] = None,
    importance: str = "medium",
    occurred_at: Optional[datetime] = None,
) -> ChangeEvent:
    if importance not in IMPORTANCE_LEVELS:
        raise ValueError(f"Unknown importance level: {importance}")

    ev = ChangeEvent(
        event_type=event_type,
        title=title,
        description=description,
        affected_tables=list(affected_tables),
        changes=list(changes),
        actor=actor,
        importance=importance,
        occurred_at=occurred_at or utcnow(),
    )
    db.session.add(ev)
    db.session.flush()  # ensures ev.id is assigned without committing
    return ev


def list_change_events(
    *,
    event_type: Optional[str] = None,
    since: Optional[datetime] = None,
    limit: int = 100,
) -> list[ChangeEvent]:
    """Newest first."""
    query = db.session.query(ChangeEvent)
    if event_type:
        query = query.filter(ChangeEvent.event_type == event_type)
    if since is not None:
        query = query.filter(ChangeEvent.occurred_at >= since)
    return (
        query.order_by(ChangeEvent.occurred_at.desc(), ChangeEvent.id.desc())
        .limit(max(1, min(limit, 500)))
        .all()
    )
