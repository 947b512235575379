# Overview: Folio sequencing for custody and decommission documents, with claim-based reservation.

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..extensions import db
from ..models import CustodyRecord, DecommissionRecord, FolioClaim
from ..time_utils import local_today
from ..validation import StoreError


"""
Folio rules (authoritative)

- Custody folio RES-YYYYMMDD-NNN: NNN = number of DISTINCT folios in the
  custody ledger assigned today, plus one. A fully decommissioned folio from
  today lowers the count, which is why issued folios are also claimed.
- Decommission folio BAJA-YYYY-NNNN: numeric suffix of the most recently
  created decommission folio (any year) plus one, formatted with the current
  year. 0001 when none exists or the latest one does not parse.
- next_* never writes. reserve_* writes a FolioClaim inside the caller's
  transaction and advances past folios that are already taken.
"""

FOLIO_TYPE_CUSTODY = "RESGUARDO"
FOLIO_TYPE_DECOMMISSION = "BAJA"
FOLIO_TYPES = (FOLIO_TYPE_CUSTODY, FOLIO_TYPE_DECOMMISSION)

CUSTODY_PREFIX = "RES"
DECOMMISSION_PREFIX = "BAJA"

MAX_FOLIO_ADVANCES = 50

_DECOMMISSION_FOLIO_RE = re.compile(r"^BAJA-\d{4}-(\d+)$")


class FolioError(Exception):
    """Raised for unknown folio types."""
    pass


@dataclass(frozen=True)
class FolioPreview:
    folio: str
    folio_type: str
    is_fallback: bool = False

    def to_dict(self) -> dict:
        data = {"folio": self.folio, "folio_type": self.folio_type, "is_fallback": self.is_fallback}
        if self.is_fallback:
            data["warning"] = "Folio computed without the store; it may collide with an existing one"
        return data


def format_custody_folio(day: date, sequence: int) -> str:
    return f"{CUSTODY_PREFIX}-{day.strftime('%Y%m%d')}-{sequence:03d}"


def format_decommission_folio(year: int, sequence: int) -> str:
    return f"{DECOMMISSION_PREFIX}-{year:04d}-{sequence:04d}"


def parse_decommission_sequence(folio: str | None) -> int | None:
    """Return the numeric suffix of a BAJA-YYYY-NNNN folio, or None if malformed."""
    if not folio:
        return None
    match = _DECOMMISSION_FOLIO_RE.match(folio.strip())
    if not match:
        return None
    return int(match.group(1))


def _custody_sequence(day: date) -> int:
    count = (
        db.session.query(func.count(func.distinct(CustodyRecord.folio)))
        .filter(CustodyRecord.assigned_on == day)
        .scalar()
    )
    return int(count or 0) + 1


def _latest_decommission_folio() -> str | None:
    return (
        db.session.query(DecommissionRecord.decommission_folio)
        .order_by(DecommissionRecord.created_at.desc(), DecommissionRecord.id.desc())
        .limit(1)
        .scalar()
    )


def _decommission_sequence() -> int:
    last = parse_decommission_sequence(_latest_decommission_folio())
    return (last or 0) + 1


# =============================================================================
# Read-only preview
# =============================================================================

def preview_custody_folio(today: date | None = None) -> FolioPreview:
    """
    Compute the next custody folio without claiming it.

    Store failures degrade to sequence 001 with is_fallback=True.
    """
    day = today or local_today()
    try:
        sequence = _custody_sequence(day)
    except SQLAlchemyError as exc:
        current_app.logger.warning("Custody folio count failed, using fallback folio: %s", exc)
        return FolioPreview(format_custody_folio(day, 1), FOLIO_TYPE_CUSTODY, is_fallback=True)
    return FolioPreview(format_custody_folio(day, sequence), FOLIO_TYPE_CUSTODY)


def preview_decommission_folio(today: date | None = None) -> FolioPreview:
    year = (today or local_today()).year
    try:
        sequence = _decommission_sequence()
    except SQLAlchemyError as exc:
        current_app.logger.warning("Decommission folio lookup failed, using fallback folio: %s", exc)
        return FolioPreview(format_decommission_folio(year, 1), FOLIO_TYPE_DECOMMISSION, is_fallback=True)
    return FolioPreview(format_decommission_folio(year, sequence), FOLIO_TYPE_DECOMMISSION)


def preview_folio(folio_type: str, today: date | None = None) -> FolioPreview:
    folio_type = (folio_type or "").strip().upper()
    if folio_type == FOLIO_TYPE_CUSTODY:
        return preview_custody_folio(today)
    if folio_type == FOLIO_TYPE_DECOMMISSION:
        return preview_decommission_folio(today)
    raise FolioError(f"Unknown folio type: {folio_type or '<blank>'}")


def next_custody_folio(today: date | None = None) -> str:
    return preview_custody_folio(today).folio


def next_decommission_folio(today: date | None = None) -> str:
    return preview_decommission_folio(today).folio


# =============================================================================
# Reservation
# =============================================================================

def _folio_taken(folio_type: str, folio: str) -> bool:
    if db.session.query(FolioClaim.id).filter_by(folio=folio).first() is not None:
        return True
    if folio_type == FOLIO_TYPE_CUSTODY:
        ledger = db.session.query(CustodyRecord.id).filter_by(folio=folio)
    else:
        ledger = db.session.query(DecommissionRecord.id).filter_by(decommission_folio=folio)
    return ledger.first() is not None


def _claim(folio_type: str, period: str, start: int, render, actor: str | None) -> str:
    """
    Insert a FolioClaim for the first free folio at or after `start`.

    Each insert runs in a savepoint so losing the unique race only rolls back
    the claim, never the caller's pending writes.
    """
    sequence = start
    for _ in range(MAX_FOLIO_ADVANCES):
        folio = render(sequence)
        if _folio_taken(folio_type, folio):
            current_app.logger.warning("Folio %s already issued, advancing sequence", folio)
            sequence += 1
            continue

        nested = db.session.begin_nested()
        try:
            db.session.add(FolioClaim(folio_type=folio_type, period=period, folio=folio, claimed_by=actor))
            db.session.flush()
            nested.commit()
        except IntegrityError:
            nested.rollback()
            current_app.logger.warning("Folio %s claimed concurrently, advancing sequence", folio)
            sequence += 1
            continue
        return folio

    raise StoreError(
        f"No free {folio_type} folio within {MAX_FOLIO_ADVANCES} attempts",
        step="folio reservation",
    )


def reserve_custody_folio(*, actor: str | None = None, today: date | None = None) -> str:
    day = today or local_today()
    try:
        start = _custody_sequence(day)
    except SQLAlchemyError as exc:
        raise StoreError(f"Custody folio count failed: {exc}", step="folio generation") from exc
    return _claim(
        FOLIO_TYPE_CUSTODY,
        day.strftime("%Y%m%d"),
        start,
        lambda n: format_custody_folio(day, n),
        actor,
    )


def reserve_decommission_folio(*, actor: str | None = None, today: date | None = None) -> str:
    year = (today or local_today()).year
    try:
        start = _decommission_sequence()
    except SQLAlchemyError as exc:
        raise StoreError(f"Decommission folio lookup failed: {exc}", step="folio generation") from exc
    return _claim(
        FOLIO_TYPE_DECOMMISSION,
        f"{year:04d}",
        start,
        lambda n: format_decommission_folio(year, n),
        actor,
    )


def list_claims(folio_type: str | None = None, limit: int = 50) -> list[FolioClaim]:
    query = db.session.query(FolioClaim)
    if folio_type:
        query = query.filter(FolioClaim.folio_type == folio_type.strip().upper())
    return query.order_by(FolioClaim.claimed_at.desc(), FolioClaim.id.desc()).limit(limit).all()
