# Overview: Director/area resolution, completion of incomplete directors, and director suggestions.

from __future__ import annotations

import unicodedata
from dataclasses import dataclass

from ..extensions import db
from ..models import Area, Director, DirectorArea
from ..validation import ValidationError, NotFoundError
from .change_event_service import append_change_event


RESOLVED = "RESOLVED"
INCOMPLETE = "INCOMPLETE"
NOT_FOUND = "NOT_FOUND"

MISSING_POSITION = "position"
MISSING_AREA = "area"


@dataclass(frozen=True)
class DirectorProfile:
    id: int
    name: str
    position: str | None
    areas: tuple[str, ...]
    legacy_area: str | None = None

    @property
    def missing_fields(self) -> tuple[str, ...]:
        missing = []
        if not (self.position or "").strip():
            missing.append(MISSING_POSITION)
        if not self.areas:
            missing.append(MISSING_AREA)
        return tuple(missing)

    @property
    def is_complete(self) -> bool:
        return not self.missing_fields

    def has_area(self, area: str | None) -> bool:
        wanted = (area or "").strip().casefold()
        return bool(wanted) and any(a.strip().casefold() == wanted for a in self.areas)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "position": self.position,
            "areas": list(self.areas),
            "legacy_area": self.legacy_area,
            "is_complete": self.is_complete,
            "missing_fields": list(self.missing_fields),
        }


@dataclass(frozen=True)
class DirectorResolution:
    status: str
    director: DirectorProfile | None = None
    missing_fields: tuple[str, ...] = ()

    @property
    def resolved(self) -> bool:
        return self.status == RESOLVED

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "director": self.director.to_dict() if self.director else None,
            "missing_fields": list(self.missing_fields),
        }


def normalize_name(name: str | None) -> str:
    """Trim, collapse inner whitespace, case-fold."""
    return " ".join((name or "").split()).casefold()


def fold_accents(text: str | None) -> str:
    """Lower-case and strip combining marks ("Pérez" -> "perez")."""
    decomposed = unicodedata.normalize("NFD", (text or "").lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch)).strip()


def _areas_for(director_id: int) -> tuple[str, ...]:
    rows = (
        db.session.query(Area.name)
        .join(DirectorArea, DirectorArea.area_id == Area.id)
        .filter(DirectorArea.director_id == director_id)
        .order_by(Area.name.asc())
        .all()
    )
    return tuple(name for (name,) in rows)


def build_profile(director: Director) -> DirectorProfile:
    return DirectorProfile(
        id=director.id,
        name=director.name,
        position=director.legacy_position,
        areas=_areas_for(director.id),
        legacy_area=director.legacy_area,
    )


def get_director(director_id: int) -> Director:
    director = db.session.get(Director, director_id)
    if director is None:
        raise NotFoundError(f"Director {director_id} not found")
    return director


def find_director(name: str | None) -> Director | None:
    wanted = normalize_name(name)
    if not wanted:
        return None
    for director in db.session.query(Director).order_by(Director.id.asc()).all():
        if normalize_name(director.name) == wanted:
            return director
    return None


def resolve_director(name: str | None) -> DirectorResolution:
    director = find_director(name)
    if director is None:
        return DirectorResolution(NOT_FOUND)
    profile = build_profile(director)
    if not profile.is_complete:
        return DirectorResolution(INCOMPLETE, profile, profile.missing_fields)
    return DirectorResolution(RESOLVED, profile)


def get_or_create_area(name: str) -> Area:
    """Exact, case-sensitive lookup; creates the area when missing."""
    area = db.session.query(Area).filter(Area.name == name).first()
    if area is None:
        area = Area(name=name)
        db.session.add(area)
        db.session.flush()
    return area


def complete_director(director_id: int, area_name: str | None, position: str | None, *, actor: str | None = None) -> DirectorProfile:
    """
    Give an incomplete director exactly one area and a position.

    Replaces ALL existing area links for the director.
    """
    area_name = (area_name or "").strip()
    position = (position or "").strip()
    if not area_name:
        raise ValidationError("area cannot be blank")
    if not position:
        raise ValidationError("position cannot be blank")

    director = get_director(director_id)
    previous = build_profile(director)
    area = get_or_create_area(area_name)

    db.session.query(DirectorArea).filter(DirectorArea.director_id == director.id).delete(
        synchronize_session=False
    )
    db.session.add(DirectorArea(director_id=director.id, area_id=area.id))
    director.legacy_position = position
    db.session.flush()
    db.session.expire(director, ["director_areas"])

    append_change_event(
        event_type="director.completed",
        title=f"Director {director.name} completed",
        description=f"Area set to {area.name}, position set to {position}",
        affected_tables=["directors", "director_areas", "areas"],
        changes=[
            f"position: {previous.position or '-'} -> {position}",
            f"areas: {', '.join(previous.areas) or '-'} -> {area.name}",
        ],
        actor=actor,
    )
    return build_profile(director)


def list_directors() -> list[DirectorProfile]:
    directors = db.session.query(Director).order_by(Director.name.asc(), Director.id.asc()).all()
    return [build_profile(d) for d in directors]


def list_areas() -> list[Area]:
    return db.session.query(Area).order_by(Area.name.asc()).all()


def suggest_director(term: str | None) -> DirectorProfile | None:
    """
    Best director for free text (usually an asset's custodian field).

    Accent-insensitive exact name match first; otherwise the director whose
    name contains the most query words. A word longer than three characters
    also counts when its last letter is dropped (plural and gender endings).
    """
    target = fold_accents(term)
    if not target:
        return None
    directors = db.session.query(Director).order_by(Director.id.asc()).all()

    for director in directors:
        if fold_accents(director.name) == target:
            return build_profile(director)

    parts = target.split()
    best = None
    best_count = 0
    for director in directors:
        name = fold_accents(director.name)
        count = sum(
            1 for part in parts
            if part in name or (len(part) > 3 and part[:-1] in name)
        )
        if count > best_count:
            best, best_count = director, count
    return build_profile(best) if best else None
