from __future__ import annotations

from ..extensions import db
from custodia.time_utils import to_utc_z


class Area(db.Model):
    """
    Organizational unit an asset can be assigned to.

    Names are unique and compared case-sensitively at the storage level;
    the custody workflow compares them case-insensitively.
    """
    __tablename__ = "areas"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, unique=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "created_at": to_utc_z(self.created_at),
        }


class Director(db.Model):
    """
    Person who can be named custodian of a custody document ("director").

    COMPLETENESS:
    - A director with a blank legacy_position or no DirectorArea rows is
      "incomplete" and cannot sign custody documents until completed.
    - legacy_area is the free-text area carried over from the old directory;
      it is informational only. Authoritative areas live in DirectorArea.
    """
    __tablename__ = "directors"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, index=True)
    legacy_area = db.Column(db.String(255), nullable=True)
    legacy_position = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "legacy_area": self.legacy_area,
            "position": self.legacy_position,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class DirectorArea(db.Model):
    """Many-to-many mapping between directors and the areas they answer for."""
    __tablename__ = "director_areas"
    __table_args__ = (
        db.UniqueConstraint("director_id", "area_id", name="uq_director_areas_director_area"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    director_id = db.Column(db.Integer, db.ForeignKey("directors.id"), nullable=False, index=True)
    area_id = db.Column(db.Integer, db.ForeignKey("areas.id"), nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    director = db.relationship("Director", backref=db.backref("director_areas", lazy=True))
    area = db.relationship("Area", backref=db.backref("director_areas", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "director_id": self.director_id,
            "area_id": self.area_id,
            "created_at": to_utc_z(self.created_at),
        }
