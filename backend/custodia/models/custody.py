from __future__ import annotations

from sqlalchemy import event

from ..extensions import db
from custodia.time_utils import to_utc_z, to_iso_date


class CustodyRecord(db.Model):
    """
    One asset line of a signed custody document ("resguardo").

    Many rows share one folio (one document, many assets).

    INVARIANT (application level, NOT a storage constraint):
    All rows sharing a folio carry the same area and the same custodian.
    The assignment validator enforces it before commit; the schema permits
    violations so legacy data can still be loaded.

    SNAPSHOT:
    inventory_code / description / category / condition are copied from the
    asset at assignment time and never live-joined. Decommissioning uses the
    snapshot to find the physical asset again.

    LIFECYCLE:
    Rows are hard-deleted when their asset is decommissioned; the audit copy
    lives in DecommissionRecord.
    """
    __tablename__ = "custody_ledger"
    __table_args__ = (
        db.Index("ix_custody_ledger_folio_code", "folio", "inventory_code"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Document identity (e.g., "RES-20261018-001")
    folio = db.Column(db.String(32), nullable=False, index=True)
    assigned_on = db.Column(db.Date, nullable=False, index=True)

    # Custody anchor (denormalized names)
    area = db.Column(db.String(255), nullable=False)
    custodian = db.Column(db.String(255), nullable=False, index=True)
    position = db.Column(db.String(255), nullable=True)

    # Asset snapshot
    inventory_code = db.Column(db.String(64), nullable=False, index=True)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(128), nullable=True)
    condition = db.Column(db.String(8), nullable=True)
    origin = db.Column(db.String(16), nullable=False)
    asset_id = db.Column(db.Integer, nullable=True)

    holder = db.Column(db.String(255), nullable=True)

    created_by = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "folio": self.folio,
            "assigned_on": to_iso_date(self.assigned_on),
            "area": self.area,
            "custodian": self.custodian,
            "position": self.position,
            "inventory_code": self.inventory_code,
            "description": self.description,
            "category": self.category,
            "condition": self.condition,
            "origin": self.origin,
            "asset_id": self.asset_id,
            "holder": self.holder,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }


class DecommissionRecord(db.Model):
    """
    Append-only audit copy of a retired custody ledger row ("resguardo baja").

    One row per retired CustodyRecord. Rows retired together share one
    decommission folio and keep the originating custody folio.

    Never updated or deleted (the ORM refuses both, see listeners below).
    """
    __tablename__ = "decommission_ledger"
    __table_args__ = (
        db.Index("ix_decommission_ledger_created", "created_at", "id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    custody_folio = db.Column(db.String(32), nullable=False, index=True)
    decommission_folio = db.Column(db.String(32), nullable=False, index=True)

    # Original assignment date of the custody row
    assigned_on = db.Column(db.Date, nullable=True)

    area = db.Column(db.String(255), nullable=True)
    custodian = db.Column(db.String(255), nullable=True)
    position = db.Column(db.String(255), nullable=True)

    inventory_code = db.Column(db.String(64), nullable=False, index=True)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(128), nullable=True)
    condition = db.Column(db.String(8), nullable=True)
    origin = db.Column(db.String(16), nullable=True)
    holder = db.Column(db.String(255), nullable=True)

    actor = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "custody_folio": self.custody_folio,
            "decommission_folio": self.decommission_folio,
            "assigned_on": to_iso_date(self.assigned_on),
            "area": self.area,
            "custodian": self.custodian,
            "position": self.position,
            "inventory_code": self.inventory_code,
            "description": self.description,
            "category": self.category,
            "condition": self.condition,
            "origin": self.origin,
            "holder": self.holder,
            "actor": self.actor,
            "created_at": to_utc_z(self.created_at),
        }


@event.listens_for(DecommissionRecord, "before_update")
def _refuse_decommission_update(mapper, connection, target):
    raise ValueError("Decommission records are append-only")


@event.listens_for(DecommissionRecord, "before_delete")
def _refuse_decommission_delete(mapper, connection, target):
    raise ValueError("Decommission records are append-only")


class FolioClaim(db.Model):
    """
    One row per issued folio.

    WHY: Folio numbers are computed by counting existing documents, so two
    concurrent commits can compute the same number. The unique constraint on
    `folio` makes the loser advance to the next free number instead of
    issuing a duplicate.
    """
    __tablename__ = "folio_claims"
    __table_args__ = (
        db.UniqueConstraint("folio", name="uq_folio_claims_folio"),
        db.Index("ix_folio_claims_type_period", "folio_type", "period"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    folio_type = db.Column(db.String(16), nullable=False)  # RESGUARDO, BAJA
    period = db.Column(db.String(8), nullable=False)  # YYYYMMDD or YYYY
    folio = db.Column(db.String(32), nullable=False)
    claimed_by = db.Column(db.String(255), nullable=True)
    claimed_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "folio_type": self.folio_type,
            "period": self.period,
            "folio": self.folio,
            "claimed_by": self.claimed_by,
            "claimed_at": to_utc_z(self.claimed_at),
        }
