from __future__ import annotations

from ..extensions import db
from custodia.time_utils import to_utc_z, to_iso_date


ORIGIN_INEA = "INEA"
ORIGIN_ITEA = "ITEA"
ORIGIN_NO_LISTADO = "NO_LISTADO"
ORIGIN_POOLS = (ORIGIN_INEA, ORIGIN_ITEA, ORIGIN_NO_LISTADO)

ASSET_STATUS_ACTIVE = "ACTIVO"
ASSET_STATUS_INACTIVE = "INACTIVO"
ASSET_STATUS_WRITTEN_OFF = "BAJA"


class AssetColumnsMixin:
    """
    Columns shared by the three physical asset pools.

    WHY: The pools come from separate intake processes (INEA, ITEA and the
    unlisted "no listado" inventory) and live in separate tables, but the
    custody workflow treats them uniformly. Each concrete model sets `origin`.

    INVENTORY CODE:
    - Human readable, expected unique within a pool.
    - NOT enforced by a constraint: legacy pools carry physical duplicates,
      which is why custody decommissioning matches on the full descriptive
      snapshot instead of the code alone.

    CUSTODY FIELDS:
    - area / custodian / holder are written by the custody workflow and
      cleared when the asset is decommissioned from its custody record.
    - decommissioned_on / decommission_cause belong to the write-off action,
      which is unrelated to custody decommissioning.
    """
    origin = ""

    id = db.Column(db.Integer, primary_key=True)

    inventory_code = db.Column(db.String(64), nullable=False, index=True)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(128), nullable=True)  # "rubro"
    condition = db.Column(db.String(8), nullable=True)  # B, R, M, N
    status = db.Column(db.String(16), nullable=False, default=ASSET_STATUS_ACTIVE, index=True)

    # Authoritative storage in cents
    value_cents = db.Column(db.Integer, nullable=True)

    # Acquisition metadata
    acquired_on = db.Column(db.Date, nullable=True)
    acquisition_method = db.Column(db.String(64), nullable=True)
    invoice = db.Column(db.String(64), nullable=True)

    # Location
    location = db.Column(db.String(255), nullable=True)
    municipality = db.Column(db.String(128), nullable=True)

    # Current custody (denormalized names)
    area = db.Column(db.String(255), nullable=True, index=True)
    custodian = db.Column(db.String(255), nullable=True, index=True)
    holder = db.Column(db.String(255), nullable=True)

    # Write-off
    decommissioned_on = db.Column(db.Date, nullable=True)
    decommission_cause = db.Column(db.String(255), nullable=True)

    image_path = db.Column(db.String(512), nullable=True)

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
            "origin": self.origin,
            "inventory_code": self.inventory_code,
            "description": self.description,
            "category": self.category,
            "condition": self.condition,
            "status": self.status,
            "value_cents": self.value_cents,
            "acquired_on": to_iso_date(self.acquired_on),
            "acquisition_method": self.acquisition_method,
            "invoice": self.invoice,
            "location": self.location,
            "municipality": self.municipality,
            "area": self.area,
            "custodian": self.custodian,
            "holder": self.holder,
            "decommissioned_on": to_iso_date(self.decommissioned_on),
            "decommission_cause": self.decommission_cause,
            "image_path": self.image_path,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class IneaAsset(AssetColumnsMixin, db.Model):
    __tablename__ = "assets_inea"
    __table_args__ = {"sqlite_autoincrement": True}

    origin = ORIGIN_INEA


class IteaAsset(AssetColumnsMixin, db.Model):
    __tablename__ = "assets_itea"
    __table_args__ = {"sqlite_autoincrement": True}

    origin = ORIGIN_ITEA


class NoListadoAsset(AssetColumnsMixin, db.Model):
    __tablename__ = "assets_no_listado"
    __table_args__ = {"sqlite_autoincrement": True}

    origin = ORIGIN_NO_LISTADO


POOL_MODELS = {
    ORIGIN_INEA: IneaAsset,
    ORIGIN_ITEA: IteaAsset,
    ORIGIN_NO_LISTADO: NoListadoAsset,
}
