# Overview: Unified read model over the three asset pools (availability, sorting, snapshot matching, stats).

from __future__ import annotations

from dataclasses import dataclass, asdict

from sqlalchemy import func

from ..extensions import db
from ..models import (
    ChangeEvent,
    CustodyRecord,
    POOL_MODELS,
    ORIGIN_INEA,
    ORIGIN_ITEA,
    ORIGIN_POOLS,
    ASSET_STATUS_ACTIVE,
    ASSET_STATUS_WRITTEN_OFF,
)
from ..time_utils import parse_iso_date
from ..validation import ValidationError, NotFoundError


# Search field type -> CatalogAsset attribute
FIELD_ATTRIBUTES = {
    "id": "inventory_code",
    "description": "description",
    "category": "category",
    "condition": "condition",
    "status": "status",
    "area": "area",
    "custodian": "custodian",
    "holder": "holder",
}

SORTABLE_FIELDS = (
    "inventory_code",
    "description",
    "category",
    "condition",
    "status",
    "area",
    "custodian",
    "holder",
    "value_cents",
    "origin",
)


@dataclass(frozen=True)
class CatalogAsset:
    """Pool-independent projection of one asset row."""
    origin: str
    id: int
    inventory_code: str
    description: str | None = None
    category: str | None = None
    condition: str | None = None
    status: str | None = None
    area: str | None = None
    custodian: str | None = None
    holder: str | None = None
    value_cents: int | None = None
    location: str | None = None
    image_path: str | None = None

    @property
    def key(self) -> str:
        return f"{self.origin}:{self.id}"

    def field_value(self, field: str) -> str | None:
        return getattr(self, FIELD_ATTRIBUTES.get(field, field), None)

    def snapshot_key(self) -> tuple:
        return _snapshot_key(
            self.origin, self.inventory_code, self.description, self.category, self.condition, self.area
        )

    def to_dict(self) -> dict:
        data = asdict(self)
        data["key"] = self.key
        return data


def _norm(value) -> str:
    return (value or "").strip().lower()


def _snapshot_key(origin, inventory_code, description, category, condition, area) -> tuple:
    return (
        origin,
        _norm(inventory_code),
        _norm(description),
        _norm(category),
        _norm(condition),
        _norm(area),
    )


def normalize_origin(origin: str | None) -> str:
    value = (origin or "").strip().upper().replace("-", "_")
    if value not in ORIGIN_POOLS:
        raise ValidationError(f"Unknown asset origin: {origin}")
    return value


def model_for_origin(origin: str):
    return POOL_MODELS[normalize_origin(origin)]


def to_catalog_asset(row) -> CatalogAsset:
    return CatalogAsset(
        origin=row.origin,
        id=row.id,
        inventory_code=row.inventory_code,
        description=row.description,
        category=row.category,
        condition=row.condition,
        status=row.status,
        area=row.area,
        custodian=row.custodian,
        holder=row.holder,
        value_cents=row.value_cents,
        location=row.location,
        image_path=row.image_path,
    )


def get_asset(origin: str, asset_id: int):
    model = model_for_origin(origin)
    row = db.session.get(model, asset_id)
    if row is None:
        raise NotFoundError(f"Asset {normalize_origin(origin)}:{asset_id} not found")
    return row


def get_catalog_asset(origin: str, asset_id: int) -> CatalogAsset:
    return to_catalog_asset(get_asset(origin, asset_id))


def find_matching_asset(
    origin: str,
    *,
    inventory_code: str,
    description: str | None,
    category: str | None,
    condition: str | None,
    area: str | None,
):
    """
    Locate the pool row a custody snapshot was taken from.

    Matches exactly on the five snapshot fields; the inventory code alone is
    not unique in legacy pools. Returns None when nothing matches.
    """
    model = model_for_origin(origin)
    query = db.session.query(model).filter(model.inventory_code == inventory_code)
    for column, value in (
        (model.description, description),
        (model.category, category),
        (model.condition, condition),
        (model.area, area),
    ):
        query = query.filter(column.is_(None) if value is None else column == value)
    return query.order_by(model.id.asc()).first()


def _pool_rows(origin: str, *, available_only: bool):
    model = POOL_MODELS[origin]
    query = db.session.query(model)
    if available_only:
        # INEA hides written-off assets; ITEA only offers active ones; NO_LISTADO offers all
        if origin == ORIGIN_INEA:
            query = query.filter(
                (model.status.is_(None)) | (model.status != ASSET_STATUS_WRITTEN_OFF)
            )
        elif origin == ORIGIN_ITEA:
            query = query.filter(model.status == ASSET_STATUS_ACTIVE)
    return query.order_by(model.id.asc()).all()


def custody_snapshot_keys() -> set[tuple]:
    """Snapshot keys of every asset currently listed on a custody document."""
    rows = db.session.query(
        CustodyRecord.origin,
        CustodyRecord.inventory_code,
        CustodyRecord.description,
        CustodyRecord.category,
        CustodyRecord.condition,
        CustodyRecord.area,
    ).all()
    return {_snapshot_key(*row) for row in rows}


def _sort_value(asset: CatalogAsset, field: str):
    value = getattr(asset, field)
    if value is None:
        return (1, "")
    if isinstance(value, int):
        return (0, value)
    return (0, str(value).lower())


def list_assets(
    *,
    origin: str | None = None,
    available_only: bool = False,
    sort: str | None = None,
    descending: bool = False,
) -> list[CatalogAsset]:
    """
    Catalog rows across pools (or one pool).

    available_only drops pool-specific unavailable statuses and any asset
    whose snapshot already sits on a custody document.
    """
    origins = (normalize_origin(origin),) if origin else ORIGIN_POOLS
    sort_field = sort or "inventory_code"
    if sort_field not in SORTABLE_FIELDS:
        raise ValidationError(f"Cannot sort by {sort_field}")

    in_custody = custody_snapshot_keys() if available_only else set()

    assets: list[CatalogAsset] = []
    for pool in origins:
        for row in _pool_rows(pool, available_only=available_only):
            asset = to_catalog_asset(row)
            if available_only and asset.snapshot_key() in in_custody:
                continue
            assets.append(asset)

    if descending:
        # Nulls stay last in both directions
        present = [a for a in assets if getattr(a, sort_field) is not None]
        missing = [a for a in assets if getattr(a, sort_field) is None]
        present.sort(key=lambda a: _sort_value(a, sort_field), reverse=True)
        return present + missing
    assets.sort(key=lambda a: _sort_value(a, sort_field))
    return assets


def catalog_version() -> str:
    """
    Cheap token that changes whenever pool or custody data changes.

    Used to invalidate cached search corpora. Includes the newest change
    event because in-place asset edits can leave updated_at unchanged.
    """
    parts = []
    for origin in ORIGIN_POOLS:
        model = POOL_MODELS[origin]
        count, max_id, max_updated = db.session.query(
            func.count(model.id), func.max(model.id), func.max(model.updated_at)
        ).one()
        parts.append(f"{origin}:{count}:{max_id or 0}:{max_updated or ''}")
    ledger_count, ledger_max = db.session.query(
        func.count(CustodyRecord.id), func.max(CustodyRecord.id)
    ).one()
    parts.append(f"ledger:{ledger_count}:{ledger_max or 0}")
    events_max = db.session.query(func.max(ChangeEvent.id)).scalar()
    parts.append(f"events:{events_max or 0}")
    return "|".join(parts)


def catalog_stats() -> dict:
    in_custody = custody_snapshot_keys()
    pools = {}
    for origin in ORIGIN_POOLS:
        model = POOL_MODELS[origin]
        total = db.session.query(func.count(model.id)).scalar() or 0
        written_off = (
            db.session.query(func.count(model.id))
            .filter(model.status == ASSET_STATUS_WRITTEN_OFF)
            .scalar()
            or 0
        )
        available_rows = [
            to_catalog_asset(row) for row in _pool_rows(origin, available_only=True)
        ]
        available = sum(1 for a in available_rows if a.snapshot_key() not in in_custody)
        pools[origin] = {
            "total": int(total),
            "written_off": int(written_off),
            "available": available,
        }
    custody_rows = db.session.query(func.count(CustodyRecord.id)).scalar() or 0
    custody_folios = db.session.query(func.count(func.distinct(CustodyRecord.folio))).scalar() or 0
    return {
        "pools": pools,
        "custody_rows": int(custody_rows),
        "custody_folios": int(custody_folios),
    }


IMPORTABLE_TEXT_FIELDS = (
    "description",
    "category",
    "condition",
    "status",
    "acquisition_method",
    "invoice",
    "location",
    "municipality",
    "area",
    "custodian",
    "holder",
    "image_path",
)


def load_assets(origin: str, rows) -> int:
    """
    Insert intake rows (dicts keyed by column name) into one pool.

    Used by the CLI loader; blank cells become NULL. Rows without an
    inventory_code are rejected.
    """
    model = model_for_origin(origin)
    created = 0
    for index, raw in enumerate(rows, start=1):
        data = {k.strip(): (v.strip() if isinstance(v, str) else v) for k, v in raw.items() if k}
        code = data.get("inventory_code")
        if not code:
            raise ValidationError(f"Row {index}: inventory_code is required")

        asset = model(inventory_code=code)
        for name in IMPORTABLE_TEXT_FIELDS:
            if data.get(name):
                setattr(asset, name, data[name])
        if not asset.status:
            asset.status = ASSET_STATUS_ACTIVE
        if data.get("value_cents"):
            try:
                asset.value_cents = int(data["value_cents"])
            except (TypeError, ValueError):
                raise ValidationError(f"Row {index}: value_cents must be an integer")
        if data.get("acquired_on"):
            try:
                asset.acquired_on = parse_iso_date(data["acquired_on"])
            except ValueError:
                raise ValidationError(f"Row {index}: acquired_on must be an ISO-8601 date")
        db.session.add(asset)
        created += 1
    db.session.flush()
    return created
