# Overview: Custody lifecycle (commit, decommission, holder edits, write-off) over the asset pools and ledgers.

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Sequence

from flask import current_app
from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import CustodyRecord, DecommissionRecord, ASSET_STATUS_WRITTEN_OFF
from ..time_utils import local_today
from ..validation import (
    ValidationError,
    NotFoundError,
    StoreError,
    CustodyStoreError,
    PartialCommitError,
    AssignmentConflictError,
    IncompleteDirectorError,
)
from .assignment_service import SelectionSession, check_against
from .catalog_service import get_asset, find_matching_asset, custody_snapshot_keys, to_catalog_asset
from .change_event_service import append_change_event
from .concurrency import flush_step, lock_for_update
from .director_service import resolve_director, NOT_FOUND, INCOMPLETE
from .folio_service import reserve_custody_folio, reserve_decommission_folio


"""
Custody lifecycle (authoritative)

Per custody folio:  COMMITTED -> PARTIALLY_DECOMMISSIONED -> FULLY_DECOMMISSIONED

- Commit validates everything before the first write.
- Atomic commits (default) leave nothing behind on failure; the caller
  rolls back. Best-effort commits keep the assets that succeeded and raise
  PartialCommitError describing the rest.
- Decommission copies ledger rows to the decommission ledger, deletes the
  custody rows by (folio, inventory_code) and clears the matching pool asset.
  An asset that cannot be matched stays untouched and is reported.
"""

CUSTODY_COMMITTED = "COMMITTED"
PARTIALLY_DECOMMISSIONED = "PARTIALLY_DECOMMISSIONED"
FULLY_DECOMMISSIONED = "FULLY_DECOMMISSIONED"

CUSTODY_TABLES = ["custody_ledger", "folio_claims"]
DECOMMISSION_TABLES = ["decommission_ledger", "custody_ledger", "folio_claims"]


@dataclass(frozen=True)
class CustodyItem:
    origin: str
    asset_id: int | None
    inventory_code: str
    description: str | None
    category: str | None
    condition: str | None
    holder: str | None

    def to_dict(self) -> dict:
        return {
            "origin": self.origin,
            "asset_id": self.asset_id,
            "inventory_code": self.inventory_code,
            "description": self.description,
            "category": self.category,
            "condition": self.condition,
            "holder": self.holder,
        }


@dataclass(frozen=True)
class CustodyDocument:
    """Everything the PDF collaborator needs to print a custody document."""
    folio: str
    assigned_on: date
    custodian: str
    area: str
    position: str | None
    holder: str | None
    items: tuple[CustodyItem, ...]
    folio_warning: bool = False

    def to_dict(self) -> dict:
        return {
            "folio": self.folio,
            "assigned_on": self.assigned_on.isoformat(),
            "custodian": self.custodian,
            "area": self.area,
            "position": self.position,
            "holder": self.holder,
            "items": [i.to_dict() for i in self.items],
            "folio_warning": self.folio_warning,
        }


@dataclass(frozen=True)
class DecommissionDocument:
    decommission_folio: str
    custody_folio: str
    decommissioned_on: date
    custodian: str | None
    area: str | None
    position: str | None
    items: tuple[CustodyItem, ...]
    unmatched_assets: tuple[dict, ...] = ()
    state: str = FULLY_DECOMMISSIONED

    def to_dict(self) -> dict:
        return {
            "decommission_folio": self.decommission_folio,
            "custody_folio": self.custody_folio,
            "decommissioned_on": self.decommissioned_on.isoformat(),
            "custodian": self.custodian,
            "area": self.area,
            "position": self.position,
            "items": [i.to_dict() for i in self.items],
            "unmatched_assets": list(self.unmatched_assets),
            "state": self.state,
        }


def _item_from_record(record) -> CustodyItem:
    return CustodyItem(
        origin=record.origin,
        asset_id=getattr(record, "asset_id", None),
        inventory_code=record.inventory_code,
        description=record.description,
        category=record.category,
        condition=record.condition,
        holder=record.holder,
    )


def _common_holder(records) -> str | None:
    holders = {r.holder for r in records}
    return holders.pop() if len(holders) == 1 else None


def _required(value: str | None, name: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValidationError(f"{name} cannot be blank")
    return value


# =============================================================================
# Commit
# =============================================================================

def _validate_commit(selection: SelectionSession, custodian: str, area: str) -> None:
    if not len(selection):
        raise ValidationError("Selection is empty")

    first = selection.assets[0]
    outcome = check_against(selection.assets, first.custodian, first.area)
    if not outcome.accepted:
        raise AssignmentConflictError(outcome.message, outcome=outcome)
    outcome = check_against(selection.assets, custodian, area)
    if not outcome.accepted:
        raise AssignmentConflictError(outcome.message, outcome=outcome)

    resolution = resolve_director(custodian)
    if resolution.status == NOT_FOUND:
        raise NotFoundError(f"Director {custodian} not found")
    if resolution.status == INCOMPLETE:
        raise IncompleteDirectorError(
            f"Director {custodian} is incomplete: missing {', '.join(resolution.missing_fields)}",
            missing_fields=list(resolution.missing_fields),
        )
    if not resolution.director.has_area(area):
        raise ValidationError(f"Director {custodian} is not assigned to area {area}")

    in_custody = custody_snapshot_keys()
    for asset in selection.assets:
        current = to_catalog_asset(get_asset(asset.origin, asset.id))
        if current.snapshot_key() in in_custody:
            raise ValidationError(f"Asset {asset.key} is already on a custody document")


def _assign_asset(asset, *, folio, day, custodian, area, position, holder, actor) -> CustodyItem:
    row = get_asset(asset.origin, asset.id)
    row.custodian = custodian
    row.area = area
    row.holder = holder

    record = CustodyRecord(
        folio=folio,
        assigned_on=day,
        area=area,
        custodian=custodian,
        position=position,
        inventory_code=row.inventory_code,
        description=row.description,
        category=row.category,
        condition=row.condition,
        origin=row.origin,
        asset_id=row.id,
        holder=holder,
        created_by=actor,
    )
    db.session.add(record)
    flush_step("asset assignment", CustodyStoreError, asset=asset.key)
    return _item_from_record(record)


def commit_custody(
    selection: SelectionSession,
    *,
    custodian: str | None,
    area: str | None,
    position: str | None,
    holder: str | None = None,
    actor: str | None = None,
    atomic: bool = True,
    today: date | None = None,
) -> CustodyDocument:
    """
    Put the selected assets under one custodian/area on a fresh folio.

    Raises before any write when validation fails. In best-effort mode
    (atomic=False) raises PartialCommitError after applying what it could.
    """
    custodian = _required(custodian, "custodian")
    area = _required(area, "area")
    position = _required(position, "position")
    default_holder = (holder or "").strip() or None

    _validate_commit(selection, custodian, area)

    day = today or local_today()
    folio = reserve_custody_folio(actor=actor, today=day)

    items: list[CustodyItem] = []
    failed: list[dict] = []
    for asset in selection.assets:
        kwargs = dict(
            folio=folio,
            day=day,
            custodian=custodian,
            area=area,
            position=position,
            holder=selection.holder_for(asset.key, default_holder),
            actor=actor,
        )
        if atomic:
            items.append(_assign_asset(asset, **kwargs))
            continue

        nested = db.session.begin_nested()
        try:
            item = _assign_asset(asset, **kwargs)
            nested.commit()
        except (StoreError, NotFoundError, SQLAlchemyError) as exc:
            nested.rollback()
            current_app.logger.warning("Custody assignment of %s on %s failed: %s", asset.key, folio, exc)
            failed.append({"origin": asset.origin, "asset_id": asset.id, "error": str(exc)})
            continue
        items.append(item)

    if not items:
        raise CustodyStoreError(f"No asset could be assigned to {folio}", step="asset assignment")

    document = CustodyDocument(
        folio=folio,
        assigned_on=day,
        custodian=custodian,
        area=area,
        position=position,
        holder=default_holder,
        items=tuple(items),
    )

    append_change_event(
        event_type="custody.committed",
        title=f"Custody document {folio} created",
        description=f"{len(items)} asset(s) assigned to {custodian} ({area})",
        affected_tables=CUSTODY_TABLES + sorted({f"assets_{i.origin.lower()}" for i in items}),
        changes=[f"{i.inventory_code}: custodian -> {custodian}, area -> {area}" for i in items],
        actor=actor,
        importance="high" if failed else "medium",
    )

    if failed:
        raise PartialCommitError(
            f"{len(failed)} of {len(selection)} asset(s) could not be assigned to {folio}",
            document=document,
            failed=failed,
        )
    return document


# =============================================================================
# Decommission
# =============================================================================

def _custody_rows(folio: str, *, lock: bool = False) -> list[CustodyRecord]:
    query = (
        db.session.query(CustodyRecord)
        .filter(CustodyRecord.folio == folio)
        .order_by(CustodyRecord.id.asc())
    )
    if lock:
        query = lock_for_update(query)
    return query.all()


def custody_state(folio: str) -> str:
    folio = (folio or "").strip()
    live = db.session.query(func.count(CustodyRecord.id)).filter(CustodyRecord.folio == folio).scalar() or 0
    retired = (
        db.session.query(func.count(DecommissionRecord.id))
        .filter(DecommissionRecord.custody_folio == folio)
        .scalar()
        or 0
    )
    if live and retired:
        return PARTIALLY_DECOMMISSIONED
    if live:
        return CUSTODY_COMMITTED
    if retired:
        return FULLY_DECOMMISSIONED
    raise NotFoundError(f"Custody folio {folio} not found")


def decommission_custody(
    custody_folio: str,
    inventory_codes: Sequence[str] | None = None,
    *,
    actor: str | None = None,
    today: date | None = None,
) -> DecommissionDocument:
    """
    Retire all (inventory_codes=None) or some assets of a custody document.

    Every retired ledger row gets an audit copy under one new decommission
    folio. Rows are deleted by (folio, inventory_code), so duplicated rows of
    the same code go together.
    """
    custody_folio = _required(custody_folio, "custody_folio")
    rows = _custody_rows(custody_folio, lock=True)
    if not rows:
        raise NotFoundError(f"Custody folio {custody_folio} has no active assets")

    if inventory_codes is None:
        codes = {r.inventory_code for r in rows}
    else:
        codes = {c.strip() for c in inventory_codes if c and c.strip()}
        if not codes:
            raise ValidationError("inventory_codes cannot be empty")
        known = {r.inventory_code for r in rows}
        unknown = sorted(codes - known)
        if unknown:
            raise ValidationError(f"Not on {custody_folio}: {', '.join(unknown)}")
    targets = [r for r in rows if r.inventory_code in codes]

    day = today or local_today()
    decommission_folio = reserve_decommission_folio(actor=actor, today=day)

    items = []
    for record in targets:
        db.session.add(DecommissionRecord(
            custody_folio=custody_folio,
            decommission_folio=decommission_folio,
            assigned_on=record.assigned_on,
            area=record.area,
            custodian=record.custodian,
            position=record.position,
            inventory_code=record.inventory_code,
            description=record.description,
            category=record.category,
            condition=record.condition,
            origin=record.origin,
            holder=record.holder,
            actor=actor,
        ))
        items.append(_item_from_record(record))
    flush_step("decommission copy", CustodyStoreError)

    head = targets[0]
    custodian, area, position = head.custodian, head.area, head.position
    snapshots = [
        (r.origin, r.inventory_code, r.description, r.category, r.condition, r.area)
        for r in targets
    ]

    for record in targets:
        db.session.delete(record)
    flush_step("custody row delete", CustodyStoreError)

    unmatched = []
    for origin, code, description, category, condition, asset_area in snapshots:
        asset = find_matching_asset(
            origin,
            inventory_code=code,
            description=description,
            category=category,
            condition=condition,
            area=asset_area,
        )
        if asset is None:
            current_app.logger.warning(
                "Decommission %s: no %s asset matches %s, custody fields left as-is",
                decommission_folio, origin, code,
            )
            unmatched.append({"origin": origin, "inventory_code": code})
            continue
        asset.custodian = None
        asset.area = None
        asset.holder = None
        flush_step("asset clearing", CustodyStoreError, asset=f"{origin}:{asset.id}")

    state = custody_state(custody_folio)

    append_change_event(
        event_type="custody.decommissioned",
        title=f"Custody document {custody_folio} decommissioned ({decommission_folio})",
        description=f"{len(items)} asset(s) retired, state {state}",
        affected_tables=DECOMMISSION_TABLES + sorted({f"assets_{i.origin.lower()}" for i in items}),
        changes=[f"{i.inventory_code}: custody cleared" for i in items]
        + [f"{u['inventory_code']}: asset not found, not cleared" for u in unmatched],
        actor=actor,
        importance="high" if unmatched else "medium",
    )

    return DecommissionDocument(
        decommission_folio=decommission_folio,
        custody_folio=custody_folio,
        decommissioned_on=day,
        custodian=custodian,
        area=area,
        position=position,
        items=tuple(items),
        unmatched_assets=tuple(unmatched),
        state=state,
    )


# =============================================================================
# Edits
# =============================================================================

def update_holder(record_id: int, holder: str | None, *, actor: str | None = None) -> CustodyRecord:
    """Change the holder of one ledger row and of the asset it points at."""
    record = db.session.get(CustodyRecord, record_id)
    if record is None:
        raise NotFoundError(f"Custody record {record_id} not found")

    holder = (holder or "").strip() or None
    previous = record.holder

    asset = find_matching_asset(
        record.origin,
        inventory_code=record.inventory_code,
        description=record.description,
        category=record.category,
        condition=record.condition,
        area=record.area,
    )
    if asset is None:
        current_app.logger.warning(
            "Holder edit on %s: no %s asset matches %s", record.folio, record.origin, record.inventory_code
        )
    else:
        asset.holder = holder
    record.holder = holder
    flush_step("holder update", CustodyStoreError, asset=f"{record.origin}:{record.inventory_code}")

    append_change_event(
        event_type="custody.holder_updated",
        title=f"Holder changed on {record.folio}",
        description=f"{record.inventory_code}: {previous or '-'} -> {holder or '-'}",
        affected_tables=["custody_ledger", f"assets_{record.origin.lower()}"],
        changes=[f"holder: {previous or '-'} -> {holder or '-'}"],
        actor=actor,
        importance="low",
    )
    return record


def write_off_asset(
    origin: str,
    asset_id: int,
    *,
    cause: str | None,
    decommissioned_on: date | None = None,
    actor: str | None = None,
):
    """Mark an asset BAJA with its cause and date; custody ledgers are untouched."""
    cause = _required(cause, "cause")
    asset = get_asset(origin, asset_id)
    if asset.status == ASSET_STATUS_WRITTEN_OFF:
        raise ValidationError(f"Asset {asset.origin}:{asset.id} is already written off")

    previous = asset.status
    asset.status = ASSET_STATUS_WRITTEN_OFF
    asset.decommission_cause = cause
    asset.decommissioned_on = decommissioned_on or local_today()
    flush_step("write-off", CustodyStoreError, asset=f"{asset.origin}:{asset.id}")

    append_change_event(
        event_type="asset.written_off",
        title=f"Asset {asset.inventory_code} written off",
        description=cause,
        affected_tables=[f"assets_{asset.origin.lower()}"],
        changes=[f"status: {previous or '-'} -> {ASSET_STATUS_WRITTEN_OFF}"],
        actor=actor,
    )
    return asset


# =============================================================================
# Reads
# =============================================================================

def get_custody_document(folio: str) -> CustodyDocument:
    folio = (folio or "").strip()
    rows = _custody_rows(folio)
    if not rows:
        raise NotFoundError(f"Custody folio {folio} has no active assets")
    head = rows[0]
    return CustodyDocument(
        folio=head.folio,
        assigned_on=head.assigned_on,
        custodian=head.custodian,
        area=head.area,
        position=head.position,
        holder=_common_holder(rows),
        items=tuple(_item_from_record(r) for r in rows),
    )


def list_custody_records(search: str | None = None, limit: int = 50) -> list[dict]:
    """Custody ledger grouped per folio, newest first."""
    query = db.session.query(CustodyRecord)
    term = (search or "").strip()
    if term:
        like = f"%{term}%"
        query = query.filter(or_(
            CustodyRecord.folio.ilike(like),
            CustodyRecord.custodian.ilike(like),
            CustodyRecord.area.ilike(like),
            CustodyRecord.inventory_code.ilike(like),
            CustodyRecord.holder.ilike(like),
        ))
    rows = query.order_by(
        CustodyRecord.assigned_on.desc(), CustodyRecord.folio.desc(), CustodyRecord.id.asc()
    ).all()

    groups: dict[str, dict] = {}
    for r in rows:
        group = groups.get(r.folio)
        if group is None:
            if len(groups) >= limit:
                continue
            group = groups[r.folio] = {
                "folio": r.folio,
                "assigned_on": r.assigned_on.isoformat() if r.assigned_on else None,
                "custodian": r.custodian,
                "area": r.area,
                "position": r.position,
                "created_by": r.created_by,
                "asset_count": 0,
                "records": [],
            }
        group["asset_count"] += 1
        group["records"].append(r.to_dict())
    return list(groups.values())


def _decommission_rows(decommission_folio: str) -> list[DecommissionRecord]:
    return (
        db.session.query(DecommissionRecord)
        .filter(DecommissionRecord.decommission_folio == decommission_folio)
        .order_by(DecommissionRecord.id.asc())
        .all()
    )


def get_decommission_document(decommission_folio: str) -> DecommissionDocument:
    decommission_folio = (decommission_folio or "").strip()
    rows = _decommission_rows(decommission_folio)
    if not rows:
        raise NotFoundError(f"Decommission folio {decommission_folio} not found")
    head = rows[0]
    return DecommissionDocument(
        decommission_folio=head.decommission_folio,
        custody_folio=head.custody_folio,
        decommissioned_on=head.created_at.date() if head.created_at else local_today(),
        custodian=head.custodian,
        area=head.area,
        position=head.position,
        items=tuple(_item_from_record(r) for r in rows),
        state=custody_state(head.custody_folio),
    )


def list_decommission_records(custody_folio: str | None = None, limit: int = 50) -> list[dict]:
    """Decommission ledger grouped per decommission folio, newest first."""
    query = db.session.query(DecommissionRecord)
    if custody_folio:
        query = query.filter(DecommissionRecord.custody_folio == custody_folio.strip())
    rows = query.order_by(DecommissionRecord.created_at.desc(), DecommissionRecord.id.desc()).all()

    groups: dict[str, dict] = {}
    for r in rows:
        group = groups.get(r.decommission_folio)
        if group is None:
            if len(groups) >= limit:
                continue
            group = groups[r.decommission_folio] = {
                "decommission_folio": r.decommission_folio,
                "custody_folio": r.custody_folio,
                "custodian": r.custodian,
                "area": r.area,
                "actor": r.actor,
                "created_at": r.to_dict()["created_at"],
                "asset_count": 0,
                "records": [],
            }
        group["asset_count"] += 1
        group["records"].append(r.to_dict())
    for group in groups.values():
        group["records"].sort(key=lambda rec: rec["id"])
    return list(groups.values())
