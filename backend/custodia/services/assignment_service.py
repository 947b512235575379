# Overview: Grouping rules for custody selections and the immutable SelectionSession draft.

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Sequence

from .catalog_service import CatalogAsset
from ..validation import ValidationError


"""
Grouping invariants (authoritative)

- All assets on one custody document share one custodian and one area.
- Names are compared after trim + case-fold.
- A blank value on either side never conflicts (legacy assets often carry
  no custodian or area yet).
- Custodian is checked before area; the first violation is reported.
- Batches are all-or-nothing: one violating candidate rejects the batch.
"""

ACCEPTED = "ACCEPTED"
CUSTODIAN_CONFLICT = "CUSTODIAN_CONFLICT"
AREA_CONFLICT = "AREA_CONFLICT"


@dataclass(frozen=True)
class AssignmentOutcome:
    status: str
    existing_value: str | None = None
    asset_key: str | None = None

    @property
    def accepted(self) -> bool:
        return self.status == ACCEPTED

    @property
    def message(self) -> str:
        if self.status == CUSTODIAN_CONFLICT:
            return f"Asset {self.asset_key} belongs to a different custodian than {self.existing_value}"
        if self.status == AREA_CONFLICT:
            return f"Asset {self.asset_key} belongs to a different area than {self.existing_value}"
        return "Accepted"

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "accepted": self.accepted,
            "existing_value": self.existing_value,
            "asset_key": self.asset_key,
            "message": self.message,
        }


OUTCOME_ACCEPTED = AssignmentOutcome(ACCEPTED)


def normalize_value(value: str | None) -> str:
    return (value or "").strip().casefold()


def _conflicts(existing: str | None, candidate: str | None, *, strict: bool = False) -> bool:
    a, b = normalize_value(existing), normalize_value(candidate)
    if not a:
        return False
    if strict:
        return a != b
    return bool(b) and a != b


def check_against(
    candidates: Sequence[CatalogAsset],
    custodian: str | None,
    area: str | None,
    *,
    strict: bool = False,
) -> AssignmentOutcome:
    """
    First violation of the (custodian, area) constraint among candidates.

    A blank constraint value accepts anything. With `strict`, a blank
    candidate value violates a non-blank constraint.
    """
    for candidate in candidates:
        if _conflicts(custodian, candidate.custodian, strict=strict):
            return AssignmentOutcome(CUSTODIAN_CONFLICT, custodian, candidate.key)
        if _conflicts(area, candidate.area, strict=strict):
            return AssignmentOutcome(AREA_CONFLICT, area, candidate.key)
    return OUTCOME_ACCEPTED


def can_join(candidate: CatalogAsset, selection: Sequence[CatalogAsset]) -> AssignmentOutcome:
    if not selection:
        return OUTCOME_ACCEPTED
    first = selection[0]
    return check_against((candidate,), first.custodian, first.area)


def can_join_all(candidates: Sequence[CatalogAsset], selection: Sequence[CatalogAsset]) -> AssignmentOutcome:
    """
    Validate a batch add.

    The constraint values come from the first selected asset; a field the
    selection has no value for falls back to the first candidate's value.
    Every candidate must carry the constraint value exactly, so a blank
    custodian or area rejects the batch when the constraint has one.
    """
    if not candidates:
        return OUTCOME_ACCEPTED
    first = selection[0] if selection else None
    anchor = candidates[0]
    custodian = (first.custodian if first else None) or anchor.custodian
    area = (first.area if first else None) or anchor.area
    return check_against(candidates, custodian, area, strict=True)


@dataclass(frozen=True)
class SelectionSession:
    """
    Draft custody document: selected assets plus per-asset holder overrides.

    Every mutator returns a new session; rejected additions return the
    unchanged session with the rejecting outcome.
    """
    assets: tuple[CatalogAsset, ...] = ()
    holders: tuple[tuple[str, str], ...] = ()

    def __len__(self) -> int:
        return len(self.assets)

    @property
    def keys(self) -> tuple[str, ...]:
        return tuple(a.key for a in self.assets)

    def contains(self, key: str) -> bool:
        return key in self.keys

    def with_asset(self, asset: CatalogAsset) -> tuple["SelectionSession", AssignmentOutcome]:
        if self.contains(asset.key):
            return self, OUTCOME_ACCEPTED
        outcome = can_join(asset, self.assets)
        if not outcome.accepted:
            return self, outcome
        return replace(self, assets=self.assets + (asset,)), outcome

    def with_assets(self, assets: Sequence[CatalogAsset]) -> tuple["SelectionSession", AssignmentOutcome]:
        fresh = []
        for asset in assets:
            if not self.contains(asset.key) and asset.key not in {a.key for a in fresh}:
                fresh.append(asset)
        outcome = can_join_all(fresh, self.assets)
        if not outcome.accepted:
            return self, outcome
        return replace(self, assets=self.assets + tuple(fresh)), outcome

    def without(self, key: str) -> "SelectionSession":
        return replace(
            self,
            assets=tuple(a for a in self.assets if a.key != key),
            holders=tuple((k, h) for k, h in self.holders if k != key),
        )

    def with_holder(self, key: str, holder: str | None) -> "SelectionSession":
        if not self.contains(key):
            raise ValidationError(f"Asset {key} is not in the selection")
        remaining = tuple((k, h) for k, h in self.holders if k != key)
        holder = (holder or "").strip()
        if not holder:
            return replace(self, holders=remaining)
        return replace(self, holders=remaining + ((key, holder),))

    def holder_for(self, key: str, default: str | None = None) -> str | None:
        for k, h in self.holders:
            if k == key:
                return h
        return default

    def to_dict(self) -> dict:
        return {
            "assets": [a.to_dict() for a in self.assets],
            "holders": {k: h for k, h in self.holders},
        }
