"""
Grouping invariant tests for custody selections.
"""

import pytest

from custodia.services.assignment_service import (
    ACCEPTED,
    AREA_CONFLICT,
    CUSTODIAN_CONFLICT,
    SelectionSession,
    can_join,
    can_join_all,
)
from custodia.services.catalog_service import CatalogAsset
from custodia.validation import ValidationError


def asset(id, custodian="Juan Pérez", area="FINANZAS", origin="INEA"):
    return CatalogAsset(origin=origin, id=id, inventory_code=f"INV-{id}", custodian=custodian, area=area)


class TestCanJoin:
    def test_empty_selection_accepts_anything(self):
        assert can_join(asset(1, custodian="Anyone", area="Anywhere"), []).status == ACCEPTED

    @pytest.mark.parametrize("custodian,area", [
        ("Juan Pérez", "FINANZAS"),
        ("  juan pérez ", "finanzas"),
        ("JUAN PÉREZ", " Finanzas"),
    ])
    def test_normalized_values_match(self, custodian, area):
        outcome = can_join(asset(2, custodian=custodian, area=area), [asset(1)])

        assert outcome.accepted

    def test_custodian_conflict_reports_existing(self):
        outcome = can_join(asset(2, custodian="Ana Ruiz"), [asset(1)])

        assert outcome.status == CUSTODIAN_CONFLICT
        assert outcome.existing_value == "Juan Pérez"
        assert outcome.asset_key == "INEA:2"

    def test_area_conflict_reports_existing(self):
        outcome = can_join(asset(2, area="SISTEMAS"), [asset(1)])

        assert outcome.status == AREA_CONFLICT
        assert outcome.existing_value == "FINANZAS"

    def test_custodian_checked_before_area(self):
        outcome = can_join(asset(2, custodian="Ana Ruiz", area="SISTEMAS"), [asset(1)])

        assert outcome.status == CUSTODIAN_CONFLICT

    @pytest.mark.parametrize("candidate,first", [
        (asset(2, custodian=None), asset(1)),
        (asset(2, custodian="   "), asset(1)),
        (asset(2), asset(1, custodian=None, area="")),
    ])
    def test_blank_values_never_conflict(self, candidate, first):
        assert can_join(candidate, [first]).accepted

    def test_compares_against_first_selected_only(self):
        selection = [asset(1), asset(2, custodian=None)]

        assert can_join(asset(3, custodian="Ana Ruiz"), selection).status == CUSTODIAN_CONFLICT


class TestCanJoinAll:
    def test_uniform_batch_accepts(self):
        batch = [asset(i, custodian=" juan PÉREZ", area="finanzas ") for i in range(1, 6)]

        assert can_join_all(batch, [asset(99)]).accepted

    @pytest.mark.parametrize("field,value,status", [
        ("custodian", "Ana Ruiz", CUSTODIAN_CONFLICT),
        ("area", "SISTEMAS", AREA_CONFLICT),
    ])
    def test_one_different_asset_rejects_batch(self, field, value, status):
        batch = [asset(i) for i in range(1, 6)]
        odd = batch[3]
        batch[3] = asset(odd.id, **{"custodian": odd.custodian, "area": odd.area, field: value})

        outcome = can_join_all(batch, [])

        assert outcome.status == status
        assert outcome.asset_key == "INEA:4"

    def test_empty_selection_anchors_on_first_candidate(self):
        outcome = can_join_all([asset(1, custodian="Ana Ruiz"), asset(2)], [])

        assert outcome.status == CUSTODIAN_CONFLICT
        assert outcome.existing_value == "Ana Ruiz"

    def test_selection_anchor_wins_over_candidates(self):
        outcome = can_join_all([asset(2, custodian="Ana Ruiz"), asset(3, custodian="Ana Ruiz")], [asset(1)])

        assert outcome.status == CUSTODIAN_CONFLICT
        assert outcome.existing_value == "Juan Pérez"

    def test_missing_selection_field_falls_back_to_candidate(self):
        selection = [asset(1, custodian=None)]
        batch = [asset(2, custodian="Ana Ruiz"), asset(3, custodian="Juan Pérez")]

        outcome = can_join_all(batch, selection)

        assert outcome.status == CUSTODIAN_CONFLICT
        assert outcome.existing_value == "Ana Ruiz"

    def test_empty_batch_accepts(self):
        assert can_join_all([], [asset(1)]).accepted

    @pytest.mark.parametrize("blank,status", [
        ({"custodian": None}, CUSTODIAN_CONFLICT),
        ({"custodian": "   "}, CUSTODIAN_CONFLICT),
        ({"area": ""}, AREA_CONFLICT),
    ])
    def test_blank_candidate_rejects_batch(self, blank, status):
        batch = [asset(2, **blank), asset(3)]

        outcome = can_join_all(batch, [asset(1)])

        assert outcome.status == status
        assert outcome.asset_key == "INEA:2"

    def test_blank_anchor_leaves_field_unconstrained(self):
        batch = [asset(1, custodian=None), asset(2, custodian="Ana Ruiz"), asset(3, custodian=None)]

        assert can_join_all(batch, []).accepted

    def test_batch_is_stricter_than_single_add(self):
        candidate = asset(2, custodian=None)

        assert can_join(candidate, [asset(1)]).accepted
        assert can_join_all([candidate], [asset(1)]).status == CUSTODIAN_CONFLICT


class TestSelectionSession:
    def test_with_asset_returns_new_session(self):
        empty = SelectionSession()
        one, outcome = empty.with_asset(asset(1))

        assert outcome.accepted
        assert len(empty) == 0
        assert one.keys == ("INEA:1",)

    def test_rejected_asset_leaves_session_unchanged(self):
        one, _ = SelectionSession().with_asset(asset(1))
        same, outcome = one.with_asset(asset(2, area="SISTEMAS"))

        assert same is one
        assert outcome.status == AREA_CONFLICT

    def test_duplicate_asset_is_ignored(self):
        one, _ = SelectionSession().with_asset(asset(1))
        again, outcome = one.with_asset(asset(1))

        assert outcome.accepted
        assert again.keys == ("INEA:1",)

    def test_with_assets_is_all_or_nothing(self):
        one, _ = SelectionSession().with_asset(asset(1))
        same, outcome = one.with_assets([asset(2), asset(3, custodian="Ana Ruiz")])

        assert same is one
        assert outcome.status == CUSTODIAN_CONFLICT

        three, outcome = one.with_assets([asset(2), asset(3), asset(2)])
        assert outcome.accepted
        assert three.keys == ("INEA:1", "INEA:2", "INEA:3")

    def test_same_id_in_different_pools_are_different_assets(self):
        session, _ = SelectionSession().with_assets([asset(1), asset(1, origin="ITEA")])

        assert session.keys == ("INEA:1", "ITEA:1")

    def test_holder_overrides(self):
        session, _ = SelectionSession().with_assets([asset(1), asset(2)])
        session = session.with_holder("INEA:2", "  Luis Mora ")

        assert session.holder_for("INEA:1", "Default") == "Default"
        assert session.holder_for("INEA:2", "Default") == "Luis Mora"

        cleared = session.with_holder("INEA:2", "")
        assert cleared.holder_for("INEA:2") is None

    def test_holder_for_unknown_asset_rejected(self):
        with pytest.raises(ValidationError):
            SelectionSession().with_holder("INEA:1", "Luis Mora")

    def test_without_drops_asset_and_override(self):
        session, _ = SelectionSession().with_assets([asset(1), asset(2)])
        session = session.with_holder("INEA:2", "Luis Mora").without("INEA:2")

        assert session.keys == ("INEA:1",)
        assert session.holders == ()
