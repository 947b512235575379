"""
Folio sequencing tests.

Covers custody/decommission numbering, read-only previews, the store-failure
fallback, and claim-based reservation.
"""

from datetime import date, datetime

import pytest
from sqlalchemy.exc import OperationalError

from custodia.extensions import db
from custodia.models import CustodyRecord, DecommissionRecord, FolioClaim
from custodia.services import folio_service


TODAY = date(2026, 10, 18)


def _ledger_row(folio, code, day=TODAY):
    row = CustodyRecord(
        folio=folio,
        assigned_on=day,
        area="FINANZAS",
        custodian="JUAN PEREZ",
        position="JEFE",
        inventory_code=code,
        origin="INEA",
    )
    db.session.add(row)
    db.session.flush()
    return row


def _decommission_row(folio, created_at, custody_folio="RES-20260101-001"):
    row = DecommissionRecord(
        custody_folio=custody_folio,
        decommission_folio=folio,
        inventory_code="INV-1",
        created_at=created_at,
    )
    db.session.add(row)
    db.session.flush()
    return row


class TestFormatting:
    def test_custody_folio_format(self):
        assert folio_service.format_custody_folio(TODAY, 1) == "RES-20261018-001"
        assert folio_service.format_custody_folio(TODAY, 42) == "RES-20261018-042"

    def test_decommission_folio_format(self):
        assert folio_service.format_decommission_folio(2026, 7) == "BAJA-2026-0007"

    @pytest.mark.parametrize("folio,expected", [
        ("BAJA-2025-0009", 9),
        ("BAJA-2026-0120", 120),
        (" BAJA-2026-0003 ", 3),
        ("BAJA-26-0003", None),
        ("RES-20261018-001", None),
        ("BAJA-2026-", None),
        ("", None),
        (None, None),
    ])
    def test_parse_decommission_sequence(self, folio, expected):
        assert folio_service.parse_decommission_sequence(folio) == expected


class TestCustodyFolio:
    def test_next_is_pure_read(self, db_session):
        first = folio_service.next_custody_folio(TODAY)
        second = folio_service.next_custody_folio(TODAY)

        assert first == second == "RES-20261018-001"
        assert db_session.query(FolioClaim).count() == 0

    def test_counts_distinct_folios_not_rows(self, db_session):
        _ledger_row("RES-20261018-001", "INV-1")
        _ledger_row("RES-20261018-001", "INV-2")

        assert folio_service.next_custody_folio(TODAY) == "RES-20261018-002"

    def test_other_days_do_not_count(self, db_session):
        _ledger_row("RES-20261017-001", "INV-1", day=date(2026, 10, 17))
        _ledger_row("RES-20261017-002", "INV-2", day=date(2026, 10, 17))

        assert folio_service.next_custody_folio(TODAY) == "RES-20261018-001"

    def test_preview_reports_no_fallback(self, db_session):
        preview = folio_service.preview_custody_folio(TODAY)

        assert preview.folio == "RES-20261018-001"
        assert preview.folio_type == "RESGUARDO"
        assert preview.is_fallback is False
        assert "warning" not in preview.to_dict()


class TestDecommissionFolio:
    def test_first_folio_of_the_year(self, db_session):
        assert folio_service.next_decommission_folio(TODAY) == "BAJA-2026-0001"

    def test_increments_from_latest(self, db_session):
        _decommission_row("BAJA-2026-0004", datetime(2026, 10, 1, 9, 0))
        _decommission_row("BAJA-2026-0005", datetime(2026, 10, 2, 9, 0))

        assert folio_service.next_decommission_folio(TODAY) == "BAJA-2026-0006"

    def test_sequence_carries_across_years(self, db_session):
        _decommission_row("BAJA-2025-0031", datetime(2025, 12, 30, 9, 0))

        assert folio_service.next_decommission_folio(TODAY) == "BAJA-2026-0032"

    def test_latest_is_by_creation_not_number(self, db_session):
        _decommission_row("BAJA-2026-0050", datetime(2026, 1, 1, 9, 0))
        _decommission_row("BAJA-2026-0002", datetime(2026, 6, 1, 9, 0))

        assert folio_service.next_decommission_folio(TODAY) == "BAJA-2026-0003"

    def test_malformed_latest_falls_back_to_first(self, db_session):
        _decommission_row("BAJA-2026-0008", datetime(2026, 1, 1, 9, 0))
        _decommission_row("BAJA/2026/9", datetime(2026, 6, 1, 9, 0))

        assert folio_service.next_decommission_folio(TODAY) == "BAJA-2026-0001"


class TestStoreFailure:
    def test_custody_preview_falls_back(self, db_session, monkeypatch):
        def _boom(day):
            raise OperationalError("SELECT", {}, Exception("database is locked"))

        monkeypatch.setattr(folio_service, "_custody_sequence", _boom)

        preview = folio_service.preview_custody_folio(TODAY)

        assert preview.folio == "RES-20261018-001"
        assert preview.is_fallback is True
        assert "warning" in preview.to_dict()

    def test_decommission_preview_falls_back(self, db_session, monkeypatch):
        def _boom():
            raise OperationalError("SELECT", {}, Exception("unreachable"))

        monkeypatch.setattr(folio_service, "_decommission_sequence", _boom)

        preview = folio_service.preview_decommission_folio(TODAY)

        assert preview.folio == "BAJA-2026-0001"
        assert preview.is_fallback is True

    def test_reservation_does_not_fall_back(self, db_session, monkeypatch):
        def _boom(day):
            raise OperationalError("SELECT", {}, Exception("unreachable"))

        monkeypatch.setattr(folio_service, "_custody_sequence", _boom)

        with pytest.raises(folio_service.StoreError):
            folio_service.reserve_custody_folio(today=TODAY)


class TestReservation:
    def test_reserve_claims_the_folio(self, db_session):
        folio = folio_service.reserve_custody_folio(actor="ana", today=TODAY)

        claim = db_session.query(FolioClaim).filter_by(folio=folio).one()
        assert folio == "RES-20261018-001"
        assert claim.folio_type == "RESGUARDO"
        assert claim.period == "20261018"
        assert claim.claimed_by == "ana"

    def test_second_reservation_advances(self, db_session):
        first = folio_service.reserve_custody_folio(today=TODAY)
        second = folio_service.reserve_custody_folio(today=TODAY)

        assert (first, second) == ("RES-20261018-001", "RES-20261018-002")

    def test_decommissioned_folio_is_not_reissued(self, db_session):
        # -001 was issued and later fully decommissioned: the count is back to 0
        db_session.add(FolioClaim(folio_type="RESGUARDO", period="20261018", folio="RES-20261018-001"))
        db_session.flush()

        assert folio_service.next_custody_folio(TODAY) == "RES-20261018-001"
        assert folio_service.reserve_custody_folio(today=TODAY) == "RES-20261018-002"

    def test_folio_present_in_ledger_is_skipped(self, db_session):
        # Legacy row whose assigned_on does not match its folio date
        _ledger_row("RES-20261018-001", "INV-1", day=date(2026, 10, 17))

        assert folio_service.reserve_custody_folio(today=TODAY) == "RES-20261018-002"

    def test_lost_race_advances(self, db_session, monkeypatch):
        # Another writer claims -001 between the check and the insert
        real_taken = folio_service._folio_taken
        raced = {"done": False}

        def _taken(folio_type, folio):
            if not raced["done"]:
                raced["done"] = True
                nested = db.session.begin_nested()
                db.session.add(FolioClaim(folio_type=folio_type, period="20261018", folio=folio))
                db.session.flush()
                nested.commit()
                return False
            return real_taken(folio_type, folio)

        monkeypatch.setattr(folio_service, "_folio_taken", _taken)

        assert folio_service.reserve_custody_folio(today=TODAY) == "RES-20261018-002"

    def test_reserve_decommission_folio(self, db_session):
        _decommission_row("BAJA-2026-0009", datetime(2026, 10, 1, 9, 0))

        folio = folio_service.reserve_decommission_folio(actor="ana", today=TODAY)

        claim = db_session.query(FolioClaim).filter_by(folio=folio).one()
        assert folio == "BAJA-2026-0010"
        assert claim.period == "2026"


def test_preview_folio_rejects_unknown_type(db_session):
    with pytest.raises(folio_service.FolioError):
        folio_service.preview_folio("FACTURA")
