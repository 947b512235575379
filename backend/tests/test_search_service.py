"""
Ranked search tests: classify, suggest, filter narrowing, corpus caching.
"""

import pytest

from custodia.models import CustodyRecord
from custodia.services.assignment_service import SelectionSession
from custodia.services.catalog_service import CatalogAsset, to_catalog_asset
from custodia.services import custody_service, search_service
from custodia.services.search_service import (
    ActiveFilter,
    RankingRule,
    SearchCorpus,
    classify,
    classify_match,
    filter_assets,
    suggest,
)
from custodia.validation import ValidationError

from conftest import ACTOR, make_asset, make_director


def asset(id, **fields):
    fields.setdefault("inventory_code", f"INV-{id:03d}")
    return CatalogAsset(origin=fields.pop("origin", "INEA"), id=id, **fields)


@pytest.fixture
def corpus():
    return SearchCorpus([
        asset(1, description="Escritorio de madera", area="Juanacatlán", custodian="María López", category="MOBILIARIO"),
        asset(2, description="Silla secretarial", area="FINANZAS", custodian="Juan Pérez", holder="Ana Ruiz"),
        asset(3, inventory_code="JUAN-77", description="Computadora", area="SISTEMAS", custodian="Pedro Gómez"),
    ])


class TestClassify:
    def test_custodian_outranks_area(self, corpus):
        assert classify("juan", corpus) == "custodian"

    def test_first_rule_hit_per_row_is_the_only_one_scored(self):
        # Row 1's custodian is tested before its area, so its exact area match never scores
        corpus = SearchCorpus([
            asset(1, custodian="Finanzas Torres", area="FINANZAS"),
        ])
        match = classify_match("finanzas", corpus)

        assert match.field == "custodian"
        assert match.score == 7

    def test_exact_match_beats_substring_of_same_tier(self):
        corpus = SearchCorpus([
            asset(1, area="SISTEMAS CENTRALES"),
            asset(2, area="Sistemas"),
        ])
        match = classify_match("sistemas", corpus)

        assert match.value == "Sistemas"
        assert match.score == 6

    def test_holder_counts_as_custodian(self, corpus):
        match = classify_match("ana ruiz", corpus)

        assert match.field == "custodian"
        assert match.value == "Ana Ruiz"
        assert match.score == 8

    def test_exact_holder_beats_partial_custodian_on_same_row(self):
        corpus = SearchCorpus([asset(1, custodian="Juan Pérez", holder="juan")])

        match = classify_match("juan", corpus)

        assert match.field == "custodian"
        assert match.value == "juan"
        assert match.score == 8

    def test_padded_values_match_exactly(self):
        corpus = SearchCorpus([asset(1, area="  Sistemas ")])

        match = classify_match("sistemas", corpus)

        assert (match.value, match.score) == ("Sistemas", 6)

    def test_identifier_and_description(self, corpus):
        assert classify("inv-001", corpus) == "id"
        assert classify("computa", corpus) == "description"

    def test_query_is_trimmed_and_case_insensitive(self, corpus):
        assert classify("  PEDRO  ", corpus) == "custodian"

    @pytest.mark.parametrize("query", ["", "   ", None, "zzz-no-match"])
    def test_empty_or_unmatched_query(self, corpus, query):
        assert classify(query, corpus) is None

    def test_ties_keep_first_row(self):
        corpus = SearchCorpus([
            asset(1, area="NORTE A"),
            asset(2, area="NORTE B"),
        ])
        assert classify_match("norte", corpus).value == "NORTE A"

    def test_stops_at_top_score(self):
        class Exploding:
            def __getattr__(self, name):
                raise AssertionError("scanned past a top-score match")

        corpus = SearchCorpus([asset(1, custodian="Juan")])
        corpus.rows = corpus.rows + (Exploding(),)

        assert classify_match("juan", corpus).score == 8

    def test_custom_rules(self, corpus):
        rules = (RankingRule("category", ("category",), 1),)
        match = classify_match("mobil", corpus, rules)

        assert match.field == "category"
        assert match.score == 1


class TestSuggest:
    def test_values_are_trimmed(self):
        corpus = SearchCorpus([asset(1, custodian="  Ana Ruiz "), asset(2, custodian="ana ruiz")])

        assert [s.value for s in suggest("ana", corpus)] == ["Ana Ruiz"]
        assert corpus.values["custodian"] == ("Ana Ruiz", "ana ruiz")

    def test_short_queries_give_nothing(self, corpus):
        assert suggest("j", corpus) == []
        assert suggest(" a ", corpus) == []

    def test_prefix_matches_first_then_scan_order(self, corpus):
        results = suggest("juan", corpus)
        values = [(s.field, s.value) for s in results]

        # id, area and custodian start with the query; scan order is id, area, custodian
        assert values == [
            ("id", "JUAN-77"),
            ("area", "Juanacatlán"),
            ("custodian", "Juan Pérez"),
        ]

    def test_contains_match_after_prefix(self):
        corpus = SearchCorpus([
            asset(1, inventory_code="X-ANA-1"),
            asset(2, custodian="Ana Ruiz"),
        ])
        values = [s.value for s in suggest("ana", corpus)]

        assert values == ["Ana Ruiz", "X-ANA-1"]

    def test_at_most_seven_unique(self):
        rows = [asset(i, description=f"Anaquel {i}", custodian="Ana Ruiz") for i in range(1, 30)]
        results = suggest("ana", SearchCorpus(rows))
        pairs = [(s.field, s.value.lower()) for s in results]

        assert len(results) == 7
        assert len(set(pairs)) == len(pairs)
        assert all(s.value.lower().startswith("ana") for s in results)

    def test_dedupes_case_insensitively(self):
        corpus = SearchCorpus([
            asset(1, area="Finanzas"),
            asset(2, area="FINANZAS"),
        ])
        results = suggest("fin", corpus)

        assert [(s.field, s.value) for s in results] == [("area", "Finanzas")]

    def test_collection_stops_at_ten_before_sorting(self):
        # Ten contains-only ids fill the cap before the prefix-matching area is reached
        rows = [asset(i, inventory_code=f"X-ana-{i}") for i in range(1, 11)]
        rows.append(asset(11, area="Anáhuac"))
        results = suggest("an", SearchCorpus(rows))

        assert all(s.field == "id" for s in results)
        assert len(results) == 7


class TestFilterAssets:
    def test_active_filter_parse(self):
        f = ActiveFilter.parse("area: finanzas ")

        assert f == ActiveFilter(term="finanzas", field="area")

    @pytest.mark.parametrize("raw", ["finanzas", "colour:red", "area:", ":x"])
    def test_active_filter_parse_rejects(self, raw):
        with pytest.raises(ValidationError):
            ActiveFilter.parse(raw)

    def test_filters_and_term_combine(self, corpus):
        rows = filter_assets(corpus.rows, [ActiveFilter("juan", "custodian")], term="silla")

        assert [a.id for a in rows] == [2]

    def test_custodian_filter_matches_holder(self, corpus):
        rows = filter_assets(corpus.rows, [ActiveFilter("ruiz", "custodian")])

        assert [a.id for a in rows] == [2]

    def test_no_filters_returns_everything(self, corpus):
        assert len(filter_assets(corpus.rows)) == 3


class TestCorpusCache:
    def test_rebuilds_when_catalog_changes(self, db_session):
        make_asset("INEA", "INV-1", custodian="Juan Pérez")
        db_session.commit()

        first = search_service.get_corpus()
        again = search_service.get_corpus()
        assert first is again
        assert len(first) == 1

        make_asset("ITEA", "INV-2", custodian="Ana Ruiz")
        db_session.commit()

        rebuilt = search_service.get_corpus()
        assert rebuilt is not first
        assert len(rebuilt) == 2
        assert "Ana Ruiz" in rebuilt.values["custodian"]

    def test_rebuilds_after_holder_edit(self, db_session):
        make_director("Juan Pérez", position="JEFE", areas=["FINANZAS"])
        row = make_asset("INEA", "INV-1", custodian="Juan Pérez", area="FINANZAS")
        selection, _ = SelectionSession().with_assets([to_catalog_asset(row)])
        custody_service.commit_custody(
            selection, custodian="Juan Pérez", area="FINANZAS", position="JEFE", holder="Ana Ruiz", actor=ACTOR
        )
        db_session.commit()
        assert [s.value for s in suggest("ruiz", search_service.get_corpus())] == ["Ana Ruiz"]

        record = db_session.query(CustodyRecord).one()
        custody_service.update_holder(record.id, "Zacarias Nuevo", actor=ACTOR)
        db_session.commit()

        corpus = search_service.get_corpus()
        assert [s.value for s in suggest("zacar", corpus)] == ["Zacarias Nuevo"]
        assert suggest("ruiz", corpus) == []

    def test_rebuilds_after_write_off(self, db_session):
        row = make_asset("INEA", "INV-1", status="ACTIVO")
        db_session.commit()
        assert search_service.get_corpus().values["status"] == ("ACTIVO",)

        custody_service.write_off_asset("INEA", row.id, cause="Obsolete", actor=ACTOR)
        db_session.commit()

        assert search_service.get_corpus().values["status"] == ("BAJA",)

    def test_corpus_values_skip_empty(self, db_session):
        make_asset("INEA", "INV-1", custodian=None, area="")
        db_session.commit()

        corpus = search_service.get_corpus()

        assert corpus.values["custodian"] == ()
        assert corpus.values["area"] == ()
        assert corpus.values["id"] == ("INV-1",)
