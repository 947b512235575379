# Overview: Ranked field classification, suggestions and filter narrowing over the asset catalog.

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from flask import current_app

from .catalog_service import CatalogAsset, FIELD_ATTRIBUTES, catalog_version, list_assets
from ..validation import ValidationError


FIELD_TYPES = tuple(FIELD_ATTRIBUTES)

SUGGEST_FIELD_ORDER = ("id", "area", "custodian", "holder", "description", "category", "condition", "status")
SUGGESTION_COLLECT_LIMIT = 10
SUGGESTION_DISPLAY_LIMIT = 7
MIN_SUGGEST_LENGTH = 2


@dataclass(frozen=True)
class RankingRule:
    """
    One classification rule.

    A row value containing the query scores 2*tier - 1; an exact
    (case-insensitive) match scores 2*tier.
    """
    field: str
    attributes: tuple[str, ...]
    tier: int

    @property
    def exact_score(self) -> int:
        return 2 * self.tier

    @property
    def partial_score(self) -> int:
        return 2 * self.tier - 1


# Priority order; the first rule that hits a row is the only one scored for it
CLASSIFICATION_RULES: tuple[RankingRule, ...] = (
    RankingRule("custodian", ("custodian", "holder"), 4),
    RankingRule("area", ("area",), 3),
    RankingRule("id", ("inventory_code",), 2),
    RankingRule("description", ("description",), 1),
)


@dataclass(frozen=True)
class ClassifiedMatch:
    field: str
    value: str
    score: int

    def to_dict(self) -> dict:
        return {"field": self.field, "value": self.value, "score": self.score}


@dataclass(frozen=True)
class Suggestion:
    value: str
    field: str

    def to_dict(self) -> dict:
        return {"value": self.value, "field": self.field}


@dataclass(frozen=True)
class ActiveFilter:
    term: str
    field: str

    @classmethod
    def parse(cls, raw: str) -> "ActiveFilter":
        """Parse "field:term" as sent in query strings."""
        field, sep, term = (raw or "").partition(":")
        field = field.strip().lower()
        if not sep or field not in FIELD_TYPES:
            raise ValidationError(f"Invalid filter: {raw}")
        term = term.strip()
        if not term:
            raise ValidationError(f"Filter term cannot be blank: {raw}")
        return cls(term=term, field=field)

    def matches(self, asset: CatalogAsset) -> bool:
        needle = self.term.lower()
        fields = ("custodian", "holder") if self.field == "custodian" else (self.field,)
        return any(needle in (asset.field_value(f) or "").lower() for f in fields)


def _trimmed_values(rows: Iterable[CatalogAsset], field: str):
    for row in rows:
        value = row.field_value(field)
        text = str(value).strip() if value else ""
        if text:
            yield text


class SearchCorpus:
    """
    Immutable snapshot of catalog rows plus per-field value lists.

    Value lists hold trimmed values, skip blank ones and keep row order
    (duplicates included; suggest() dedupes).
    """

    def __init__(self, rows: Iterable[CatalogAsset], version: str | None = None):
        self.rows: tuple[CatalogAsset, ...] = tuple(rows)
        self.version = version
        self.values: dict[str, tuple[str, ...]] = {
            field: tuple(_trimmed_values(self.rows, field))
            for field in FIELD_TYPES
        }

    def __len__(self) -> int:
        return len(self.rows)


class CorpusCache:
    """Rebuilds the corpus only when catalog_version() changes."""

    def __init__(self):
        self._corpus: SearchCorpus | None = None

    def get(self) -> SearchCorpus:
        version = catalog_version()
        if self._corpus is None or self._corpus.version != version:
            self._corpus = SearchCorpus(list_assets(), version=version)
        return self._corpus


def get_corpus() -> SearchCorpus:
    cache = current_app.extensions.setdefault("custodia.corpus_cache", CorpusCache())
    return cache.get()


def _normalize_query(query: str | None) -> str:
    return (query or "").strip().lower()


def classify_match(
    query: str | None,
    corpus: SearchCorpus,
    rules: Sequence[RankingRule] = CLASSIFICATION_RULES,
) -> ClassifiedMatch | None:
    """
    Best-scoring (field, value) for the query across corpus rows.

    Ties keep the first row seen; scanning stops once the top score is hit.
    """
    q = _normalize_query(query)
    if not q:
        return None
    top = max(rule.exact_score for rule in rules)

    best: ClassifiedMatch | None = None
    for row in corpus.rows:
        for rule in rules:
            hit = None
            # Exactness counts on any attribute of the rule, not just the first hit
            for attribute in rule.attributes:
                value = getattr(row, attribute, None)
                if not value:
                    continue
                lowered = str(value).strip().lower()
                if lowered == q:
                    hit = ClassifiedMatch(rule.field, str(value).strip(), rule.exact_score)
                    break
                if hit is None and q in lowered:
                    hit = ClassifiedMatch(rule.field, str(value).strip(), rule.partial_score)
            if hit is not None:
                if best is None or hit.score > best.score:
                    best = hit
                break
        if best is not None and best.score >= top:
            break
    return best


def classify(query: str | None, corpus: SearchCorpus) -> str | None:
    match = classify_match(query, corpus)
    return match.field if match else None


def suggest(query: str | None, corpus: SearchCorpus) -> list[Suggestion]:
    q = _normalize_query(query)
    if len(q) < MIN_SUGGEST_LENGTH:
        return []

    seen: set[tuple[str, str]] = set()
    collected: list[Suggestion] = []
    for field in SUGGEST_FIELD_ORDER:
        for value in corpus.values.get(field, ()):
            lowered = value.lower()
            if q not in lowered or (field, lowered) in seen:
                continue
            seen.add((field, lowered))
            collected.append(Suggestion(value=value, field=field))
            if len(collected) >= SUGGESTION_COLLECT_LIMIT:
                break
        if len(collected) >= SUGGESTION_COLLECT_LIMIT:
            break

    # sorted() is stable: prefix matches first, scan order otherwise
    collected = sorted(collected, key=lambda s: 0 if s.value.lower().startswith(q) else 1)
    return collected[:SUGGESTION_DISPLAY_LIMIT]


def _matches_term(asset: CatalogAsset, term: str) -> bool:
    return any(term in (asset.field_value(field) or "").lower() for field in FIELD_TYPES)


def filter_assets(
    rows: Iterable[CatalogAsset],
    filters: Sequence[ActiveFilter] = (),
    term: str | None = None,
) -> list[CatalogAsset]:
    needle = _normalize_query(term)
    result = []
    for asset in rows:
        if not all(f.matches(asset) for f in filters):
            continue
        if needle and not _matches_term(asset, needle):
            continue
        result.append(asset)
    return result
