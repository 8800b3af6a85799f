"""
Tests for stock search: kana normalization, fuzzy scoring and the catalog.

Run with:
    cd backend && python -m pytest tests/test_search.py -v
"""

import os
import sys

import pytest

# ── Ensure backend is importable ──
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from errors import NotFoundError
from search import (
    CatalogEntry,
    ForeignListing,
    StockCatalog,
    StockDirectory,
    calculate_score,
    hiragana_to_katakana,
    normalize,
    search,
)


# ============================================================================
# Fixtures
# ============================================================================

FIXTURE_ENTRIES = [
    CatalogEntry("7203", "トヨタ自動車", "Toyota Motor Corporation", "輸送用機器", "プライム"),
    CatalogEntry("6758", "ソニーグループ", "Sony Group Corporation", "電気機器", "プライム"),
    CatalogEntry("9984", "ソフトバンクグループ", "SoftBank Group Corp.", "情報・通信業", "プライム"),
    CatalogEntry("9434", "ソフトバンク", "SoftBank Corp.", "情報・通信業", "プライム"),
    CatalogEntry("7974", "任天堂", "Nintendo Co., Ltd.", "その他製品", "プライム"),
]


@pytest.fixture
def catalog():
    return StockCatalog.from_entries(FIXTURE_ENTRIES)


@pytest.fixture
def directory(catalog):
    return StockDirectory(
        catalog=catalog,
        foreign=[ForeignListing("AAPL", "Apple Inc."), ForeignListing("MSFT", "Microsoft Corporation")],
    )


# ============================================================================
# Normalizer
# ============================================================================

class TestNormalize:

    def test_hiragana_becomes_katakana(self):
        assert hiragana_to_katakana("ばなな") == "バナナ"

    def test_hiragana_and_katakana_match(self):
        assert normalize("ばなな") == normalize("バナナ")

    def test_voiced_kana_fold_to_base(self):
        assert normalize("ガ") == "カ"

    def test_small_kana_fold_to_full_size(self):
        assert normalize("ッ") == "ツ"
        assert normalize("ぁ") == "ア"

    def test_special_katakana(self):
        assert normalize("ヴ") == "ウ"
        assert normalize("ヵヶ") == "カケ"

    def test_lowercases_and_strips_whitespace(self):
        assert normalize("  Toyota Motor\t") == "toyotamotor"
        assert normalize("パナソニック ホールディングス") == "ハナソニツクホールテインクス"

    @pytest.mark.parametrize("text", ["ソニーグループ", "とよた", "Sony Group", "ガギグ ゲゴ", "ヴァイオ"])
    def test_idempotent(self, text):
        once = normalize(text)
        assert normalize(once) == once


# ============================================================================
# Scoring and search
# ============================================================================

class TestCalculateScore:

    def test_exact(self):
        assert calculate_score("7203", "7203") == 1000

    def test_exact_after_normalization(self):
        assert calculate_score("トヨタ", "とよた") == 1000

    def test_prefix(self):
        assert calculate_score("Toyota Motor Corporation", "toyota") == 500

    def test_substring_uses_index(self):
        assert calculate_score("Toyota Motor Corporation", "motor") == 100 - len("toyota")

    def test_no_match(self):
        assert calculate_score("任天堂", "sony") == 0


class TestSearch:

    def test_exact_code_ranks_first_with_1000(self, catalog):
        results = search(catalog.entries(), "7203")
        assert results[0].code == "7203"
        assert results[0].score == 1000
        assert results[0].market == "プライム"

    def test_hiragana_query_finds_katakana_name(self, catalog):
        results = search(catalog.entries(), "とよた")
        assert results[0].code == "7203"
        assert results[0].score == 500

    def test_exact_name_beats_prefix(self, catalog):
        results = search(catalog.entries(), "ソフトバンク")
        assert [r.code for r in results[:2]] == ["9434", "9984"]
        assert results[0].score == 1000
        assert results[1].score == 500

    def test_sector_matches_are_weighted(self, catalog):
        results = search(catalog.entries(), "電気機器")
        assert results[0].code == "6758"
        assert results[0].score == 800

    def test_empty_query_returns_nothing(self, catalog):
        assert search(catalog.entries(), "") == []
        assert search(catalog.entries(), "   ") == []

    def test_no_match_returns_nothing(self, catalog):
        assert search(catalog.entries(), "zzzz") == []

    def test_equal_scores_keep_catalog_order(self):
        kyoto = CatalogEntry("8369", "京都銀行", "Kyoto Bank", "銀行業", "プライム")
        chiba = CatalogEntry("8331", "千葉銀行", "Chiba Bank", "銀行業", "プライム")

        forward = search([kyoto, chiba], "bank")
        assert [r.code for r in forward] == ["8369", "8331"]
        assert forward[0].score == forward[1].score == 95

        backward = search([chiba, kyoto], "bank")
        assert [r.code for r in backward] == ["8331", "8369"]

    def test_query_is_trimmed(self, catalog):
        assert search(catalog.entries(), "  7974  ")[0].code == "7974"

    def test_bundled_catalog_limits_and_orders(self):
        results = search(StockCatalog().entries(), "a")
        assert 0 < len(results) <= 10
        scores = [r.score for r in results]
        assert scores == sorted(scores, reverse=True)

    def test_bundled_catalog_end_to_end(self):
        results = search(StockCatalog().entries(), "7203")
        assert results[0].code == "7203"
        assert results[0].score == 1000
        assert results[0].market


# ============================================================================
# Catalog and directory
# ============================================================================

class TestStockCatalog:

    def test_bundled_dataset_is_versioned(self):
        catalog = StockCatalog()
        assert catalog.version == "2025.1"
        assert len(catalog) > 50

    def test_get_by_code_ignores_suffix(self, catalog):
        assert catalog.get_by_code("7203.T").name_local == "トヨタ自動車"
        assert catalog.get_by_code("7203").symbol == "7203.T"
        assert catalog.get_by_code("0000") is None


class TestStockDirectory:

    def test_domestic_suggestions_come_first(self, directory):
        suggestions = directory.search_stocks("so")
        assert suggestions[0].symbol.endswith(".T")
        assert any(s.symbol == "MSFT" for s in suggestions)
        assert suggestions[-1].symbol == "MSFT"

    def test_foreign_suggestions_match_name(self, directory):
        assert [s.symbol for s in directory.search_stocks("apple")] == ["AAPL"]

    def test_resolve_domestic_code(self, directory):
        assert directory.resolve_symbol("7203") == "7203.T"

    def test_resolve_name(self, directory):
        assert directory.resolve_symbol("とよた") == "7203.T"

    def test_resolve_suffixed_ticker_passes_through(self, directory):
        assert directory.resolve_symbol("6501.t") == "6501.T"

    def test_resolve_foreign_listing(self, directory):
        assert directory.resolve_symbol("aapl") == "AAPL"

    def test_resolve_unknown_ticker_shape_passes_through(self, directory):
        assert directory.resolve_symbol("ibm") == "IBM"

    def test_resolve_unknown_text_raises(self, directory):
        with pytest.raises(NotFoundError):
            directory.resolve_symbol("no such company here!")

    def test_resolve_empty_raises(self, directory):
        with pytest.raises(NotFoundError):
            directory.resolve_symbol("   ")

    def test_describe(self, directory):
        assert directory.describe("6758.T").name_foreign == "Sony Group Corporation"
        assert directory.describe("AAPL") is None
