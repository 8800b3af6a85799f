"""
Stock search: kana normalization, fuzzy scoring and the static catalog.
"""

from .normalizer import normalize, hiragana_to_katakana, fold_katakana
from .catalog import CatalogEntry, ForeignListing, StockCatalog, StockDirectory, StockSuggestion
from .engine import ScoredEntry, search, calculate_score

__all__ = [
    "normalize",
    "hiragana_to_katakana",
    "fold_katakana",
    "CatalogEntry",
    "ForeignListing",
    "StockCatalog",
    "StockDirectory",
    "StockSuggestion",
    "ScoredEntry",
    "search",
    "calculate_score",
]
