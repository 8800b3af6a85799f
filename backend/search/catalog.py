"""
Static stock catalog.

The domestic (TSE) catalog and the short list of foreign listings are
bundled JSON datasets. They are loaded once, on first use, and never
mutated; tests build catalogs straight from lists instead.
"""

import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from errors import NotFoundError


DATA_DIR = Path(__file__).parent / "data"
DOMESTIC_DATASET = DATA_DIR / "japanese_stocks.json"
FOREIGN_DATASET = DATA_DIR / "foreign_stocks.json"

DOMESTIC_SUFFIX = ".T"

_DOMESTIC_CODE = re.compile(r"^\d{4}$")
_TICKER = re.compile(r"^[A-Za-z0-9^=\-]{1,10}(\.[A-Za-z]{1,3})?$")


@dataclass(frozen=True)
class CatalogEntry:
    """One domestic equity."""
    code: str
    name_local: str
    name_foreign: str
    sector: str
    market: str

    @property
    def symbol(self) -> str:
        return f"{self.code}{DOMESTIC_SUFFIX}"


@dataclass(frozen=True)
class ForeignListing:
    """A foreign (US) listing offered as a search suggestion."""
    symbol: str
    name: str


@dataclass(frozen=True)
class StockSuggestion:
    """A search suggestion shown under the search bar."""
    symbol: str
    name: str
    sector: Optional[str] = None
    market: Optional[str] = None
    score: Optional[float] = None


def _read_dataset(path: Path) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


class StockCatalog:
    """
    Read-only repository over the domestic stock dataset.

    Usage:
        catalog = StockCatalog()            # bundled dataset, loaded lazily
        catalog = StockCatalog.from_entries([...])  # fixture
    """

    def __init__(self, path: Path = DOMESTIC_DATASET, entries: Optional[Sequence[CatalogEntry]] = None, version: str = "fixture"):
        self._path = Path(path)
        self._entries: Optional[List[CatalogEntry]] = None
        self._by_code: Dict[str, CatalogEntry] = {}
        self._version: Optional[str] = None
        if entries is not None:
            self._entries = list(entries)
            self._by_code = {e.code: e for e in self._entries}
            self._version = version

    @classmethod
    def from_entries(cls, entries: Sequence[CatalogEntry], version: str = "fixture") -> "StockCatalog":
        return cls(entries=entries, version=version)

    def _load(self) -> List[CatalogEntry]:
        if self._entries is None:
            raw = _read_dataset(self._path)
            self._entries = [
                CatalogEntry(
                    code=str(item["code"]),
                    name_local=item.get("nameJa", ""),
                    name_foreign=item.get("nameEn", ""),
                    sector=item.get("sector", ""),
                    market=item.get("market", ""),
                )
                for item in raw.get("stocks", [])
            ]
            self._by_code = {e.code: e for e in self._entries}
            self._version = str(raw.get("version", "unknown"))
        return self._entries

    @property
    def version(self) -> str:
        self._load()
        return self._version

    def entries(self) -> List[CatalogEntry]:
        """All entries in dataset order."""
        return list(self._load())

    def get_by_code(self, code: str) -> Optional[CatalogEntry]:
        """Look up an entry by its 4-digit code (a trailing .T is ignored)."""
        self._load()
        code = code.strip().upper()
        if code.endswith(DOMESTIC_SUFFIX):
            code = code[: -len(DOMESTIC_SUFFIX)]
        return self._by_code.get(code)

    def __len__(self) -> int:
        return len(self._load())


def load_foreign_listings(path: Path = FOREIGN_DATASET) -> List[ForeignListing]:
    """Load the bundled foreign listings."""
    raw = _read_dataset(path)
    return [ForeignListing(symbol=item["symbol"], name=item["name"]) for item in raw.get("stocks", [])]


class StockDirectory:
    """
    Stock lookup across the domestic catalog and the foreign listings.

    Domestic matches use the fuzzy engine; foreign listings use a plain
    case-insensitive substring match on symbol or name.
    """

    def __init__(self, catalog: Optional[StockCatalog] = None, foreign: Optional[Sequence[ForeignListing]] = None):
        self.catalog = catalog or StockCatalog()
        self._foreign = list(foreign) if foreign is not None else None

    @property
    def foreign(self) -> List[ForeignListing]:
        if self._foreign is None:
            self._foreign = load_foreign_listings()
        return self._foreign

    def search_stocks(self, query: str) -> List[StockSuggestion]:
        """Domestic suggestions first, then matching foreign listings."""
        from .engine import search

        if not query or not query.strip():
            return []

        domestic = [
            StockSuggestion(
                symbol=f"{hit.code}{DOMESTIC_SUFFIX}",
                name=hit.name_local,
                sector=hit.sector,
                market=hit.market,
                score=hit.score,
            )
            for hit in search(self.catalog.entries(), query)
        ]

        lower_query = query.strip().lower()
        foreign = [
            StockSuggestion(symbol=listing.symbol, name=listing.name)
            for listing in self.foreign
            if lower_query in listing.symbol.lower() or lower_query in listing.name.lower()
        ]

        return domestic + foreign

    def resolve_symbol(self, query: str) -> str:
        """
        Turn free text into a quote symbol.

        Raises:
            NotFoundError: Nothing in the catalog matches and the query is
                not shaped like a ticker.
        """
        trimmed = (query or "").strip()
        if not trimmed:
            raise NotFoundError("Stock not found: empty query")

        if "." in trimmed and _TICKER.match(trimmed):
            return trimmed.upper()

        if _DOMESTIC_CODE.match(trimmed):
            return f"{trimmed}{DOMESTIC_SUFFIX}"

        suggestions = self.search_stocks(trimmed)
        if suggestions:
            return suggestions[0].symbol

        if _TICKER.match(trimmed):
            return trimmed.upper()

        raise NotFoundError(f"Stock not found: {query}")

    def describe(self, symbol: str) -> Optional[CatalogEntry]:
        """Catalog metadata for a domestic symbol, if known."""
        return self.catalog.get_by_code(symbol)
