"""
quotes.py — The fixed quote catalog.

The catalog is a read-only id → text mapping handed to whoever needs it
(ShareLinkService, the quote routes) instead of living as a module global
that callers mutate.
"""
import random
from types import MappingProxyType
from collections.abc import Mapping
from typing import Iterator, Optional

DEFAULT_QUOTES = {
    1: "Among flowers the cherry blossom, among men the warrior.",
    2: "Nothing in this world is permanent; all passes in an instant.",
    3: "A quiet mind is the source of all beauty.",
}


class QuoteCatalog(Mapping):

    def __init__(self, entries: Mapping[int, str]):
        if not entries:
            raise ValueError("A quote catalog needs at least one entry")
        self._entries = MappingProxyType(dict(entries))

    def __getitem__(self, quote_id) -> str:
        return self._entries[quote_id]

    def __contains__(self, quote_id) -> bool:
        # bool is an int subclass; True must not match quote 1
        if isinstance(quote_id, bool) or not isinstance(quote_id, int):
            return False
        return quote_id in self._entries

    def __iter__(self) -> Iterator[int]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def ids(self) -> list:
        return sorted(self._entries)

    def random_id(self, rng: Optional[random.Random] = None) -> int:
        """Pick a quote id uniformly. Used for fallback content."""
        return (rng or random).choice(self.ids())


default_catalog = QuoteCatalog(DEFAULT_QUOTES)
