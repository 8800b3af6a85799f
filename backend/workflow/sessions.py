"""
Search generations per client session.

A session may start a new search before the previous one finishes. Each
search takes the next generation number for its session; when it
finishes, its result is only delivered if no newer search has started
since. In-flight searches are never cancelled.
"""

import itertools
from typing import Dict


class SupersededError(Exception):
    """A newer search in the same session started before this one finished."""

    def __init__(self, session_id: str, generation: int):
        super().__init__(f"Search {generation} in session {session_id!r} was superseded")
        self.session_id = session_id
        self.generation = generation


class SearchSessions:
    """Monotonic generation counter keyed by session id."""

    def __init__(self):
        self._counter = itertools.count(1)
        self._latest: Dict[str, int] = {}

    def begin(self, session_id: str) -> int:
        """Register a new search and return its generation."""
        generation = next(self._counter)
        self._latest[session_id] = generation
        return generation

    def is_current(self, session_id: str, generation: int) -> bool:
        return self._latest.get(session_id) == generation

    def check(self, session_id: str, generation: int) -> None:
        """
        Raise SupersededError unless ``generation`` is still the latest.

        A search that passes is delivered, so its session entry is dropped;
        a search still running from before then counts as superseded.
        """
        if not self.is_current(session_id, generation):
            raise SupersededError(session_id, generation)
        del self._latest[session_id]

    def __len__(self) -> int:
        return len(self._latest)
